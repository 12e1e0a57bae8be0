"""
Error Classification

Defines the error taxonomy shared by the ledger gateway and the executor.
Transient errors (network, timeout, rate limit) are recoverable and may be
retried for read-only work; ledger rejections and configuration problems
are not.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors for recovery decisions."""

    NETWORK = "network"                   # Mirror node / relay unreachable
    RATE_LIMIT = "rate_limit"             # HTTP 429 from a ledger endpoint
    TIMEOUT = "timeout"                   # Request or receipt wait timed out
    INSUFFICIENT_FUNDS = "insufficient_funds"
    LEDGER_REJECTED = "ledger_rejected"   # Precheck or receipt status other than SUCCESS
    NOT_FOUND = "not_found"               # Account, token or topic unknown to the ledger
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = True
    retry_after_seconds: Optional[float] = None
    suggested_action: Optional[str] = None
    ledger_status: Optional[str] = None
    transaction_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class ConfigurationError(Exception):
    """
    Fatal start-up error: missing operator credentials, unsupported network,
    unusable key material. The service must not serve requests after this.
    """


class RecoverableError(Exception):
    """
    Base class for transient errors.

    Only read-only ledger queries are retried automatically; a submitted
    transaction is never re-sent on a recoverable error.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        retry_after: Optional[float] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.retry_after = retry_after
        self.context = context or ErrorContext(category=category, recoverable=True)


class UnrecoverableError(Exception):
    """Base class for errors that retrying cannot fix."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category, recoverable=False)


class RateLimitError(RecoverableError):
    """Ledger endpoint rate limit exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float = 5.0):
        super().__init__(
            message,
            category=ErrorCategory.RATE_LIMIT,
            retry_after=retry_after,
            context=ErrorContext(
                category=ErrorCategory.RATE_LIMIT,
                recoverable=True,
                retry_after_seconds=retry_after,
                suggested_action=f"Wait {retry_after}s before retrying",
            ),
        )


class NetworkError(RecoverableError):
    """Network connectivity error."""

    def __init__(self, message: str = "Network error", endpoint: Optional[str] = None):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            context=ErrorContext(
                category=ErrorCategory.NETWORK,
                recoverable=True,
                suggested_action="Retry with exponential backoff",
                details={"endpoint": endpoint} if endpoint else {},
            ),
        )


class TimeoutError(RecoverableError):
    """Operation timed out."""

    def __init__(self, message: str = "Operation timed out", operation: Optional[str] = None):
        super().__init__(
            message,
            category=ErrorCategory.TIMEOUT,
            context=ErrorContext(
                category=ErrorCategory.TIMEOUT,
                recoverable=True,
                suggested_action="Retry with longer timeout",
                details={"operation": operation} if operation else {},
            ),
        )


class NotFoundError(UnrecoverableError):
    """The ledger has no such account, token or topic."""

    def __init__(self, message: str = "Entity not found", entity_id: Optional[str] = None):
        super().__init__(
            message,
            category=ErrorCategory.NOT_FOUND,
            context=ErrorContext(
                category=ErrorCategory.NOT_FOUND,
                recoverable=False,
                suggested_action="Check the id and network",
                details={"entity_id": entity_id} if entity_id else {},
            ),
        )


class InsufficientFundsError(UnrecoverableError):
    """Operator balance cannot cover the amount plus the fee ceiling."""

    def __init__(
        self,
        message: str = "Insufficient funds",
        required: Optional[str] = None,
        available: Optional[str] = None,
        token: Optional[str] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.INSUFFICIENT_FUNDS,
            context=ErrorContext(
                category=ErrorCategory.INSUFFICIENT_FUNDS,
                recoverable=False,
                suggested_action="Add funds to the operator account or reduce the amount",
                details={
                    "required": required,
                    "available": available,
                    "token": token,
                },
            ),
        )


def classify_error(error: Exception) -> ErrorContext:
    """
    Classify an exception and return its error context.

    Foreign exceptions (httpx, asyncio) are classified by type first and by
    message as a last resort.
    """
    if isinstance(error, (RecoverableError, UnrecoverableError)):
        return error.context

    if isinstance(error, ConfigurationError):
        return ErrorContext(category=ErrorCategory.CONFIGURATION, recoverable=False)

    message = str(error).lower()
    type_name = type(error).__name__.lower()

    if "timeout" in type_name or any(p in message for p in ("timeout", "timed out", "deadline")):
        return ErrorContext(
            category=ErrorCategory.TIMEOUT,
            recoverable=True,
            suggested_action="Retry with longer timeout",
        )

    if any(p in message for p in ("rate limit", "too many requests", "429", "busy")):
        return ErrorContext(
            category=ErrorCategory.RATE_LIMIT,
            recoverable=True,
            retry_after_seconds=5.0,
            suggested_action="Wait before retrying",
        )

    network_patterns = [
        "connect",
        "network",
        "unreachable",
        "refused",
        "dns",
        "socket",
        "ssl",
        "platform_not_active",
    ]
    if "connect" in type_name or any(p in message for p in network_patterns):
        return ErrorContext(
            category=ErrorCategory.NETWORK,
            recoverable=True,
            suggested_action="Check network connectivity",
        )

    if any(p in message for p in ("insufficient_payer_balance", "insufficient_account_balance", "insufficient")):
        return ErrorContext(
            category=ErrorCategory.INSUFFICIENT_FUNDS,
            recoverable=False,
            suggested_action="Add funds to the operator account",
        )

    return ErrorContext(
        category=ErrorCategory.UNKNOWN,
        recoverable=False,
        suggested_action="Inspect the error detail",
    )
