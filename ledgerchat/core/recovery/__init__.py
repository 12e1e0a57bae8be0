"""
Error Recovery Module

Error taxonomy and retry/backoff used by the ledger gateway.
"""

from .errors import (
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    InsufficientFundsError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RecoverableError,
    TimeoutError,
    UnrecoverableError,
    classify_error,
)
from .strategies import ExponentialBackoffStrategy, RetryConfig, RetryStrategy

__all__ = [
    # Errors
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "RecoverableError",
    "UnrecoverableError",
    "RateLimitError",
    "NetworkError",
    "TimeoutError",
    "NotFoundError",
    "InsufficientFundsError",
    "classify_error",
    # Strategies
    "RetryConfig",
    "RetryStrategy",
    "ExponentialBackoffStrategy",
]
