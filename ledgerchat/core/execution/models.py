"""
Execution outcome models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class OutcomeStatus(str, Enum):
    """Final classification of one executor invocation."""
    SUCCESS = "success"
    FAILED_VALIDATION = "failed_validation"    # Pre-check failed; nothing was submitted
    FAILED_EXECUTION = "failed_execution"      # Ledger rejected the transaction
    FAILED_NETWORK = "failed_network"          # Submission or receipt wait failed in transit


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Immutable result of executing a resolved intent.

    ``details`` is for reporting only (from/to, amounts, created ids) and is
    never re-validated.
    """
    status: OutcomeStatus
    action_type: Optional[str] = None
    transaction_id: Optional[str] = None
    receipt_status: Optional[str] = None
    error_detail: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False)
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    @classmethod
    def success(
        cls,
        transaction_id: str,
        receipt_status: str,
        action_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ExecutionOutcome":
        return cls(
            status=OutcomeStatus.SUCCESS,
            action_type=action_type,
            transaction_id=transaction_id,
            receipt_status=receipt_status,
            details=dict(details or {}),
        )

    @classmethod
    def failed_validation(
        cls,
        reason: str,
        action_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ExecutionOutcome":
        return cls(
            status=OutcomeStatus.FAILED_VALIDATION,
            action_type=action_type,
            error_detail=reason,
            details=dict(details or {}),
        )

    @classmethod
    def failed_execution(
        cls,
        receipt_status: str,
        transaction_id: Optional[str] = None,
        action_type: Optional[str] = None,
        error_detail: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ExecutionOutcome":
        return cls(
            status=OutcomeStatus.FAILED_EXECUTION,
            action_type=action_type,
            transaction_id=transaction_id,
            receipt_status=receipt_status,
            error_detail=error_detail or receipt_status,
            details=dict(details or {}),
        )

    @classmethod
    def failed_network(
        cls,
        reason: str,
        transaction_id: Optional[str] = None,
        action_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ExecutionOutcome":
        return cls(
            status=OutcomeStatus.FAILED_NETWORK,
            action_type=action_type,
            transaction_id=transaction_id,
            error_detail=reason,
            details=dict(details or {}),
        )

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "actionType": self.action_type,
            "transactionId": self.transaction_id,
            "receiptStatus": self.receipt_status,
            "errorDetail": self.error_detail,
            "details": dict(self.details),
            "completedAt": self.completed_at.isoformat(),
        }
