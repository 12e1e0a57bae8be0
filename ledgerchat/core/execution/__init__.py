"""
Action Execution Layer

- ActionExecutor: pre-checks, dispatch to ledger transactions, outcome normalization
- ExecutionOutcome: the single immutable result of one execution

Usage:
    from ledgerchat.core.execution import ActionExecutor

    executor = ActionExecutor(gateway, directory)
    outcome = await executor.execute(resolved_intent)
"""

from .executor import ActionExecutor, Asset, ExecutionPlan, PreCheckFailed
from .models import ExecutionOutcome, OutcomeStatus

__all__ = [
    "ActionExecutor",
    "Asset",
    "ExecutionOutcome",
    "ExecutionPlan",
    "OutcomeStatus",
    "PreCheckFailed",
]
