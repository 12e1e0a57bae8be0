"""
Conversation Layer

- ConversationOrchestrator: classify -> resolve -> execute, one turn at a time per session
- SessionStore: in-memory sessions holding at most one pending intent each
- format_outcome: user-facing report for an execution outcome

Usage:
    from ledgerchat.core.conversation import ConversationOrchestrator, SessionStore

    orchestrator = ConversationOrchestrator(classifier, executor, validator, SessionStore())
    response = await orchestrator.handle_message("send 5 HBAR to Alex", session_id="abc")
"""

from .orchestrator import CANCEL_WORDS, ConversationOrchestrator, is_cancel_message
from .report import format_outcome
from .store import ConversationSession, DeclinedIntent, ExecutedIntent, SessionStore

__all__ = [
    "CANCEL_WORDS",
    "ConversationOrchestrator",
    "ConversationSession",
    "DeclinedIntent",
    "ExecutedIntent",
    "SessionStore",
    "format_outcome",
    "is_cancel_message",
]
