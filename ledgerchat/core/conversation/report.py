"""
User-facing summaries of execution outcomes.
"""

from ..execution.models import ExecutionOutcome, OutcomeStatus
from ..intents.models import ActionType, Intent


ACTION_LABELS = {
    ActionType.TRANSFER: "Transfer",
    ActionType.SWAP: "Swap",
    ActionType.ASSOCIATE_TOKEN: "Token association",
    ActionType.STAKE: "Stake",
    ActionType.CREATE_TOPIC: "Topic creation",
    ActionType.SEND_MESSAGE: "Topic message",
}


def _success_line(intent: Intent, outcome: ExecutionOutcome) -> str:
    details = outcome.details
    action = intent.action_type

    if action == ActionType.TRANSFER:
        return f"Sent {details.get('amount')} to {details.get('recipient')} ({details.get('to')})."
    if action == ActionType.SWAP:
        received = details.get("received")
        line = f"Swapped {details.get('amount')} for {details.get('toToken')}"
        return f"{line} (received {received})." if received else f"{line}."
    if action == ActionType.STAKE:
        return f"Staked {details.get('amount')} to {details.get('validator')}."
    if action == ActionType.ASSOCIATE_TOKEN:
        return f"Associated {details.get('token')} ({details.get('tokenId')}) with {details.get('account')}."
    if action == ActionType.CREATE_TOPIC:
        return f"Created topic {details.get('topicId')} with memo \"{details.get('memo')}\"."
    if action == ActionType.SEND_MESSAGE:
        sequence = details.get("sequenceNumber")
        suffix = f" (sequence #{sequence})" if sequence is not None else ""
        return f"Message sent to topic {details.get('topicId')}{suffix}."
    return "Action completed."


def format_outcome(intent: Intent, outcome: ExecutionOutcome) -> str:
    """Render one outcome as chat text. Raw ledger statuses are quoted verbatim."""
    label = ACTION_LABELS.get(intent.action_type, intent.action_type.value)

    if outcome.status == OutcomeStatus.SUCCESS:
        lines = [
            f"✅ {_success_line(intent, outcome)}",
            f"Transaction ID: {outcome.transaction_id}",
            f"Status: {outcome.receipt_status}",
        ]
        return "\n".join(lines)

    if outcome.status == OutcomeStatus.FAILED_VALIDATION:
        return f"⚠️ {label} was not submitted: {outcome.error_detail}"

    if outcome.status == OutcomeStatus.FAILED_EXECUTION:
        lines = [f"❌ {label} failed on the ledger with status {outcome.receipt_status}."]
        if outcome.error_detail and outcome.error_detail != outcome.receipt_status:
            lines.append(outcome.error_detail)
        if outcome.transaction_id:
            lines.append(f"Transaction ID: {outcome.transaction_id}")
        return "\n".join(lines)

    message = f"🌐 Could not confirm the {label.lower()}: {outcome.error_detail}."
    if outcome.transaction_id:
        message += (
            f" The transaction may still reach consensus; check {outcome.transaction_id} before retrying."
        )
    return message
