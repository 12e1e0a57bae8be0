"""
Static per-action argument table.

Each action lists its fields in the order they are requested from the user.
Widget metadata (label, placeholder, widget type) is shared across actions
and keyed by argument name.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .models import ActionType, UiHint, ValidationRule


@dataclass(frozen=True)
class FieldSpec:
    """One argument of an action."""

    name: str
    rule: ValidationRule
    required: bool = True


@dataclass(frozen=True)
class WidgetSpec:
    """How the UI should ask for an argument."""

    ui_hint: UiHint
    label: str
    placeholder: str
    input_type: str = "text"
    allow_custom: bool = True
    rows: Optional[int] = None


@dataclass(frozen=True)
class ActionDescriptor:
    action_type: ActionType
    name: str
    description: str
    fields: Tuple[FieldSpec, ...]
    examples: Tuple[str, ...] = ()

    @property
    def required_fields(self) -> List[FieldSpec]:
        return [f for f in self.fields if f.required]

    @property
    def optional_fields(self) -> List[FieldSpec]:
        return [f for f in self.fields if not f.required]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "requiredArgs": [f.name for f in self.required_fields],
            "optionalArgs": [f.name for f in self.optional_fields],
            "examples": list(self.examples),
        }


ACTIONS: Dict[ActionType, ActionDescriptor] = {
    ActionType.TRANSFER: ActionDescriptor(
        action_type=ActionType.TRANSFER,
        name="Transfer Tokens",
        description="Send HBAR or tokens to another account",
        fields=(
            FieldSpec("recipient", ValidationRule.REQUIRED),
            FieldSpec("amount", ValidationRule.POSITIVE_NUMBER),
            FieldSpec("tokenId", ValidationRule.TOKEN_ID, required=False),
            FieldSpec("memo", ValidationRule.REQUIRED, required=False),
        ),
        examples=(
            "Send 100 HBAR to Samir",
            "Transfer 50 USDC to Alice",
            "Send 1000 SAUCE to 0.0.1234",
        ),
    ),
    ActionType.SWAP: ActionDescriptor(
        action_type=ActionType.SWAP,
        name="Swap Tokens",
        description="Exchange one token for another",
        fields=(
            FieldSpec("fromToken", ValidationRule.TOKEN_ID),
            FieldSpec("toToken", ValidationRule.TOKEN_ID),
            FieldSpec("amount", ValidationRule.POSITIVE_NUMBER),
            FieldSpec("slippage", ValidationRule.POSITIVE_NUMBER, required=False),
        ),
        examples=(
            "Swap 100 HBAR for USDC",
            "Exchange my SAUCE for USDT",
            "Convert 1000 USDC to HBAR",
        ),
    ),
    ActionType.STAKE: ActionDescriptor(
        action_type=ActionType.STAKE,
        name="Stake HBAR",
        description="Stake HBAR to a node or account for rewards",
        fields=(
            FieldSpec("amount", ValidationRule.POSITIVE_NUMBER),
            FieldSpec("validator", ValidationRule.ADDRESS, required=False),
        ),
        examples=(
            "Stake 1000 HBAR",
            "Delegate 500 HBAR to validator 0.0.800",
        ),
    ),
    ActionType.ASSOCIATE_TOKEN: ActionDescriptor(
        action_type=ActionType.ASSOCIATE_TOKEN,
        name="Associate Token",
        description="Associate a token with your account",
        fields=(FieldSpec("tokenId", ValidationRule.TOKEN_ID),),
        examples=(
            "Associate token 0.0.123456",
            "Associate USDC",
        ),
    ),
    ActionType.CREATE_TOPIC: ActionDescriptor(
        action_type=ActionType.CREATE_TOPIC,
        name="Create Topic",
        description="Create a new consensus topic for messaging",
        fields=(FieldSpec("memo", ValidationRule.REQUIRED),),
        examples=(
            "Create topic for price alerts",
            'Make new topic "trading signals"',
        ),
    ),
    ActionType.SEND_MESSAGE: ActionDescriptor(
        action_type=ActionType.SEND_MESSAGE,
        name="Send Message",
        description="Send a message to a consensus topic",
        fields=(
            FieldSpec("topicId", ValidationRule.TOPIC_ID),
            FieldSpec("message", ValidationRule.REQUIRED),
        ),
        examples=(
            'Send "hello" to topic 0.0.456',
            "Publish update to topic 0.0.456",
        ),
    ),
}


WIDGETS: Dict[str, WidgetSpec] = {
    "recipient": WidgetSpec(
        ui_hint=UiHint.CHOICE,
        label="Select Recipient",
        placeholder="Choose a contact or enter address",
    ),
    "amount": WidgetSpec(
        ui_hint=UiHint.INPUT,
        label="Amount",
        placeholder="Enter amount",
        input_type="number",
    ),
    "fromToken": WidgetSpec(
        ui_hint=UiHint.CHOICE,
        label="From Token",
        placeholder="Select token to swap from",
        allow_custom=False,
    ),
    "toToken": WidgetSpec(
        ui_hint=UiHint.CHOICE,
        label="To Token",
        placeholder="Select token to swap to",
        allow_custom=False,
    ),
    "tokenId": WidgetSpec(
        ui_hint=UiHint.CHOICE,
        label="Token",
        placeholder="Select token",
    ),
    "slippage": WidgetSpec(
        ui_hint=UiHint.INPUT,
        label="Slippage (%)",
        placeholder="Enter slippage tolerance",
        input_type="number",
    ),
    "validator": WidgetSpec(
        ui_hint=UiHint.INPUT,
        label="Validator",
        placeholder="Enter node account (0.0.xxx)",
    ),
    "memo": WidgetSpec(
        ui_hint=UiHint.INPUT,
        label="Memo",
        placeholder="Enter memo for topic",
    ),
    "message": WidgetSpec(
        ui_hint=UiHint.TEXTAREA,
        label="Message",
        placeholder="Enter message to send",
        rows=2,
    ),
    "topicId": WidgetSpec(
        ui_hint=UiHint.INPUT,
        label="Topic ID",
        placeholder="Enter topic ID (0.0.xxxxx)",
    ),
}

# Arguments whose choices come from the contacts list vs the token list
CONTACT_CHOICE_ARGS = frozenset({"recipient"})
TOKEN_CHOICE_ARGS = frozenset({"fromToken", "toToken", "tokenId"})

# Arguments holding token symbols; always upper-cased
TOKEN_ARGS = TOKEN_CHOICE_ARGS

# Entered as "2" or "2%"
PERCENT_ARGS = frozenset({"slippage"})


def normalize_arg_value(arg_name: str, value: Any) -> str:
    """Canonical text for an argument value, wherever it was entered."""
    text = str(value).strip()
    if arg_name in TOKEN_ARGS:
        return text.upper()
    if arg_name in PERCENT_ARGS:
        return text.rstrip("%").strip()
    return text


def get_action(action_type: ActionType) -> ActionDescriptor:
    return ACTIONS[action_type]


def widget_for(arg_name: str) -> WidgetSpec:
    widget = WIDGETS.get(arg_name)
    if widget is not None:
        return widget
    return WidgetSpec(
        ui_hint=UiHint.INPUT,
        label=arg_name[:1].upper() + arg_name[1:],
        placeholder=f"Enter {arg_name}",
    )


def supported_actions() -> Dict[str, Dict[str, Any]]:
    return {action.value: descriptor.to_dict() for action, descriptor in ACTIONS.items()}
