"""
Intent resolution models.

Defines the structured intent produced from a user message, the per-field
requests emitted while arguments are missing, and the resolution state that
lives between conversational turns.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple
from uuid import uuid4


class ActionType(str, Enum):
    """Ledger actions the service can resolve and execute."""

    TRANSFER = "transfer"
    SWAP = "swap"
    ASSOCIATE_TOKEN = "associateToken"
    STAKE = "stake"
    CREATE_TOPIC = "createTopic"
    SEND_MESSAGE = "sendMessage"

    @classmethod
    def parse(cls, value: Any) -> Optional["ActionType"]:
        """Case-insensitive lookup; returns None for subtypes we cannot execute."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


class ValidationRule(str, Enum):
    """Field-level validation rules."""

    REQUIRED = "required"
    POSITIVE_NUMBER = "positive_number"
    ADDRESS = "address"
    TOKEN_ID = "token_id"
    TOPIC_ID = "topic_id"


class UiHint(str, Enum):
    """Widget the UI should render for a missing field."""

    INPUT = "input"
    TEXTAREA = "textarea"
    CHOICE = "choice"


class ResolutionPhase(str, Enum):
    """States of the interactive resolution machine."""

    AWAITING_INPUT = "awaiting_input"
    VALIDATING = "validating"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ChoiceOption:
    """One selectable value for a choice field."""

    value: str
    label: str
    category: str
    symbol: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"value": self.value, "label": self.label, "category": self.category}
        if self.symbol:
            data["symbol"] = self.symbol
        return data


@dataclass(frozen=True)
class MissingArgumentSpec:
    """A field the user still has to provide (absent or invalid)."""

    arg_name: str
    ui_hint: UiHint
    validation_rule: ValidationRule
    label: str
    placeholder: str
    input_type: str = "text"
    choices: Tuple[ChoiceOption, ...] = ()
    allow_custom: bool = True
    rows: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "argName": self.arg_name,
            "type": self.ui_hint.value,
            "inputType": self.input_type,
            "label": self.label,
            "placeholder": self.placeholder,
            "validation": self.validation_rule.value,
            "allowCustom": self.allow_custom,
            "error": self.error,
        }
        if self.ui_hint == UiHint.CHOICE:
            data["options"] = [option.to_dict() for option in self.choices]
        if self.rows is not None:
            data["rows"] = self.rows
        return data


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation pass."""

    complete: bool
    missing: Tuple[MissingArgumentSpec, ...] = ()

    @property
    def missing_names(self) -> List[str]:
        return [spec.arg_name for spec in self.missing]


def _normalize_args(args: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    normalized: Dict[str, str] = {}
    for key, value in (args or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        normalized[str(key)] = value if isinstance(value, str) else str(value)
    return normalized


@dataclass(frozen=True)
class Intent:
    """
    Structured representation of what the user asked for.

    Core fields never change after creation; a resolved intent is a copy
    produced by ``with_args``.
    """

    original_message: str
    action_type: ActionType
    extracted_args: Dict[str, str] = field(default_factory=dict)
    session_id: str = ""
    user_id: str = ""
    intent_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "extracted_args", _normalize_args(self.extracted_args))

    def with_args(self, args: Mapping[str, Any]) -> "Intent":
        return replace(self, extracted_args=_normalize_args(args))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intentId": self.intent_id,
            "originalMessage": self.original_message,
            "actionType": self.action_type.value,
            "extractedArgs": dict(self.extracted_args),
            "sessionId": self.session_id,
            "userId": self.user_id,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ArgumentRequest:
    """Renderable request for the fields that are still missing."""

    message: str
    components: Tuple[MissingArgumentSpec, ...]
    attempts: int = 0

    @property
    def missing_args(self) -> List[str]:
        return [component.arg_name for component in self.components]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "argumentRequest",
            "message": self.message,
            "components": [component.to_dict() for component in self.components],
            "missingArgs": self.missing_args,
            "attempts": self.attempts,
        }


@dataclass
class ResolutionState:
    """
    Pending resolution for one intent.

    ``collected`` only ever holds names that were requested at some point;
    ``requested_names`` tracks every name the resolver has asked for.
    """

    intent: Intent
    missing: List[MissingArgumentSpec] = field(default_factory=list)
    collected: Dict[str, str] = field(default_factory=dict)
    attempts: int = 0
    phase: ResolutionPhase = ResolutionPhase.AWAITING_INPUT
    requested_names: Set[str] = field(default_factory=set)
    cancel_reason: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.phase in (ResolutionPhase.RESOLVED, ResolutionPhase.CANCELLED)

    @property
    def missing_names(self) -> List[str]:
        return [spec.arg_name for spec in self.missing]

    def merged_args(self) -> Dict[str, str]:
        merged = dict(self.intent.extracted_args)
        merged.update(self.collected)
        return merged

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "missing": [spec.to_dict() for spec in self.missing],
            "collected": dict(self.collected),
            "attempts": self.attempts,
            "phase": self.phase.value,
            "cancelReason": self.cancel_reason,
        }
