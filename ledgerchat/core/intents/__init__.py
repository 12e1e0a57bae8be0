"""
Intent Resolution Layer

Turns a classified user message into a fully-parameterized intent:
- ArgumentValidator: checks arguments against the per-action field table
- InteractiveResolver: collects missing arguments across turns
- Directory: contacts and known tokens used for choices and resolution

Usage:
    from ledgerchat.core.intents import ArgumentValidator, InteractiveResolver, Intent

    resolver = InteractiveResolver.begin(intent, ArgumentValidator(directory))
    if not resolver.is_resolved:
        request = resolver.argument_request()
"""

from .actions import ACTIONS, ActionDescriptor, FieldSpec, get_action, supported_actions
from .directory import DEFAULT_TOKENS, HBAR, Contact, Directory, TokenInfo
from .models import (
    ActionType,
    ArgumentRequest,
    ChoiceOption,
    Intent,
    MissingArgumentSpec,
    ResolutionPhase,
    ResolutionState,
    UiHint,
    ValidationResult,
    ValidationRule,
)
from .resolver import (
    MAX_ROUNDS_EXCEEDED,
    USER_CANCELLED,
    InteractiveResolver,
    InvalidTransitionError,
    PartialSubmissionError,
)
from .validator import ArgumentValidator, check_rule, parse_positive_number

__all__ = [
    # Models
    "ActionType",
    "ArgumentRequest",
    "ChoiceOption",
    "Intent",
    "MissingArgumentSpec",
    "ResolutionPhase",
    "ResolutionState",
    "UiHint",
    "ValidationResult",
    "ValidationRule",
    # Actions
    "ACTIONS",
    "ActionDescriptor",
    "FieldSpec",
    "get_action",
    "supported_actions",
    # Directory
    "Contact",
    "DEFAULT_TOKENS",
    "Directory",
    "HBAR",
    "TokenInfo",
    # Validation and resolution
    "ArgumentValidator",
    "check_rule",
    "parse_positive_number",
    "InteractiveResolver",
    "InvalidTransitionError",
    "PartialSubmissionError",
    "MAX_ROUNDS_EXCEEDED",
    "USER_CANCELLED",
]
