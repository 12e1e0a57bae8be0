"""
Argument validation for ledger actions.

``ArgumentValidator.validate`` is a pure function of the action type, the
current argument values and the static field table. A present-but-invalid
field is reported exactly like an absent one so the interactive loop has a
single re-entry path.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Union

from .actions import CONTACT_CHOICE_ARGS, TOKEN_CHOICE_ARGS, get_action, widget_for
from .directory import Directory
from .models import ActionType, MissingArgumentSpec, UiHint, ValidationResult, ValidationRule


ACCOUNT_ID_RE = re.compile(r"^0\.0\.\d+$")
CONTACT_NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
TOKEN_SYMBOL_RE = re.compile(r"^[A-Z]+$")


def parse_positive_number(value: Any) -> Optional[Decimal]:
    """Return the value as a finite positive Decimal, or None."""
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


def check_rule(rule: ValidationRule, value: Optional[str]) -> Optional[str]:
    """Return the field-level error message, or None when the value passes."""
    text = (value or "").strip()

    if rule == ValidationRule.REQUIRED:
        return None if text else "This field is required"

    if rule == ValidationRule.POSITIVE_NUMBER:
        return None if parse_positive_number(text) is not None else "Please enter a positive number"

    if rule == ValidationRule.ADDRESS:
        if not text:
            return "Address is required"
        if not ACCOUNT_ID_RE.match(text) and not CONTACT_NAME_RE.match(text):
            return "Enter a valid address (0.0.xxxxx) or contact name"
        return None

    if rule == ValidationRule.TOKEN_ID:
        if not text:
            return "Token is required"
        if not ACCOUNT_ID_RE.match(text) and not TOKEN_SYMBOL_RE.match(text):
            return "Enter a valid token ID (0.0.xxxxx) or symbol (e.g., HBAR, USDC)"
        return None

    if rule == ValidationRule.TOPIC_ID:
        if not text:
            return "Topic ID is required"
        if not ACCOUNT_ID_RE.match(text):
            return "Enter a valid topic ID (0.0.xxxxx)"
        return None

    raise ValueError(f"Unknown validation rule: {rule}")


class ArgumentValidator:
    """Checks an argument set against the per-action field table."""

    def __init__(self, directory: Optional[Directory] = None):
        self.directory = directory

    def validate(
        self,
        action_type: Union[ActionType, str],
        args: Optional[Mapping[str, Any]],
    ) -> ValidationResult:
        action = ActionType.parse(action_type)
        if action is None:
            raise ValueError(f"Unsupported action type: {action_type!r}")

        values = args or {}
        missing: List[MissingArgumentSpec] = []

        for field_spec in get_action(action).fields:
            raw = values.get(field_spec.name)
            text = "" if raw is None else str(raw)

            if not text.strip():
                if field_spec.required:
                    missing.append(self._missing_spec(field_spec.name, field_spec.rule, error=None))
                continue

            error = check_rule(field_spec.rule, text)
            if error:
                missing.append(self._missing_spec(field_spec.name, field_spec.rule, error=error))

        return ValidationResult(complete=not missing, missing=tuple(missing))

    def _missing_spec(
        self,
        arg_name: str,
        rule: ValidationRule,
        error: Optional[str],
    ) -> MissingArgumentSpec:
        widget = widget_for(arg_name)
        choices = ()
        if widget.ui_hint == UiHint.CHOICE and self.directory is not None:
            if arg_name in CONTACT_CHOICE_ARGS:
                choices = tuple(self.directory.contact_options())
            elif arg_name in TOKEN_CHOICE_ARGS:
                choices = tuple(self.directory.token_options())

        return MissingArgumentSpec(
            arg_name=arg_name,
            ui_hint=widget.ui_hint,
            validation_rule=rule,
            label=widget.label,
            placeholder=widget.placeholder,
            input_type=widget.input_type,
            choices=choices,
            allow_custom=widget.allow_custom,
            rows=widget.rows,
            error=error,
        )
