"""
Interactive argument resolution.

Drives one intent through AwaitingInput -> Validating -> (AwaitingInput |
Resolved | Cancelled). The resolver owns the ResolutionState it wraps; the
orchestrator persists that state between turns and rebuilds a resolver
around it on the next submission.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Set

from .actions import normalize_arg_value
from .models import (
    ArgumentRequest,
    Intent,
    ResolutionPhase,
    ResolutionState,
)
from .validator import ArgumentValidator


MAX_ROUNDS_EXCEEDED = "max_rounds_exceeded"
USER_CANCELLED = "user_cancelled"


class InvalidTransitionError(Exception):
    """Raised when a resolution transition is not allowed from the current phase."""

    def __init__(
        self,
        from_phase: ResolutionPhase,
        to_phase: ResolutionPhase,
        message: Optional[str] = None,
    ):
        self.from_phase = from_phase
        self.to_phase = to_phase
        self.message = message or f"Cannot transition from {from_phase.value} to {to_phase.value}"
        super().__init__(self.message)


class PartialSubmissionError(ValueError):
    """A submission left one or more requested fields blank."""

    def __init__(self, blank_fields):
        self.blank_fields = list(blank_fields)
        super().__init__(f"Missing values for: {', '.join(self.blank_fields)}")


class InteractiveResolver:
    """
    State machine collecting missing arguments for a single intent.

    Invariants:
    - ``collected`` keys are always names the resolver has requested.
    - ``RESOLVED`` is only reached when the validator reports the merged
      arguments complete.
    """

    TRANSITIONS: Dict[ResolutionPhase, Set[ResolutionPhase]] = {
        ResolutionPhase.AWAITING_INPUT: {
            ResolutionPhase.VALIDATING,
            ResolutionPhase.CANCELLED,
        },
        ResolutionPhase.VALIDATING: {
            ResolutionPhase.AWAITING_INPUT,
            ResolutionPhase.RESOLVED,
            ResolutionPhase.CANCELLED,  # round cap reached
        },
        ResolutionPhase.RESOLVED: set(),
        ResolutionPhase.CANCELLED: set(),
    }

    def __init__(
        self,
        state: ResolutionState,
        validator: ArgumentValidator,
        max_rounds: int = 0,
        logger: Optional[logging.Logger] = None,
    ):
        self.state = state
        self.validator = validator
        self.max_rounds = max_rounds
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def begin(
        cls,
        intent: Intent,
        validator: ArgumentValidator,
        max_rounds: int = 0,
        logger: Optional[logging.Logger] = None,
    ) -> "InteractiveResolver":
        """Validate a freshly classified intent and enter the machine."""
        state = ResolutionState(intent=intent, phase=ResolutionPhase.VALIDATING)
        resolver = cls(state, validator, max_rounds=max_rounds, logger=logger)
        resolver._revalidate()
        return resolver

    @property
    def phase(self) -> ResolutionPhase:
        return self.state.phase

    @property
    def is_resolved(self) -> bool:
        return self.state.phase == ResolutionPhase.RESOLVED

    @property
    def is_cancelled(self) -> bool:
        return self.state.phase == ResolutionPhase.CANCELLED

    def can_transition_to(self, to_phase: ResolutionPhase) -> bool:
        return to_phase in self.TRANSITIONS.get(self.state.phase, set())

    def argument_request(self) -> ArgumentRequest:
        """Describe the fields the user still has to fill in."""
        if self.state.phase != ResolutionPhase.AWAITING_INPUT:
            raise InvalidTransitionError(
                self.state.phase,
                ResolutionPhase.AWAITING_INPUT,
                message=f"No input is requested while {self.state.phase.value}",
            )
        if any(spec.error for spec in self.state.missing):
            message = "Some values need correcting. Please provide:"
        else:
            message = "I need more information to complete this action. Please provide:"
        return ArgumentRequest(
            message=message,
            components=tuple(self.state.missing),
            attempts=self.state.attempts,
        )

    def submit(self, responses: Mapping[str, object]) -> ResolutionPhase:
        """
        Merge user-supplied values and re-validate.

        Every currently requested field needs a non-blank value; anything
        else raises PartialSubmissionError and leaves the state untouched.
        """
        if self.state.phase != ResolutionPhase.AWAITING_INPUT:
            raise InvalidTransitionError(self.state.phase, ResolutionPhase.VALIDATING)

        requested = self.state.missing_names
        values = {str(k): str(v) for k, v in (responses or {}).items() if v is not None}

        blank = [name for name in requested if not values.get(name, "").strip()]
        if blank:
            raise PartialSubmissionError(blank)

        ignored = sorted(set(values) - set(requested))
        if ignored:
            self.logger.info(f"Ignoring unrequested fields for intent {self.state.intent.intent_id}: {ignored}")

        self._transition(ResolutionPhase.VALIDATING)
        self.state.collected.update({name: normalize_arg_value(name, values[name]) for name in requested})
        self.state.attempts += 1
        self._revalidate()
        return self.state.phase

    def cancel(self, reason: str = USER_CANCELLED) -> None:
        """Abandon the intent. No side effects beyond the phase change."""
        self._transition(ResolutionPhase.CANCELLED)
        self.state.cancel_reason = reason
        self.state.missing = []

    def resolved_intent(self) -> Intent:
        if self.state.phase != ResolutionPhase.RESOLVED:
            raise InvalidTransitionError(
                self.state.phase,
                ResolutionPhase.RESOLVED,
                message=f"Intent is not resolved (phase={self.state.phase.value})",
            )
        return self.state.intent.with_args(self.state.merged_args())

    def _revalidate(self) -> None:
        result = self.validator.validate(self.state.intent.action_type, self.state.merged_args())

        if result.complete:
            self.state.missing = []
            self._transition(ResolutionPhase.RESOLVED)
            return

        self.state.missing = list(result.missing)
        self.state.requested_names.update(result.missing_names)

        if self.max_rounds and self.state.attempts >= self.max_rounds:
            self.logger.info(
                f"Intent {self.state.intent.intent_id} still incomplete after "
                f"{self.state.attempts} rounds; cancelling"
            )
            self._transition(ResolutionPhase.CANCELLED)
            self.state.cancel_reason = MAX_ROUNDS_EXCEEDED
            return

        self._transition(ResolutionPhase.AWAITING_INPUT)
        self.logger.debug(
            f"Intent {self.state.intent.intent_id} awaiting input for {result.missing_names}"
        )

    def _transition(self, to_phase: ResolutionPhase) -> None:
        if not self.can_transition_to(to_phase):
            raise InvalidTransitionError(
                self.state.phase,
                to_phase,
                message=f"Invalid transition from {self.state.phase.value} to {to_phase.value}. "
                        f"Allowed: {sorted(p.value for p in self.TRANSITIONS.get(self.state.phase, set()))}",
            )
        self.logger.debug(
            f"Resolution {self.state.intent.intent_id}: {self.state.phase.value} -> {to_phase.value}"
        )
        self.state.phase = to_phase
        self.state.updated_at = datetime.now(timezone.utc)
