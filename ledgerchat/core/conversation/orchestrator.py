"""
Conversation orchestration.

Sequences classify -> resolve -> execute for one session at a time. A session
holds at most one pending intent; while one is pending, incoming text is
treated as a response to it (or a cancel), never as a new intent.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Mapping, Optional

from ...logging_config import bind_turn_context
from ...providers.classifier import (
    ActionsClassification,
    ClassificationError,
    FeedbackClassification,
    IntentClassifier,
    StrategyClassification,
    UnsupportedActionError,
    classification_to_dict,
    normalize_args,
)
from ...types.responses import (
    ActionCompleteResponse,
    ActionErrorResponse,
    ArgumentRequestResponse,
    CancelledResponse,
    FeedbackResponse,
    InformationResponse,
    InteractiveData,
    StrategyResponse,
    TurnResponse,
)
from ..execution.executor import ActionExecutor
from ..intents.models import ActionType, Intent
from ..intents.resolver import (
    MAX_ROUNDS_EXCEEDED,
    USER_CANCELLED,
    InteractiveResolver,
    PartialSubmissionError,
)
from ..intents.validator import ArgumentValidator
from .report import ACTION_LABELS, format_outcome
from .store import ConversationSession, SessionStore


logger = logging.getLogger(__name__)

CANCEL_WORDS = frozenset({"cancel", "stop", "abort", "never mind", "nevermind"})

NO_PENDING = "no_pending_intent"
NOTHING_PENDING = "nothing_pending"


def is_cancel_message(text: str) -> bool:
    normalized = re.sub(r"[^\w\s]", "", text or "").lower()
    return " ".join(normalized.split()) in CANCEL_WORDS


class ConversationOrchestrator:
    """Drives one conversational turn per call."""

    def __init__(
        self,
        classifier: IntentClassifier,
        executor: ActionExecutor,
        validator: ArgumentValidator,
        store: SessionStore,
        max_rounds: int = 0,
    ):
        self.classifier = classifier
        self.executor = executor
        self.validator = validator
        self.store = store
        self.max_rounds = max_rounds

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_message(
        self,
        message: str,
        session_id: str,
        user_id: Optional[str] = None,
    ) -> TurnResponse:
        async with self.store.turn(session_id, user_id) as session:
            bind_turn_context(session_id, user_id)
            session.touch()
            if session.pending is not None:
                return await self._continue_pending(session, message)
            return await self._start_intent(session, message, user_id)

    async def handle_interactive_response(
        self,
        session_id: str,
        user_responses: Mapping[str, Any],
        user_id: Optional[str] = None,
        original_intent: Optional[Mapping[str, Any]] = None,
    ) -> TurnResponse:
        """
        Apply a structured form submission.

        When the session holds no pending state (expired, or a stateless
        client), the intent is rebuilt from ``original_intent`` and the
        submitted values are merged over its arguments.
        """
        async with self.store.turn(session_id, user_id) as session:
            bind_turn_context(session_id, user_id)
            session.touch()

            if session.pending is not None:
                resolver = InteractiveResolver(session.pending, self.validator, self.max_rounds)
                return await self._submit(session, resolver, user_responses)

            if not original_intent:
                return ActionErrorResponse(
                    message="There is no pending action to complete for this session.",
                    error=NO_PENDING,
                    session_id=session_id,
                )

            try:
                intent = self._intent_from_payload(original_intent, session_id, user_id)
            except ValueError as e:
                return ActionErrorResponse(
                    message="The submitted intent could not be understood.",
                    error=str(e),
                    session_id=session_id,
                )

            merged = dict(intent.extracted_args)
            merged.update(normalize_args(user_responses))
            resolver = InteractiveResolver.begin(intent.with_args(merged), self.validator, self.max_rounds)
            return await self._advance(session, resolver)

    async def cancel(self, session_id: str, reason: str = USER_CANCELLED) -> TurnResponse:
        session = await self.store.get(session_id)
        if session is None:
            return CancelledResponse(message="There was nothing to cancel.", reason=NOTHING_PENDING, session_id=session_id)

        async with session.lock:
            bind_turn_context(session_id, session.user_id)
            if session.pending is None:
                return CancelledResponse(message="There was nothing to cancel.", reason=NOTHING_PENDING, session_id=session_id)
            return self._cancel_pending(session, reason)

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    async def _start_intent(self, session: ConversationSession, message: str, user_id: Optional[str]) -> TurnResponse:
        try:
            classification = await self.classifier.classify(message, user_id)
        except UnsupportedActionError as e:
            logger.info(f"Classifier returned unsupported action '{e.action_subtype}'")
            supported = ", ".join(action.value for action in ActionType)
            return ActionErrorResponse(
                message=f"I can't perform '{e.action_subtype}' yet. Supported actions: {supported}.",
                error=str(e),
                session_id=session.session_id,
            )
        except ClassificationError as e:
            logger.warning(f"Classification failed: {e}")
            return ActionErrorResponse(
                message="I couldn't understand that request. Could you rephrase it?",
                error=str(e),
                session_id=session.session_id,
            )

        if not isinstance(classification, ActionsClassification):
            return self._passthrough(session, classification)

        intent = Intent(
            original_message=message,
            action_type=classification.action_type,
            extracted_args=classification.extracted_args,
            session_id=session.session_id,
            user_id=user_id or session.user_id or "",
        )
        logger.info(f"New {intent.action_type.value} intent {intent.intent_id} with args {sorted(intent.extracted_args)}")
        resolver = InteractiveResolver.begin(intent, self.validator, self.max_rounds)
        return await self._advance(session, resolver)

    async def _continue_pending(self, session: ConversationSession, message: str) -> TurnResponse:
        if is_cancel_message(message):
            return self._cancel_pending(session, USER_CANCELLED)

        state = session.pending
        resolver = InteractiveResolver(state, self.validator, self.max_rounds)
        if len(state.missing) == 1:
            return await self._submit(session, resolver, {state.missing[0].arg_name: message})

        return self._argument_request(
            session,
            resolver,
            message="Please fill in the requested fields, or say 'cancel' to stop.",
        )

    async def _submit(
        self,
        session: ConversationSession,
        resolver: InteractiveResolver,
        responses: Mapping[str, Any],
    ) -> TurnResponse:
        try:
            resolver.submit(responses)
        except PartialSubmissionError as e:
            return self._argument_request(
                session,
                resolver,
                message=f"Please provide a value for: {', '.join(e.blank_fields)}",
            )
        return await self._advance(session, resolver)

    async def _advance(self, session: ConversationSession, resolver: InteractiveResolver) -> TurnResponse:
        state = resolver.state

        if resolver.is_resolved:
            session.pending = None
            return await self._execute(session, resolver.resolved_intent())

        if resolver.is_cancelled:
            session.pending = None
            session.record_declined(state.intent, state.cancel_reason or MAX_ROUNDS_EXCEEDED)
            return CancelledResponse(
                message=(
                    f"I still couldn't complete this request after {state.attempts} attempts, "
                    "so I've cancelled it. Nothing was executed."
                ),
                reason=state.cancel_reason or MAX_ROUNDS_EXCEEDED,
                intent=state.intent.to_dict(),
                session_id=session.session_id,
            )

        session.pending = state
        return self._argument_request(session, resolver)

    async def _execute(self, session: ConversationSession, intent: Intent) -> TurnResponse:
        # Submission runs to completion even if the caller goes away
        outcome = await asyncio.shield(self.executor.execute(intent))
        session.record_executed(intent, outcome)

        report = format_outcome(intent, outcome)
        if outcome.is_success:
            return ActionCompleteResponse(
                message=report,
                action_result=outcome.to_dict(),
                intent=intent.to_dict(),
                session_id=session.session_id,
            )
        return ActionErrorResponse(
            message=report,
            error=outcome.error_detail or outcome.status.value,
            action_result=outcome.to_dict(),
            intent=intent.to_dict(),
            session_id=session.session_id,
        )

    def _cancel_pending(self, session: ConversationSession, reason: str) -> CancelledResponse:
        state = session.pending
        InteractiveResolver(state, self.validator, self.max_rounds).cancel(reason)
        session.pending = None
        session.record_declined(state.intent, reason)

        label = ACTION_LABELS.get(state.intent.action_type, state.intent.action_type.value)
        logger.info(f"Intent {state.intent.intent_id} cancelled ({reason})")
        return CancelledResponse(
            message=f"Cancelled the pending {label.lower()} request. Nothing was executed.",
            reason=reason,
            intent=state.intent.to_dict(),
            session_id=session.session_id,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _argument_request(
        self,
        session: ConversationSession,
        resolver: InteractiveResolver,
        message: Optional[str] = None,
    ) -> ArgumentRequestResponse:
        request = resolver.argument_request()
        state = resolver.state
        return ArgumentRequestResponse(
            message=message or request.message,
            interactive=InteractiveData(
                components=[component.to_dict() for component in request.components],
                missing_args=request.missing_args,
                attempts=request.attempts,
                max_rounds=self.max_rounds or None,
            ),
            original_intent=state.intent.with_args(state.merged_args()).to_dict(),
            session_id=session.session_id,
        )

    def _passthrough(self, session: ConversationSession, classification) -> TurnResponse:
        payload = classification_to_dict(classification)
        if isinstance(classification, StrategyClassification):
            return StrategyResponse(
                message="That sounds like a strategy question; routing it to the strategy service.",
                classification=payload,
                session_id=session.session_id,
            )
        if isinstance(classification, FeedbackClassification):
            return FeedbackResponse(
                message="Thanks for the feedback!",
                classification=payload,
                session_id=session.session_id,
            )
        return InformationResponse(
            message="That looks like an information request; routing it to the research service.",
            classification=payload,
            session_id=session.session_id,
        )

    @staticmethod
    def _intent_from_payload(payload: Mapping[str, Any], session_id: str, user_id: Optional[str]) -> Intent:
        raw_action = payload.get("actionType") or payload.get("actionSubtype")
        action = ActionType.parse(raw_action)
        if action is None:
            raise ValueError(f"Unsupported action: {raw_action}")

        args: Dict[str, Any] = payload.get("extractedArgs") or payload.get("args") or {}
        if not isinstance(args, Mapping):
            raise ValueError("extractedArgs must be an object")

        return Intent(
            original_message=str(payload.get("originalMessage") or ""),
            action_type=action,
            extracted_args=normalize_args(args),
            session_id=session_id,
            user_id=user_id or str(payload.get("userId") or ""),
        )
