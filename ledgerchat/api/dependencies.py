"""
Service singletons for the API routers.

Routers receive these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from typing import Optional

from ..config import settings
from ..core.conversation import ConversationOrchestrator, SessionStore
from ..core.execution import ActionExecutor
from ..core.intents import ArgumentValidator, Directory
from ..core.ledger import LedgerGateway, get_ledger_gateway
from ..providers.classifier import IntentClassifier, build_classifier


_directory: Optional[Directory] = None
_validator: Optional[ArgumentValidator] = None
_classifier: Optional[IntentClassifier] = None
_store: Optional[SessionStore] = None
_orchestrator: Optional[ConversationOrchestrator] = None


def get_directory() -> Directory:
    global _directory
    if _directory is None:
        _directory = Directory.from_mapping(settings.contacts)
    return _directory


def get_validator() -> ArgumentValidator:
    global _validator
    if _validator is None:
        _validator = ArgumentValidator(get_directory())
    return _validator


def get_classifier() -> IntentClassifier:
    global _classifier
    if _classifier is None:
        _classifier = build_classifier(
            settings.classifier_url,
            api_key=settings.classifier_api_key,
            timeout_s=settings.classifier_timeout_seconds,
        )
    return _classifier


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore(
            ttl_seconds=settings.session_ttl_seconds,
            max_sessions=settings.max_sessions,
        )
    return _store


def get_gateway() -> LedgerGateway:
    return get_ledger_gateway()


def get_orchestrator() -> ConversationOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        validator = get_validator()
        _orchestrator = ConversationOrchestrator(
            classifier=get_classifier(),
            executor=ActionExecutor(get_gateway(), get_directory(), validator),
            validator=validator,
            store=get_session_store(),
            max_rounds=settings.max_resolution_rounds,
        )
    return _orchestrator


async def close_dependencies() -> None:
    """Release HTTP clients held by the singletons."""
    global _classifier, _orchestrator
    if _classifier is not None:
        await _classifier.close()
    _classifier = None
    _orchestrator = None
