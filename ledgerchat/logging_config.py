"""
structlog setup for ledgerchat.

JSON lines by default, a colored console at DEBUG. Operator key material is
masked before rendering, whichever logger emitted the event.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

import structlog

from .config import settings


SECRET_KEYS = frozenset({"private_key", "operator_key", "hedera_private_key", "classifier_api_key", "authorization"})
REDACTED = "***"


def redact_secrets(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """structlog processor: mask values of known secret fields."""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(log_level: Optional[str] = None) -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        log_level: Overrides ``settings.log_level``
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    console = level <= logging.DEBUG

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]
    if not console:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.dev.ConsoleRenderer() if console else structlog.processors.JSONRenderer()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Receipt polling makes httpx chatty
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_turn_context(session_id: Optional[str], user_id: Optional[str] = None) -> None:
    """Tag every log line of the current conversational turn.

    Keeps whatever the request middleware bound (``request_id``).
    """
    structlog.contextvars.unbind_contextvars("session_id", "user_id")
    structlog.contextvars.bind_contextvars(session_id=session_id, user_id=user_id)
