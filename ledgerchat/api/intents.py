import logging
from typing import Any, Dict
from uuid import uuid4

from fastapi import APIRouter, Depends

from ..core.conversation import ConversationOrchestrator
from ..core.intents import Directory, supported_actions
from ..types.requests import CancelRequest, InteractiveResponseRequest, ProcessMessageRequest
from ..types.responses import TurnResponse
from .dependencies import get_directory, get_orchestrator


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process", response_model=TurnResponse, response_model_by_alias=True)
async def process_message(
    request: ProcessMessageRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """
    Process one chat message.

    Starts a new intent, or continues the session's pending one when it has
    one. A session id is generated when the client does not send one.
    """
    session_id = request.session_id or str(uuid4())
    return await orchestrator.handle_message(request.message, session_id, request.user_id)


@router.post("/interactive-response", response_model=TurnResponse, response_model_by_alias=True)
async def interactive_response(
    request: InteractiveResponseRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Submit values for the fields of an argumentRequest."""
    return await orchestrator.handle_interactive_response(
        request.session_id,
        request.user_responses,
        user_id=request.user_id,
        original_intent=request.original_intent,
    )


@router.post("/cancel", response_model=TurnResponse, response_model_by_alias=True)
async def cancel_intent(
    request: CancelRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Abandon the session's pending intent. Nothing is executed."""
    return await orchestrator.cancel(request.session_id)


@router.get("/contacts-tokens")
async def contacts_and_tokens(directory: Directory = Depends(get_directory)) -> Dict[str, Any]:
    """Known contacts and tokens, grouped by category."""
    return directory.to_dict()


@router.get("/supported-actions")
async def list_supported_actions() -> Dict[str, Any]:
    return {"actions": supported_actions()}
