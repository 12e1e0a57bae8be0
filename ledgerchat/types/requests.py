from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, description="Free-form user message")
    user_id: str = Field(default="anonymous", alias="userId", description="User identifier")
    session_id: Optional[str] = Field(default=None, alias="sessionId", description="Conversation session; generated when omitted")


class InteractiveResponseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(min_length=1, alias="sessionId", description="Conversation session")
    user_id: Optional[str] = Field(default=None, alias="userId", description="User identifier")
    original_intent: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="originalIntent",
        description="Intent echoed back from an argumentRequest; used when the session holds no pending state",
    )
    user_responses: Dict[str, Any] = Field(default_factory=dict, alias="userResponses", description="Field name to submitted value")


class CancelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(min_length=1, alias="sessionId", description="Conversation session")


class TransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to_account_id: str = Field(alias="toAccountId", pattern=r"^0\.0\.\d+$", description="Receiving account id")
    amount: Decimal = Field(gt=0, description="Amount of HBAR to send")
