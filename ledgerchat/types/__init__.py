from .requests import CancelRequest, InteractiveResponseRequest, ProcessMessageRequest, TransferRequest
from .responses import (
    ActionCompleteResponse,
    ActionErrorResponse,
    ArgumentRequestResponse,
    BalanceResponse,
    CancelledResponse,
    FeedbackResponse,
    InformationResponse,
    InteractiveData,
    OperatorResponse,
    StrategyResponse,
    TransferResponse,
    TurnResponse,
)

__all__ = [
    "CancelRequest",
    "InteractiveResponseRequest",
    "ProcessMessageRequest",
    "TransferRequest",
    "ActionCompleteResponse",
    "ActionErrorResponse",
    "ArgumentRequestResponse",
    "BalanceResponse",
    "CancelledResponse",
    "FeedbackResponse",
    "InformationResponse",
    "InteractiveData",
    "OperatorResponse",
    "StrategyResponse",
    "TransferResponse",
    "TurnResponse",
]
