from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _TurnBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(description="User-facing text for this turn")
    session_id: Optional[str] = Field(default=None, alias="sessionId", description="Conversation session identifier")


class InteractiveData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    components: List[Dict[str, Any]] = Field(description="One input widget description per missing field")
    missing_args: List[str] = Field(alias="missingArgs", description="Names of the fields still required")
    attempts: int = Field(default=0, description="Submissions made so far for this intent")
    max_rounds: Optional[int] = Field(default=None, alias="maxRounds", description="Round cap, if enforced")


class ArgumentRequestResponse(_TurnBase):
    type: Literal["argumentRequest"] = "argumentRequest"
    interactive: InteractiveData = Field(description="Fields the user must fill in")
    original_intent: Dict[str, Any] = Field(
        alias="originalIntent",
        description="Intent with the arguments gathered so far; may be echoed back by stateless clients",
    )


class ActionCompleteResponse(_TurnBase):
    type: Literal["actionComplete"] = "actionComplete"
    action_result: Dict[str, Any] = Field(alias="actionResult", description="Execution outcome")
    intent: Dict[str, Any] = Field(description="The resolved intent that was executed")


class ActionErrorResponse(_TurnBase):
    type: Literal["actionError"] = "actionError"
    error: str = Field(description="Error detail, including the raw ledger status when there is one")
    action_result: Optional[Dict[str, Any]] = Field(default=None, alias="actionResult", description="Execution outcome, if execution was attempted")
    intent: Optional[Dict[str, Any]] = Field(default=None, description="The intent involved, if any")


class CancelledResponse(_TurnBase):
    type: Literal["cancelled"] = "cancelled"
    reason: str = Field(description="Why the pending intent was cancelled")
    intent: Optional[Dict[str, Any]] = Field(default=None, description="The intent that was declined")


class _ClassificationPassthrough(_TurnBase):
    classification: Dict[str, Any] = Field(default_factory=dict, description="Classifier output, passed through")


class InformationResponse(_ClassificationPassthrough):
    type: Literal["information"] = "information"


class StrategyResponse(_ClassificationPassthrough):
    type: Literal["strategy"] = "strategy"


class FeedbackResponse(_ClassificationPassthrough):
    type: Literal["feedback"] = "feedback"


TurnResponse = Annotated[
    Union[
        ArgumentRequestResponse,
        ActionCompleteResponse,
        ActionErrorResponse,
        CancelledResponse,
        InformationResponse,
        StrategyResponse,
        FeedbackResponse,
    ],
    Field(discriminator="type"),
]


class BalanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(alias="accountId", description="Account queried")
    balance_smallest_unit: int = Field(alias="balanceSmallestUnit", description="HBAR balance in tinybars")
    balance_formatted: str = Field(alias="balanceFormatted", description="HBAR balance, human readable")
    token_balances: Dict[str, int] = Field(default_factory=dict, alias="tokenBalances", description="Token id to balance in smallest unit")


class TransferResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str = Field(alias="transactionId", description="Ledger transaction id")
    status: str = Field(description="Receipt status string, verbatim")
    from_account: str = Field(alias="from", description="Paying account")
    to_account: str = Field(alias="to", description="Receiving account")
    amount: str = Field(description="Amount sent, in HBAR")
    amount_smallest_unit: int = Field(alias="amountSmallestUnit", description="Amount sent, in tinybars")
    unit: str = Field(default="HBAR", description="Unit of amount")


class OperatorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    initialized: bool = Field(description="Whether the ledger session is initialized")
    network: Optional[str] = Field(default=None, description="Selected ledger network")
    operator_account_id: Optional[str] = Field(default=None, alias="operatorAccountId", description="Operator account id")
    public_key: Optional[str] = Field(default=None, alias="publicKey", description="Operator Ed25519 public key (hex)")
    max_transaction_fee: Optional[int] = Field(default=None, alias="maxTransactionFee", description="Fee ceiling in tinybars")
    max_query_payment: Optional[int] = Field(default=None, alias="maxQueryPayment", description="Query payment ceiling in tinybars")
    initialized_at: Optional[datetime] = Field(default=None, alias="initializedAt", description="Session creation time")
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="checkedAt", description="Response time")
