"""
Ledger models and types.
"""

import base64
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from ..recovery.errors import ConfigurationError
from .constants import HBAR_DECIMALS, HBAR_SYMBOL, PRECHECK_OK, SUCCESS_STATUS
from .units import format_amount


T = TypeVar("T")


class Network(str, Enum):
    """Supported ledger networks."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    PREVIEWNET = "previewnet"

    @classmethod
    def parse(cls, value: Any) -> "Network":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigurationError(f"Unsupported ledger network {value!r}; expected one of: {allowed}")


class TransactionKind(str, Enum):
    """Kinds of transaction the gateway can build."""
    CRYPTO_TRANSFER = "crypto_transfer"
    TOKEN_TRANSFER = "token_transfer"
    SWAP = "swap"
    TOKEN_ASSOCIATE = "token_associate"
    STAKE = "stake"
    TOPIC_CREATE = "topic_create"
    TOPIC_MESSAGE = "topic_message"


@dataclass(frozen=True)
class TransactionSpec:
    """
    Fully-parameterized transaction request.

    ``amount`` is always an integer in the smallest unit of the asset
    (tinybars for HBAR). For swaps ``token_id``/``output_token_id`` of None
    mean HBAR.
    """
    kind: TransactionKind
    operator_account: str
    counterparty_account: Optional[str] = None
    token_id: Optional[str] = None
    amount: int = 0
    memo: Optional[str] = None

    # Kind-specific
    output_token_id: Optional[str] = None
    slippage_bps: Optional[int] = None
    message: Optional[str] = None
    topic_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.kind, TransactionKind):
            object.__setattr__(self, "kind", TransactionKind(self.kind))
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(
                f"amount must be an int in the smallest ledger unit, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValueError(f"amount must not be negative, got {self.amount}")
        if not self.operator_account:
            raise ValueError("operator_account is required")

        kind = self.kind
        if kind in (TransactionKind.CRYPTO_TRANSFER, TransactionKind.TOKEN_TRANSFER):
            if not self.counterparty_account:
                raise ValueError(f"{kind.value} requires counterparty_account")
            if self.amount == 0:
                raise ValueError(f"{kind.value} requires a positive amount")
        if kind in (TransactionKind.TOKEN_TRANSFER, TransactionKind.TOKEN_ASSOCIATE) and not self.token_id:
            raise ValueError(f"{kind.value} requires token_id")
        if kind == TransactionKind.SWAP:
            if self.amount == 0:
                raise ValueError("swap requires a positive amount")
            if self.token_id == self.output_token_id:
                raise ValueError("swap input and output tokens must differ")
        if kind == TransactionKind.STAKE and self.amount == 0:
            raise ValueError("stake requires a positive amount")
        if kind == TransactionKind.TOPIC_MESSAGE and (not self.topic_id or not self.message):
            raise ValueError("topic_message requires topic_id and message")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "operatorAccount": self.operator_account,
            "amount": self.amount,
        }
        optional = {
            "counterpartyAccount": self.counterparty_account,
            "tokenId": self.token_id,
            "memo": self.memo,
            "outputTokenId": self.output_token_id,
            "slippageBps": self.slippage_bps,
            "message": self.message,
            "topicId": self.topic_id,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass(frozen=True)
class FrozenTransaction:
    """A transaction bound to a session: id, node, fee ceiling and validity window."""
    transaction_id: str
    node_account_id: str
    max_transaction_fee: int
    valid_start: str
    valid_duration_seconds: int
    network: Network
    spec: TransactionSpec

    @property
    def payer_account_id(self) -> str:
        return self.transaction_id.split("@", 1)[0]

    def body(self) -> Dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "nodeAccountId": self.node_account_id,
            "maxTransactionFee": self.max_transaction_fee,
            "validStart": self.valid_start,
            "validDurationSeconds": self.valid_duration_seconds,
            "network": self.network.value,
            **self.spec.to_dict(),
        }

    def body_bytes(self) -> bytes:
        """Canonical encoding that gets signed."""
        return json.dumps(self.body(), sort_keys=True, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class SignedTransaction:
    transaction: FrozenTransaction
    signature: bytes
    public_key_hex: str

    @property
    def transaction_id(self) -> str:
        return self.transaction.transaction_id

    def to_wire(self) -> Dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "network": self.transaction.network.value,
            "body": base64.b64encode(self.transaction.body_bytes()).decode("ascii"),
            "signature": self.signature.hex(),
            "publicKey": self.public_key_hex,
        }


@dataclass(frozen=True)
class SubmitResponse:
    """Node answer to a submission; anything other than OK is a precheck failure."""
    transaction_id: str
    precheck_status: str = PRECHECK_OK

    @property
    def accepted(self) -> bool:
        return self.precheck_status == PRECHECK_OK


@dataclass(frozen=True)
class Receipt:
    """Authoritative final status of a submitted transaction."""
    transaction_id: str
    status: str
    entity_id: Optional[str] = None              # e.g. created topic id
    consensus_timestamp: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "status": self.status,
            "entityId": self.entity_id,
            "consensusTimestamp": self.consensus_timestamp,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class AccountSnapshot:
    account_id: str
    balance: int                                  # tinybars
    tokens: Dict[str, int] = field(default_factory=dict, compare=False)   # token id -> smallest unit
    staked_account_id: Optional[str] = None
    deleted: bool = False


@dataclass(frozen=True)
class TokenSnapshot:
    token_id: str
    symbol: str
    name: str
    decimals: int


@dataclass(frozen=True)
class TopicSnapshot:
    topic_id: str
    memo: str = ""
    sequence_number: Optional[int] = None
    deleted: bool = False


class QueryKind(str, Enum):
    ACCOUNT = "account"
    BALANCE = "balance"
    TOKEN = "token"
    TOPIC = "topic"


@dataclass(frozen=True)
class QueryTarget:
    kind: QueryKind
    entity_id: str

    @classmethod
    def account(cls, account_id: str) -> "QueryTarget":
        return cls(QueryKind.ACCOUNT, account_id)

    @classmethod
    def balance(cls, account_id: str) -> "QueryTarget":
        return cls(QueryKind.BALANCE, account_id)

    @classmethod
    def token(cls, token_id: str) -> "QueryTarget":
        return cls(QueryKind.TOKEN, token_id)

    @classmethod
    def topic(cls, topic_id: str) -> "QueryTarget":
        return cls(QueryKind.TOPIC, topic_id)


@dataclass(frozen=True)
class AccountBalance:
    account_id: str
    balance_smallest_unit: int
    token_balances: Dict[str, int] = field(default_factory=dict, compare=False)

    @property
    def balance_formatted(self) -> str:
        return format_amount(self.balance_smallest_unit, HBAR_DECIMALS, HBAR_SYMBOL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accountId": self.account_id,
            "balanceSmallestUnit": self.balance_smallest_unit,
            "balanceFormatted": self.balance_formatted,
            "tokenBalances": dict(self.token_balances),
        }


@dataclass(frozen=True)
class TransferResult:
    transaction_id: str
    status: str
    from_account: str
    to_account: str
    amount: int                                   # tinybars

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "status": self.status,
            "from": self.from_account,
            "to": self.to_account,
            "amount": format_amount(self.amount, HBAR_DECIMALS),
            "amountSmallestUnit": self.amount,
            "unit": HBAR_SYMBOL,
        }


class LedgerErrorKind(str, Enum):
    NOT_INITIALIZED = "not_initialized"
    NETWORK = "network"
    TIMEOUT = "timeout"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class LedgerError:
    kind: LedgerErrorKind
    detail: str
    status: Optional[str] = None                  # raw ledger status, verbatim
    transaction_id: Optional[str] = None

    @property
    def is_transient(self) -> bool:
        return self.kind in (LedgerErrorKind.NETWORK, LedgerErrorKind.TIMEOUT)


@dataclass(frozen=True)
class LedgerResult(Generic[T]):
    """Ok(value) or Err(LedgerError); gateway calls never raise for ledger failures."""
    value: Optional[T] = None
    error: Optional[LedgerError] = None

    @classmethod
    def of(cls, value: T) -> "LedgerResult[T]":
        return cls(value=value)

    @classmethod
    def fail(
        cls,
        kind: LedgerErrorKind,
        detail: str,
        status: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> "LedgerResult[T]":
        return cls(error=LedgerError(kind=kind, detail=detail, status=status, transaction_id=transaction_id))

    @property
    def is_ok(self) -> bool:
        return self.error is None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
