"""
Deterministic in-process ledger.

Used for local development (``LEDGER_TRANSPORT=memory``) and tests. It
checks signatures, runs the node prechecks, charges a flat fee and applies
transaction effects, producing the same status strings the real network
reports.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Dict, List, Optional, Set, Tuple

from ..recovery.errors import NetworkError, NotFoundError
from .constants import DEFAULT_NODE_ACCOUNT_ID, HBAR_DECIMALS, HBAR_SYMBOL, PRECHECK_OK, SUCCESS_STATUS
from .models import (
    AccountSnapshot,
    Network,
    Receipt,
    SignedTransaction,
    SubmitResponse,
    TokenSnapshot,
    TopicSnapshot,
    TransactionKind,
    TransactionSpec,
)
from .signer import verify_signature
from .transport import LedgerTransport
from .units import from_smallest_unit, to_smallest_unit


logger = logging.getLogger(__name__)

SIMULATED_FEE_TINYBARS = 100_000

# Fixed swap rates: units of output per unit of input
DEFAULT_SWAP_RATES: Dict[Tuple[str, str], Decimal] = {
    ("HBAR", "USDC"): Decimal("0.065"),
    ("USDC", "HBAR"): Decimal("15.38"),
    ("HBAR", "SAUCE"): Decimal("19.12"),
    ("SAUCE", "HBAR"): Decimal("0.052"),
    ("HBAR", "USDT"): Decimal("0.065"),
    ("USDT", "HBAR"): Decimal("15.38"),
}


@dataclass
class _Account:
    account_id: str
    balance: int = 0
    public_key_hex: Optional[str] = None
    tokens: Dict[str, int] = field(default_factory=dict)
    staked_account_id: Optional[str] = None
    staked_amount: int = 0


@dataclass
class _Topic:
    topic_id: str
    memo: str = ""
    messages: List[str] = field(default_factory=list)


class InMemoryLedger(LedgerTransport):
    """Simulated ledger holding accounts, tokens and topics in memory."""

    name = "memory"
    timeout_s = 1.0

    def __init__(
        self,
        network: Network = Network.TESTNET,
        *,
        fee_tinybars: int = SIMULATED_FEE_TINYBARS,
        swap_rates: Optional[Dict[Tuple[str, str], Decimal]] = None,
        receipt_delay_polls: int = 0,
        first_entity_num: int = 5_000_000,
    ):
        self.network = network
        self.fee_tinybars = fee_tinybars
        self.swap_rates = dict(DEFAULT_SWAP_RATES if swap_rates is None else swap_rates)
        self.receipt_delay_polls = receipt_delay_polls
        self.offline = False

        self._accounts: Dict[str, _Account] = {}
        self._tokens: Dict[str, TokenSnapshot] = {}
        self._topics: Dict[str, _Topic] = {}
        self._receipts: Dict[str, Receipt] = {}
        self._pending_polls: Dict[str, int] = {}
        self._seen_transaction_ids: Set[str] = set()
        self._next_entity_num = first_entity_num
        self._lock = asyncio.Lock()

        self.submissions: List[SignedTransaction] = []

        self.node_account_id = self.create_account(DEFAULT_NODE_ACCOUNT_ID)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def _allocate_id(self) -> str:
        entity_id = f"0.0.{self._next_entity_num}"
        self._next_entity_num += 1
        return entity_id

    def create_account(
        self,
        account_id: Optional[str] = None,
        *,
        balance: int = 0,
        public_key_hex: Optional[str] = None,
    ) -> str:
        account_id = account_id or self._allocate_id()
        account = self._accounts.get(account_id)
        if account is None:
            self._accounts[account_id] = _Account(account_id, balance, public_key_hex)
        else:
            account.balance = balance
            if public_key_hex:
                account.public_key_hex = public_key_hex
        return account_id

    def create_token(
        self,
        symbol: str,
        name: str = "",
        decimals: int = 0,
        token_id: Optional[str] = None,
    ) -> str:
        token_id = token_id or self._allocate_id()
        self._tokens[token_id] = TokenSnapshot(token_id=token_id, symbol=symbol, name=name or symbol, decimals=decimals)
        return token_id

    def create_topic(self, memo: str = "", topic_id: Optional[str] = None) -> str:
        topic_id = topic_id or self._allocate_id()
        self._topics[topic_id] = _Topic(topic_id, memo)
        return topic_id

    def associate(self, account_id: str, token_id: str, amount: int = 0) -> None:
        self._accounts[account_id].tokens.setdefault(token_id, 0)
        self._accounts[account_id].tokens[token_id] += amount

    def has_account(self, account_id: str) -> bool:
        return account_id in self._accounts

    def balance_of(self, account_id: str, token_id: Optional[str] = None) -> int:
        account = self._accounts[account_id]
        if token_id is None:
            return account.balance
        return account.tokens.get(token_id, 0)

    def topic_messages(self, topic_id: str) -> List[str]:
        return list(self._topics[topic_id].messages)

    # ------------------------------------------------------------------
    # LedgerTransport
    # ------------------------------------------------------------------

    def _check_online(self) -> None:
        if self.offline:
            raise NetworkError("Simulated ledger is offline", endpoint="memory")

    async def submit(self, signed: SignedTransaction) -> SubmitResponse:
        self._check_online()
        async with self._lock:
            self.submissions.append(signed)
            status = self._precheck(signed)
            if status != PRECHECK_OK:
                logger.info(f"Simulated precheck rejected {signed.transaction_id}: {status}")
                return SubmitResponse(signed.transaction_id, status)

            tx = signed.transaction
            self._seen_transaction_ids.add(tx.transaction_id)

            # The fee is charged whether or not the transaction succeeds
            payer = self._accounts[tx.payer_account_id]
            payer.balance -= self.fee_tinybars
            self._accounts[self.node_account_id].balance += self.fee_tinybars

            receipt = self._apply(tx.transaction_id, tx.spec)
            self._receipts[tx.transaction_id] = receipt
            self._pending_polls[tx.transaction_id] = self.receipt_delay_polls
            return SubmitResponse(signed.transaction_id, PRECHECK_OK)

    def _precheck(self, signed: SignedTransaction) -> str:
        tx = signed.transaction
        if tx.network != self.network:
            return "INVALID_TRANSACTION"
        if tx.transaction_id in self._seen_transaction_ids:
            return "DUPLICATE_TRANSACTION"

        payer = self._accounts.get(tx.payer_account_id)
        if payer is None:
            return "PAYER_ACCOUNT_NOT_FOUND"
        if payer.public_key_hex is None or payer.public_key_hex != signed.public_key_hex:
            return "INVALID_SIGNATURE"
        if not verify_signature(signed.public_key_hex, tx.body_bytes(), signed.signature):
            return "INVALID_SIGNATURE"
        if tx.max_transaction_fee < self.fee_tinybars:
            return "INSUFFICIENT_TX_FEE"
        if payer.balance < self.fee_tinybars:
            return "INSUFFICIENT_PAYER_BALANCE"
        return PRECHECK_OK

    def _apply(self, transaction_id: str, spec: TransactionSpec) -> Receipt:
        handler = {
            TransactionKind.CRYPTO_TRANSFER: self._apply_crypto_transfer,
            TransactionKind.TOKEN_TRANSFER: self._apply_token_transfer,
            TransactionKind.TOKEN_ASSOCIATE: self._apply_token_associate,
            TransactionKind.SWAP: self._apply_swap,
            TransactionKind.STAKE: self._apply_stake,
            TransactionKind.TOPIC_CREATE: self._apply_topic_create,
            TransactionKind.TOPIC_MESSAGE: self._apply_topic_message,
        }[spec.kind]

        status, entity_id, details = handler(spec)
        return Receipt(
            transaction_id=transaction_id,
            status=status,
            entity_id=entity_id,
            consensus_timestamp=transaction_id.split("@", 1)[1],
            details=details,
        )

    def _apply_crypto_transfer(self, spec: TransactionSpec):
        payer = self._accounts[spec.operator_account]
        receiver = self._accounts.get(spec.counterparty_account)
        if receiver is None:
            return "INVALID_ACCOUNT_ID", None, {}
        if payer.balance < spec.amount:
            return "INSUFFICIENT_ACCOUNT_BALANCE", None, {}
        payer.balance -= spec.amount
        receiver.balance += spec.amount
        return SUCCESS_STATUS, None, {}

    def _apply_token_transfer(self, spec: TransactionSpec):
        if spec.token_id not in self._tokens:
            return "INVALID_TOKEN_ID", None, {}
        payer = self._accounts[spec.operator_account]
        receiver = self._accounts.get(spec.counterparty_account)
        if receiver is None:
            return "INVALID_ACCOUNT_ID", None, {}
        if spec.token_id not in payer.tokens or spec.token_id not in receiver.tokens:
            return "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT", None, {}
        if payer.tokens[spec.token_id] < spec.amount:
            return "INSUFFICIENT_TOKEN_BALANCE", None, {}
        payer.tokens[spec.token_id] -= spec.amount
        receiver.tokens[spec.token_id] += spec.amount
        return SUCCESS_STATUS, None, {}

    def _apply_token_associate(self, spec: TransactionSpec):
        if spec.token_id not in self._tokens:
            return "INVALID_TOKEN_ID", None, {}
        payer = self._accounts[spec.operator_account]
        if spec.token_id in payer.tokens:
            return "TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT", None, {}
        payer.tokens[spec.token_id] = 0
        return SUCCESS_STATUS, None, {}

    def _symbol_and_decimals(self, token_id: Optional[str]) -> Optional[Tuple[str, int]]:
        if token_id is None:
            return HBAR_SYMBOL, HBAR_DECIMALS
        token = self._tokens.get(token_id)
        if token is None:
            return None
        return token.symbol, token.decimals

    def _apply_swap(self, spec: TransactionSpec):
        source = self._symbol_and_decimals(spec.token_id)
        target = self._symbol_and_decimals(spec.output_token_id)
        if source is None or target is None:
            return "INVALID_TOKEN_ID", None, {}

        rate = self.swap_rates.get((source[0], target[0]))
        if rate is None:
            return "CONTRACT_REVERT_EXECUTED", None, {"reason": f"No route {source[0]} -> {target[0]}"}

        payer = self._accounts[spec.operator_account]
        if spec.output_token_id is not None and spec.output_token_id not in payer.tokens:
            return "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT", None, {}

        if spec.token_id is None:
            if payer.balance < spec.amount:
                return "INSUFFICIENT_ACCOUNT_BALANCE", None, {}
        elif payer.tokens.get(spec.token_id, 0) < spec.amount:
            return "INSUFFICIENT_TOKEN_BALANCE", None, {}

        output = from_smallest_unit(spec.amount, source[1]) * rate
        output_amount = to_smallest_unit(output.quantize(Decimal(1).scaleb(-target[1]), rounding=ROUND_DOWN), target[1])

        if spec.token_id is None:
            payer.balance -= spec.amount
        else:
            payer.tokens[spec.token_id] -= spec.amount
        if spec.output_token_id is None:
            payer.balance += output_amount
        else:
            payer.tokens[spec.output_token_id] += output_amount

        return SUCCESS_STATUS, None, {"outputAmount": output_amount, "rate": str(rate)}

    def _apply_stake(self, spec: TransactionSpec):
        payer = self._accounts[spec.operator_account]
        staked_to = spec.counterparty_account or DEFAULT_NODE_ACCOUNT_ID
        if staked_to not in self._accounts:
            return "INVALID_STAKING_ID", None, {}
        if payer.balance < spec.amount:
            return "INSUFFICIENT_ACCOUNT_BALANCE", None, {}
        payer.staked_account_id = staked_to
        payer.staked_amount = spec.amount
        return SUCCESS_STATUS, None, {"stakedAccountId": staked_to}

    def _apply_topic_create(self, spec: TransactionSpec):
        topic_id = self.create_topic(spec.memo or "")
        return SUCCESS_STATUS, topic_id, {}

    def _apply_topic_message(self, spec: TransactionSpec):
        topic = self._topics.get(spec.topic_id)
        if topic is None:
            return "INVALID_TOPIC_ID", None, {}
        topic.messages.append(spec.message)
        return SUCCESS_STATUS, None, {"topicSequenceNumber": len(topic.messages)}

    async def get_receipt(self, transaction_id: str) -> Optional[Receipt]:
        self._check_online()
        remaining = self._pending_polls.get(transaction_id, 0)
        if remaining > 0:
            self._pending_polls[transaction_id] = remaining - 1
            return None
        return self._receipts.get(transaction_id)

    async def get_account(self, account_id: str) -> AccountSnapshot:
        self._check_online()
        account = self._accounts.get(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found", entity_id=account_id)
        return AccountSnapshot(
            account_id=account.account_id,
            balance=account.balance,
            tokens=dict(account.tokens),
            staked_account_id=account.staked_account_id,
        )

    async def get_token(self, token_id: str) -> TokenSnapshot:
        self._check_online()
        token = self._tokens.get(token_id)
        if token is None:
            raise NotFoundError(f"Token {token_id} not found", entity_id=token_id)
        return token

    async def get_topic(self, topic_id: str) -> TopicSnapshot:
        self._check_online()
        topic = self._topics.get(topic_id)
        if topic is None:
            raise NotFoundError(f"Topic {topic_id} not found", entity_id=topic_id)
        return TopicSnapshot(topic_id=topic.topic_id, memo=topic.memo, sequence_number=len(topic.messages))

    async def ready(self) -> bool:
        return not self.offline
