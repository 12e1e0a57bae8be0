"""
Ledger session: network, operator identity, fee ceilings and the signer.

Created once by the gateway and never mutated afterwards; replacing it is
an explicit reconfiguration.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime

from .constants import (
    DEFAULT_NODE_ACCOUNT_ID,
    MAX_QUERY_PAYMENT_TINYBARS,
    MAX_TRANSACTION_FEE_TINYBARS,
    TRANSACTION_VALID_DURATION_SECONDS,
)
from .models import FrozenTransaction, Network, SignedTransaction, TransactionSpec, utc_now
from .signer import Signer


_valid_start_lock = threading.Lock()
_last_valid_start_ns = 0


def _next_valid_start_ns() -> int:
    """Strictly increasing wall-clock nanos so transaction ids never repeat."""
    global _last_valid_start_ns
    with _valid_start_lock:
        now = time.time_ns()
        if now <= _last_valid_start_ns:
            now = _last_valid_start_ns + 1
        _last_valid_start_ns = now
        return now


@dataclass(frozen=True)
class LedgerSession:
    network: Network
    operator_account_id: str
    signer: Signer = field(repr=False, compare=False)
    max_transaction_fee: int = MAX_TRANSACTION_FEE_TINYBARS
    max_query_payment: int = MAX_QUERY_PAYMENT_TINYBARS
    node_account_id: str = DEFAULT_NODE_ACCOUNT_ID
    valid_duration_seconds: int = TRANSACTION_VALID_DURATION_SECONDS
    initialized_at: datetime = field(default_factory=utc_now)

    @property
    def public_key_hex(self) -> str:
        return self.signer.public_key_hex

    def new_transaction_id(self) -> str:
        """``<operator>@<seconds>.<nanos>``, unique per call."""
        seconds, nanos = divmod(_next_valid_start_ns(), 1_000_000_000)
        return f"{self.operator_account_id}@{seconds}.{nanos:09d}"

    def freeze(self, spec: TransactionSpec) -> FrozenTransaction:
        transaction_id = self.new_transaction_id()
        return FrozenTransaction(
            transaction_id=transaction_id,
            node_account_id=self.node_account_id,
            max_transaction_fee=self.max_transaction_fee,
            valid_start=transaction_id.split("@", 1)[1],
            valid_duration_seconds=self.valid_duration_seconds,
            network=self.network,
            spec=spec,
        )

    def sign(self, transaction: FrozenTransaction) -> SignedTransaction:
        if transaction.payer_account_id != self.operator_account_id:
            raise ValueError(
                f"Transaction {transaction.transaction_id} was not frozen by this session"
            )
        return SignedTransaction(
            transaction=transaction,
            signature=self.signer.sign(transaction.body_bytes()),
            public_key_hex=self.signer.public_key_hex,
        )
