"""
Ledger Access Layer

- LedgerGateway: session owner; executes transactions and read-only queries
- LedgerSession / Signer: network selection, fee ceilings and key custody
- MirrorNodeTransport / InMemoryLedger: network transports
- to_smallest_unit / format_amount: exact amount scaling

Usage:
    from ledgerchat.core.ledger import get_ledger_gateway, TransactionSpec, TransactionKind

    gateway = get_ledger_gateway()
    gateway.initialize("testnet", "0.0.1234", operator_key)
    result = await gateway.execute(spec)
    if result.is_ok and result.value.is_success:
        ...
"""

from .constants import (
    HBAR_DECIMALS,
    HBAR_SYMBOL,
    MAX_QUERY_PAYMENT_TINYBARS,
    MAX_TRANSACTION_FEE_TINYBARS,
    SUCCESS_STATUS,
    TINYBARS_PER_HBAR,
    TRANSACTION_VALID_DURATION_SECONDS,
)
from .gateway import (
    LedgerGateway,
    build_transport,
    get_ledger_gateway,
    initialize_from_settings,
)
from .memory import InMemoryLedger
from .models import (
    AccountBalance,
    AccountSnapshot,
    FrozenTransaction,
    LedgerError,
    LedgerErrorKind,
    LedgerResult,
    Network,
    QueryKind,
    QueryTarget,
    Receipt,
    SignedTransaction,
    SubmitResponse,
    TokenSnapshot,
    TopicSnapshot,
    TransactionKind,
    TransactionSpec,
    TransferResult,
)
from .session import LedgerSession
from .signer import Signer, verify_signature
from .transport import LedgerTransport, MirrorNodeTransport
from .units import AmountError, format_amount, from_smallest_unit, to_smallest_unit

__all__ = [
    # Constants
    "HBAR_DECIMALS",
    "HBAR_SYMBOL",
    "MAX_QUERY_PAYMENT_TINYBARS",
    "MAX_TRANSACTION_FEE_TINYBARS",
    "SUCCESS_STATUS",
    "TINYBARS_PER_HBAR",
    "TRANSACTION_VALID_DURATION_SECONDS",
    # Gateway
    "LedgerGateway",
    "build_transport",
    "get_ledger_gateway",
    "initialize_from_settings",
    # Session and keys
    "LedgerSession",
    "Signer",
    "verify_signature",
    # Transports
    "LedgerTransport",
    "MirrorNodeTransport",
    "InMemoryLedger",
    # Models
    "AccountBalance",
    "AccountSnapshot",
    "FrozenTransaction",
    "LedgerError",
    "LedgerErrorKind",
    "LedgerResult",
    "Network",
    "QueryKind",
    "QueryTarget",
    "Receipt",
    "SignedTransaction",
    "SubmitResponse",
    "TokenSnapshot",
    "TopicSnapshot",
    "TransactionKind",
    "TransactionSpec",
    "TransferResult",
    # Units
    "AmountError",
    "format_amount",
    "from_smallest_unit",
    "to_smallest_unit",
]
