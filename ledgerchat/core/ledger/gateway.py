"""
Ledger gateway.

Single entry point to the ledger network. Holds the process-wide session
(and with it the only reference to the operator signer), runs every
transaction through build -> freeze -> sign -> submit -> receipt, and
wraps all network calls in ``LedgerResult`` so callers branch on values
rather than exceptions.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Union

from ...config import Settings, settings as default_settings
from ..recovery.errors import (
    ConfigurationError,
    ErrorCategory,
    NotFoundError,
    RecoverableError,
    TimeoutError,
    classify_error,
)
from ..recovery.strategies import ExponentialBackoffStrategy, RetryStrategy
from .constants import HBAR_DECIMALS
from .memory import InMemoryLedger
from .models import (
    AccountBalance,
    AccountSnapshot,
    LedgerErrorKind,
    LedgerResult,
    Network,
    QueryKind,
    QueryTarget,
    Receipt,
    TransactionKind,
    TransactionSpec,
    TransferResult,
)
from .session import LedgerSession
from .signer import Signer
from .transport import LedgerTransport, MirrorNodeTransport
from .units import AmountError, to_smallest_unit

logger = logging.getLogger(__name__)

ACCOUNT_ID_PREFIX = "0.0."

TransportFactory = Callable[[Network], LedgerTransport]


def build_transport(network: Network, config: Optional[Settings] = None) -> LedgerTransport:
    """Create the transport selected by configuration."""
    config = config or default_settings
    if config.uses_memory_ledger:
        return InMemoryLedger(network)
    return MirrorNodeTransport(
        network,
        base_url=config.mirror_node_url or None,
        submit_url=config.ledger_submit_url or None,
        timeout_s=config.ledger_request_timeout_seconds,
    )


def _error_kind_for(error: Exception) -> LedgerErrorKind:
    if isinstance(error, NotFoundError):
        return LedgerErrorKind.NOT_FOUND
    if isinstance(error, ConfigurationError):
        return LedgerErrorKind.INVALID_REQUEST
    category = classify_error(error).category
    if category == ErrorCategory.TIMEOUT:
        return LedgerErrorKind.TIMEOUT
    if category in (ErrorCategory.NETWORK, ErrorCategory.RATE_LIMIT):
        return LedgerErrorKind.NETWORK
    if category == ErrorCategory.NOT_FOUND:
        return LedgerErrorKind.NOT_FOUND
    return LedgerErrorKind.NETWORK if isinstance(error, RecoverableError) else LedgerErrorKind.INVALID_REQUEST


class LedgerGateway:
    """
    Uniform capability over the ledger network.

    Responsibilities:
    - Own the ledger session (network, operator, fee ceilings, signer)
    - Build, freeze, sign and submit transactions, then wait for receipts
    - Serve read-only queries with retry on transient failures
    """

    def __init__(
        self,
        transport_factory: Optional[TransportFactory] = None,
        *,
        receipt_timeout_seconds: float = 30.0,
        receipt_poll_interval_seconds: float = 1.0,
        query_retry: Optional[RetryStrategy] = None,
    ):
        self._transport_factory = transport_factory or build_transport
        self.receipt_timeout_seconds = receipt_timeout_seconds
        self.receipt_poll_interval_seconds = receipt_poll_interval_seconds
        self.query_retry = query_retry or ExponentialBackoffStrategy(max_attempts=3, logger=logger)

        self._session: Optional[LedgerSession] = None
        self._transport: Optional[LedgerTransport] = None

    @property
    def session(self) -> Optional[LedgerSession]:
        return self._session

    @property
    def transport(self) -> Optional[LedgerTransport]:
        return self._transport

    @property
    def is_initialized(self) -> bool:
        return self._session is not None

    @property
    def can_submit(self) -> bool:
        return self._transport is not None and self._transport.can_submit

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        network: Union[Network, str],
        operator_id: str,
        operator_key: str,
        transport: Optional[LedgerTransport] = None,
    ) -> LedgerSession:
        """
        Create the session. A second call while initialized is a no-op and
        returns the existing session.

        Raises:
            ConfigurationError: unsupported network or missing/invalid credentials
        """
        if self._session is not None:
            logger.debug("Ledger gateway already initialized; keeping existing session")
            return self._session
        return self._open_session(network, operator_id, operator_key, transport)

    async def reconfigure(
        self,
        network: Union[Network, str],
        operator_id: str,
        operator_key: str,
        transport: Optional[LedgerTransport] = None,
    ) -> LedgerSession:
        """Replace the session, e.g. to switch networks."""
        # Validate before tearing down the working session
        parsed_network = Network.parse(network)
        signer = self._parse_credentials(operator_id, operator_key)

        await self.close()
        return self._install(parsed_network, operator_id.strip(), signer, transport)

    def _open_session(self, network, operator_id, operator_key, transport) -> LedgerSession:
        parsed_network = Network.parse(network)
        signer = self._parse_credentials(operator_id, operator_key)
        return self._install(parsed_network, operator_id.strip(), signer, transport)

    @staticmethod
    def _parse_credentials(operator_id: str, operator_key: str) -> Signer:
        operator_id = (operator_id or "").strip()
        if not operator_id:
            raise ConfigurationError("Operator account id is required (HEDERA_ACCOUNT_ID)")
        if not operator_id.startswith(ACCOUNT_ID_PREFIX) or not operator_id[len(ACCOUNT_ID_PREFIX):].isdigit():
            raise ConfigurationError(f"Operator account id must look like 0.0.<num>, got {operator_id!r}")
        if not operator_key or not operator_key.strip():
            raise ConfigurationError("Operator private key is required (HEDERA_PRIVATE_KEY)")
        return Signer.from_private_key(operator_key)

    def _install(
        self,
        network: Network,
        operator_id: str,
        signer: Signer,
        transport: Optional[LedgerTransport],
    ) -> LedgerSession:
        self._transport = transport or self._transport_factory(network)
        self._session = LedgerSession(
            network=network,
            operator_account_id=operator_id,
            signer=signer,
        )
        logger.info(
            f"Ledger session initialized: network={network.value}, operator={operator_id}, "
            f"transport={self._transport.name}"
        )
        return self._session

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.close()
        self._transport = None
        self._session = None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def execute(self, spec: TransactionSpec) -> LedgerResult[Receipt]:
        """
        Build, freeze, sign, submit and wait for the receipt.

        Submission is attempted exactly once. A receipt with a non-SUCCESS
        status is still returned as ``Ok``; the caller decides what it means.
        """
        session, transport = self._session, self._transport
        if session is None or transport is None:
            return LedgerResult.fail(LedgerErrorKind.NOT_INITIALIZED, "Ledger gateway is not initialized")

        if spec.operator_account != session.operator_account_id:
            return LedgerResult.fail(
                LedgerErrorKind.INVALID_REQUEST,
                f"Transaction payer {spec.operator_account} is not the session operator",
            )

        frozen = session.freeze(spec)
        signed = session.sign(frozen)
        transaction_id = signed.transaction_id

        try:
            response = await transport.submit(signed)
        except Exception as e:
            kind = _error_kind_for(e)
            logger.error(f"Submission of {transaction_id} failed ({kind.value}): {e}")
            return LedgerResult.fail(kind, str(e), transaction_id=transaction_id)

        if not response.accepted:
            logger.warning(
                f"Transaction {transaction_id} rejected at precheck: {response.precheck_status}"
            )
            return LedgerResult.fail(
                LedgerErrorKind.REJECTED,
                f"Transaction rejected: {response.precheck_status}",
                status=response.precheck_status,
                transaction_id=transaction_id,
            )

        return await self._await_receipt(transport, transaction_id)

    async def _await_receipt(self, transport: LedgerTransport, transaction_id: str) -> LedgerResult[Receipt]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.receipt_timeout_seconds

        while True:
            try:
                receipt = await transport.get_receipt(transaction_id)
                if receipt is not None:
                    log = logger.info if receipt.is_success else logger.warning
                    log(f"Receipt for {transaction_id}: {receipt.status}")
                    return LedgerResult.of(receipt)
            except Exception as e:
                # Receipt lookups are read-only; keep polling until the deadline
                logger.warning(f"Error fetching receipt for {transaction_id}: {e}")

            if loop.time() >= deadline:
                logger.error(
                    f"No receipt for {transaction_id} after {self.receipt_timeout_seconds}s"
                )
                return LedgerResult.fail(
                    LedgerErrorKind.TIMEOUT,
                    f"Receipt timeout after {self.receipt_timeout_seconds}s",
                    transaction_id=transaction_id,
                )

            await asyncio.sleep(min(self.receipt_poll_interval_seconds, max(deadline - loop.time(), 0)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(self, target: QueryTarget) -> LedgerResult[Any]:
        """Read-only lookup; transient failures are retried with backoff."""
        transport = self._transport
        if self._session is None or transport is None:
            return LedgerResult.fail(LedgerErrorKind.NOT_INITIALIZED, "Ledger gateway is not initialized")

        readers = {
            QueryKind.ACCOUNT: transport.get_account,
            QueryKind.BALANCE: transport.get_account,
            QueryKind.TOKEN: transport.get_token,
            QueryKind.TOPIC: transport.get_topic,
        }
        reader = readers[target.kind]

        try:
            snapshot = await self.query_retry.execute(
                lambda: reader(target.entity_id),
                operation_name=f"{target.kind.value} query {target.entity_id}",
            )
        except NotFoundError as e:
            logger.debug(f"{target.kind.value} {target.entity_id} not found")
            return LedgerResult.fail(LedgerErrorKind.NOT_FOUND, e.message)
        except TimeoutError as e:
            return LedgerResult.fail(LedgerErrorKind.TIMEOUT, e.message)
        except Exception as e:
            kind = _error_kind_for(e)
            logger.warning(f"{target.kind.value} query for {target.entity_id} failed ({kind.value}): {e}")
            return LedgerResult.fail(kind, str(e))

        return LedgerResult.of(snapshot)

    async def get_account_balance(self, account_id: Optional[str] = None) -> LedgerResult[AccountBalance]:
        """Balance of ``account_id``, or of the operator when omitted."""
        if self._session is None:
            return LedgerResult.fail(LedgerErrorKind.NOT_INITIALIZED, "Ledger gateway is not initialized")

        target_id = (account_id or "").strip() or self._session.operator_account_id
        result = await self.query(QueryTarget.balance(target_id))
        if not result.is_ok:
            return LedgerResult(error=result.error)

        snapshot: AccountSnapshot = result.value
        return LedgerResult.of(
            AccountBalance(
                account_id=snapshot.account_id,
                balance_smallest_unit=snapshot.balance,
                token_balances=dict(snapshot.tokens),
            )
        )

    async def transfer(self, to_account_id: str, amount: Union[Decimal, str, int]) -> LedgerResult[TransferResult]:
        """Send ``amount`` HBAR from the operator to ``to_account_id``."""
        session = self._session
        if session is None:
            return LedgerResult.fail(LedgerErrorKind.NOT_INITIALIZED, "Ledger gateway is not initialized")

        try:
            tinybars = to_smallest_unit(amount, HBAR_DECIMALS)
            spec = TransactionSpec(
                kind=TransactionKind.CRYPTO_TRANSFER,
                operator_account=session.operator_account_id,
                counterparty_account=(to_account_id or "").strip(),
                amount=tinybars,
            )
        except (AmountError, ValueError) as e:
            return LedgerResult.fail(LedgerErrorKind.INVALID_REQUEST, str(e))

        result = await self.execute(spec)
        if not result.is_ok:
            return LedgerResult(error=result.error)

        receipt: Receipt = result.value
        return LedgerResult.of(
            TransferResult(
                transaction_id=receipt.transaction_id,
                status=receipt.status,
                from_account=session.operator_account_id,
                to_account=spec.counterparty_account,
                amount=tinybars,
            )
        )

    async def health_check(self) -> Dict[str, Any]:
        if self._session is None or self._transport is None:
            return {"status": "not_initialized", "initialized": False}
        transport_health = await self._transport.health_check()
        return {
            "status": transport_health.get("status", "unknown"),
            "initialized": True,
            "network": self._session.network.value,
            "operator": self._session.operator_account_id,
            **transport_health,
        }


# Singleton instance
_gateway: Optional[LedgerGateway] = None


def get_ledger_gateway() -> LedgerGateway:
    """Get the singleton ledger gateway instance."""
    global _gateway
    if _gateway is None:
        _gateway = LedgerGateway(
            transport_factory=lambda network: build_transport(network, default_settings),
            receipt_timeout_seconds=default_settings.receipt_timeout_seconds,
            receipt_poll_interval_seconds=default_settings.receipt_poll_interval_seconds,
            query_retry=ExponentialBackoffStrategy(
                max_attempts=default_settings.query_max_retries,
                logger=logger,
            ),
        )
    return _gateway


DEV_OPERATOR_BALANCE_TINYBARS = 10_000 * 10 ** HBAR_DECIMALS


def initialize_from_settings(
    gateway: Optional[LedgerGateway] = None,
    config: Optional[Settings] = None,
) -> LedgerSession:
    """
    Start-up initialization from configuration.

    Raises ConfigurationError when operator credentials are missing; the
    service must not start in that case.
    """
    gateway = gateway or get_ledger_gateway()
    config = config or default_settings

    if not config.has_operator_credentials:
        raise ConfigurationError(
            "Ledger operator credentials are missing: set HEDERA_ACCOUNT_ID and HEDERA_PRIVATE_KEY"
        )

    session = gateway.initialize(config.hedera_network, config.hedera_account_id, config.hedera_private_key)

    transport = gateway.transport
    if isinstance(transport, InMemoryLedger):
        _bootstrap_memory_ledger(transport, session, config)

    return session


def _bootstrap_memory_ledger(ledger: InMemoryLedger, session: LedgerSession, config: Settings) -> None:
    """Give the simulated ledger a funded operator, the known contacts and tokens."""
    from ..intents.directory import DEFAULT_TOKENS

    if ledger.has_account(session.operator_account_id):
        return

    ledger.create_account(
        session.operator_account_id,
        balance=DEV_OPERATOR_BALANCE_TINYBARS,
        public_key_hex=session.public_key_hex,
    )
    contact_ids = [a for a in config.contacts.values() if a != session.operator_account_id]
    for account_id in contact_ids:
        ledger.create_account(account_id)
    for token in DEFAULT_TOKENS:
        if token.token_id:
            ledger.create_token(token.symbol, token.name, token.decimals, token_id=token.token_id)
            ledger.associate(session.operator_account_id, token.token_id, 1_000 * 10 ** token.decimals)
            for account_id in contact_ids:
                ledger.associate(account_id, token.token_id)
    logger.info(f"Simulated ledger bootstrapped for operator {session.operator_account_id}")
