"""
Tests for the simulated ledger

Covers node prechecks, fee charging and transaction effects.
"""

import pytest

from ledgerchat.core.ledger import (
    InMemoryLedger,
    LedgerSession,
    Network,
    Signer,
    TransactionKind,
    TransactionSpec,
)
from ledgerchat.core.recovery import NetworkError, NotFoundError


OPERATOR_ID = "0.0.1001"
ALEX_ID = "0.0.4515512"
USDC_ID = "0.0.456858"
HBAR = 10 ** 8
FEE = 100_000


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def signer() -> Signer:
    return Signer.from_private_key("2a" * 32)


@pytest.fixture
def session(signer: Signer) -> LedgerSession:
    return LedgerSession(network=Network.TESTNET, operator_account_id=OPERATOR_ID, signer=signer)


@pytest.fixture
def ledger(session: LedgerSession) -> InMemoryLedger:
    ledger = InMemoryLedger(Network.TESTNET, fee_tinybars=FEE)
    ledger.create_account(OPERATOR_ID, balance=100 * HBAR, public_key_hex=session.public_key_hex)
    ledger.create_account(ALEX_ID)
    ledger.create_token("USDC", "USD Coin", 6, token_id=USDC_ID)
    return ledger


def hbar_transfer(amount: int, to: str = ALEX_ID) -> TransactionSpec:
    return TransactionSpec(
        kind=TransactionKind.CRYPTO_TRANSFER,
        operator_account=OPERATOR_ID,
        counterparty_account=to,
        amount=amount,
    )


async def submit_and_receipt(ledger: InMemoryLedger, session: LedgerSession, spec: TransactionSpec):
    signed = session.sign(session.freeze(spec))
    response = await ledger.submit(signed)
    receipt = await ledger.get_receipt(signed.transaction_id) if response.accepted else None
    return response, receipt


# =============================================================================
# Prechecks
# =============================================================================

class TestPrechecks:
    """Tests for submission-time rejections."""

    @pytest.mark.asyncio
    async def test_valid_transfer_is_accepted(self, ledger, session):
        response, receipt = await submit_and_receipt(ledger, session, hbar_transfer(5 * HBAR))

        assert response.precheck_status == "OK"
        assert receipt.status == "SUCCESS"
        assert ledger.balance_of(OPERATOR_ID) == 95 * HBAR - FEE
        assert ledger.balance_of(ALEX_ID) == 5 * HBAR
        assert ledger.balance_of(ledger.node_account_id) == FEE

    @pytest.mark.asyncio
    async def test_duplicate_transaction(self, ledger, session):
        signed = session.sign(session.freeze(hbar_transfer(HBAR)))

        await ledger.submit(signed)
        response = await ledger.submit(signed)

        assert response.precheck_status == "DUPLICATE_TRANSACTION"
        assert ledger.balance_of(ALEX_ID) == HBAR

    @pytest.mark.asyncio
    async def test_wrong_key_is_invalid_signature(self, ledger):
        impostor = LedgerSession(network=Network.TESTNET, operator_account_id=OPERATOR_ID, signer=Signer.generate())

        response, _ = await submit_and_receipt(ledger, impostor, hbar_transfer(HBAR))

        assert response.precheck_status == "INVALID_SIGNATURE"
        assert ledger.balance_of(OPERATOR_ID) == 100 * HBAR

    @pytest.mark.asyncio
    async def test_network_mismatch(self, ledger, signer):
        mainnet = LedgerSession(network=Network.MAINNET, operator_account_id=OPERATOR_ID, signer=signer)

        response, _ = await submit_and_receipt(ledger, mainnet, hbar_transfer(HBAR))

        assert response.precheck_status == "INVALID_TRANSACTION"

    @pytest.mark.asyncio
    async def test_unknown_payer(self, ledger, signer):
        stranger = LedgerSession(network=Network.TESTNET, operator_account_id="0.0.999999", signer=signer)
        spec = TransactionSpec(
            kind=TransactionKind.CRYPTO_TRANSFER,
            operator_account="0.0.999999",
            counterparty_account=ALEX_ID,
            amount=1,
        )

        response, _ = await submit_and_receipt(ledger, stranger, spec)

        assert response.precheck_status == "PAYER_ACCOUNT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_payer_cannot_cover_fee(self, ledger, session):
        ledger.create_account(OPERATOR_ID, balance=FEE - 1, public_key_hex=session.public_key_hex)

        response, _ = await submit_and_receipt(ledger, session, hbar_transfer(1))

        assert response.precheck_status == "INSUFFICIENT_PAYER_BALANCE"

    @pytest.mark.asyncio
    async def test_offline_ledger_raises_network_error(self, ledger, session):
        ledger.offline = True
        with pytest.raises(NetworkError):
            await submit_and_receipt(ledger, session, hbar_transfer(1))


# =============================================================================
# Effects
# =============================================================================

class TestEffects:
    """Tests for receipt statuses and state changes."""

    @pytest.mark.asyncio
    async def test_overspend_charges_fee_only(self, ledger, session):
        _, receipt = await submit_and_receipt(ledger, session, hbar_transfer(1_000 * HBAR))

        assert receipt.status == "INSUFFICIENT_ACCOUNT_BALANCE"
        assert receipt.is_success is False
        assert ledger.balance_of(OPERATOR_ID) == 100 * HBAR - FEE
        assert ledger.balance_of(ALEX_ID) == 0

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, ledger, session):
        _, receipt = await submit_and_receipt(ledger, session, hbar_transfer(HBAR, to="0.0.777"))
        assert receipt.status == "INVALID_ACCOUNT_ID"

    @pytest.mark.asyncio
    async def test_token_transfer_requires_association(self, ledger, session):
        ledger.associate(OPERATOR_ID, USDC_ID, 10 * 10 ** 6)
        spec = TransactionSpec(
            kind=TransactionKind.TOKEN_TRANSFER,
            operator_account=OPERATOR_ID,
            counterparty_account=ALEX_ID,
            token_id=USDC_ID,
            amount=10 ** 6,
        )

        _, receipt = await submit_and_receipt(ledger, session, spec)
        assert receipt.status == "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT"

        ledger.associate(ALEX_ID, USDC_ID)
        _, receipt = await submit_and_receipt(ledger, session, spec)
        assert receipt.status == "SUCCESS"
        assert ledger.balance_of(ALEX_ID, USDC_ID) == 10 ** 6

    @pytest.mark.asyncio
    async def test_associate_twice(self, ledger, session):
        spec = TransactionSpec(kind=TransactionKind.TOKEN_ASSOCIATE, operator_account=OPERATOR_ID, token_id=USDC_ID)

        _, first = await submit_and_receipt(ledger, session, spec)
        _, second = await submit_and_receipt(ledger, session, spec)

        assert first.status == "SUCCESS"
        assert second.status == "TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT"

    @pytest.mark.asyncio
    async def test_swap_hbar_for_usdc(self, ledger, session):
        ledger.associate(OPERATOR_ID, USDC_ID)
        spec = TransactionSpec(
            kind=TransactionKind.SWAP,
            operator_account=OPERATOR_ID,
            output_token_id=USDC_ID,
            amount=10 * HBAR,
            slippage_bps=200,
        )

        _, receipt = await submit_and_receipt(ledger, session, spec)

        assert receipt.status == "SUCCESS"
        assert receipt.details["outputAmount"] == 650_000   # 10 HBAR * 0.065
        assert ledger.balance_of(OPERATOR_ID, USDC_ID) == 650_000

    @pytest.mark.asyncio
    async def test_swap_without_route_reverts(self, ledger, session):
        wbtc = ledger.create_token("WBTC", "Wrapped BTC", 8)
        ledger.associate(OPERATOR_ID, wbtc)
        spec = TransactionSpec(kind=TransactionKind.SWAP, operator_account=OPERATOR_ID, output_token_id=wbtc, amount=HBAR)

        _, receipt = await submit_and_receipt(ledger, session, spec)

        assert receipt.status == "CONTRACT_REVERT_EXECUTED"

    @pytest.mark.asyncio
    async def test_stake_defaults_to_node(self, ledger, session):
        spec = TransactionSpec(kind=TransactionKind.STAKE, operator_account=OPERATOR_ID, amount=HBAR)

        _, receipt = await submit_and_receipt(ledger, session, spec)

        assert receipt.status == "SUCCESS"
        assert receipt.details["stakedAccountId"] == "0.0.3"

    @pytest.mark.asyncio
    async def test_topic_lifecycle(self, ledger, session):
        create = TransactionSpec(kind=TransactionKind.TOPIC_CREATE, operator_account=OPERATOR_ID, memo="alerts")
        _, created = await submit_and_receipt(ledger, session, create)
        topic_id = created.entity_id

        message = TransactionSpec(
            kind=TransactionKind.TOPIC_MESSAGE,
            operator_account=OPERATOR_ID,
            topic_id=topic_id,
            message="hello",
        )
        _, sent = await submit_and_receipt(ledger, session, message)

        assert sent.details["topicSequenceNumber"] == 1
        assert ledger.topic_messages(topic_id) == ["hello"]
        topic = await ledger.get_topic(topic_id)
        assert topic.memo == "alerts"

    @pytest.mark.asyncio
    async def test_receipt_delay(self, session):
        ledger = InMemoryLedger(Network.TESTNET, receipt_delay_polls=2)
        ledger.create_account(OPERATOR_ID, balance=HBAR, public_key_hex=session.public_key_hex)
        ledger.create_account(ALEX_ID)
        signed = session.sign(session.freeze(hbar_transfer(1)))
        await ledger.submit(signed)

        assert await ledger.get_receipt(signed.transaction_id) is None
        assert await ledger.get_receipt(signed.transaction_id) is None
        assert (await ledger.get_receipt(signed.transaction_id)).status == "SUCCESS"


class TestQueries:

    @pytest.mark.asyncio
    async def test_account_snapshot(self, ledger):
        ledger.associate(OPERATOR_ID, USDC_ID, 42)
        snapshot = await ledger.get_account(OPERATOR_ID)

        assert snapshot.balance == 100 * HBAR
        assert snapshot.tokens == {USDC_ID: 42}

    @pytest.mark.asyncio
    async def test_missing_entities_raise_not_found(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.get_account("0.0.123")
        with pytest.raises(NotFoundError):
            await ledger.get_token("0.0.124")
        with pytest.raises(NotFoundError):
            await ledger.get_topic("0.0.125")
