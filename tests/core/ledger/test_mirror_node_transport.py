"""
Tests for the mirror node transport, using httpx.MockTransport
"""

import json

import httpx
import pytest

from ledgerchat.core.ledger import LedgerSession, MirrorNodeTransport, Network, Signer, TransactionKind, TransactionSpec
from ledgerchat.core.ledger.transport import to_mirror_transaction_id
from ledgerchat.core.recovery import ConfigurationError, NetworkError, NotFoundError, RateLimitError


BASE_URL = "https://mirror.test"
SUBMIT_URL = "https://relay.test/submit"


def make_transport(handler, submit_url: str = SUBMIT_URL) -> MirrorNodeTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MirrorNodeTransport(Network.TESTNET, base_url=BASE_URL, submit_url=submit_url, client=client)


def signed_transfer():
    session = LedgerSession(
        network=Network.TESTNET,
        operator_account_id="0.0.1001",
        signer=Signer.from_private_key("5d" * 32),
    )
    spec = TransactionSpec(
        kind=TransactionKind.CRYPTO_TRANSFER,
        operator_account="0.0.1001",
        counterparty_account="0.0.2002",
        amount=1,
    )
    return session.sign(session.freeze(spec))


def test_mirror_transaction_id_format():
    assert to_mirror_transaction_id("0.0.5@1700000000.000000001") == "0.0.5-1700000000-000000001"


class TestReads:

    @pytest.mark.asyncio
    async def test_get_account(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/accounts/0.0.2002"
            return httpx.Response(
                200,
                json={
                    "account": "0.0.2002",
                    "balance": {"balance": 1234, "tokens": [{"token_id": "0.0.456858", "balance": 99}]},
                    "staked_account_id": None,
                    "deleted": False,
                },
            )

        snapshot = await make_transport(handler).get_account("0.0.2002")

        assert snapshot.balance == 1234
        assert snapshot.tokens == {"0.0.456858": 99}

    @pytest.mark.asyncio
    async def test_get_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_id": "0.0.456858", "symbol": "USDC", "name": "USD Coin", "decimals": "6"})

        token = await make_transport(handler).get_token("0.0.456858")

        assert token.symbol == "USDC"
        assert token.decimals == 6

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error",
        [(404, NotFoundError), (400, NotFoundError), (429, RateLimitError), (503, NetworkError)],
    )
    async def test_status_mapping(self, status, error):
        transport = make_transport(lambda request: httpx.Response(status, json={}))

        with pytest.raises(error):
            await transport.get_topic("0.0.9")

    @pytest.mark.asyncio
    async def test_connection_failure_is_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            await make_transport(handler).get_account("0.0.1")

    @pytest.mark.asyncio
    async def test_ready_swallows_errors(self):
        transport = make_transport(lambda request: httpx.Response(500))
        assert await transport.ready() is False


class TestReceipts:

    @pytest.mark.asyncio
    async def test_pending_receipt_is_none(self):
        transport = make_transport(lambda request: httpx.Response(404, json={}))
        assert await transport.get_receipt("0.0.1001@1700000000.000000001") is None

    @pytest.mark.asyncio
    async def test_receipt_status_is_verbatim(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/transactions/0.0.1001-1700000000-000000001"
            return httpx.Response(
                200,
                json={"transactions": [{"result": "INSUFFICIENT_PAYER_BALANCE", "consensus_timestamp": "1700000001.1"}]},
            )

        receipt = await make_transport(handler).get_receipt("0.0.1001@1700000000.000000001")

        assert receipt.status == "INSUFFICIENT_PAYER_BALANCE"
        assert receipt.is_success is False


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_posts_signed_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"status": "OK"})

        signed = signed_transfer()
        response = await make_transport(handler).submit(signed)

        assert response.accepted
        assert seen["transactionId"] == signed.transaction_id
        assert seen["signature"] == signed.signature.hex()

    @pytest.mark.asyncio
    async def test_precheck_status_is_passed_through(self):
        transport = make_transport(lambda request: httpx.Response(400, json={"precheckStatus": "INVALID_SIGNATURE"}))

        response = await transport.submit(signed_transfer())

        assert response.accepted is False
        assert response.precheck_status == "INVALID_SIGNATURE"

    @pytest.mark.asyncio
    async def test_submit_without_endpoint(self):
        transport = make_transport(lambda request: httpx.Response(200), submit_url="")

        assert transport.can_submit is False
        with pytest.raises(ConfigurationError):
            await transport.submit(signed_transfer())
