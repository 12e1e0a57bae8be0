import pytest
from fastapi.testclient import TestClient

from ledgerchat.api.dependencies import get_gateway
from ledgerchat.core.ledger import InMemoryLedger, LedgerGateway, Network
from ledgerchat.core.recovery import ExponentialBackoffStrategy
from ledgerchat.main import app

client = TestClient(app)

OPERATOR_ID = "0.0.1001"
ALEX_ID = "0.0.4515512"
HBAR = 10 ** 8


@pytest.fixture
def ledger() -> InMemoryLedger:
    ledger = InMemoryLedger(Network.TESTNET)
    ledger.create_account(ALEX_ID)
    return ledger


@pytest.fixture
def gateway(ledger) -> LedgerGateway:
    return LedgerGateway(
        transport_factory=lambda network: ledger,
        receipt_poll_interval_seconds=0.01,
        query_retry=ExponentialBackoffStrategy(max_attempts=1, initial_delay=0),
    )


@pytest.fixture
def operator(gateway, ledger):
    session = gateway.initialize("testnet", OPERATOR_ID, "3f" * 32)
    ledger.create_account(OPERATOR_ID, balance=250 * HBAR, public_key_hex=session.public_key_hex)
    return session


@pytest.fixture(autouse=True)
def override_gateway(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield
    app.dependency_overrides.clear()


def test_balance_defaults_to_operator(operator):
    resp = client.get("/ledger/balance")

    assert resp.status_code == 200
    data = resp.json()
    assert data["accountId"] == OPERATOR_ID
    assert data["balanceSmallestUnit"] == 250 * HBAR
    assert data["balanceFormatted"] == "250 HBAR"


def test_balance_of_unknown_account(operator):
    resp = client.get("/ledger/balance", params={"accountId": "0.0.404"})

    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "not_found"


def test_balance_when_ledger_unreachable(operator, ledger):
    ledger.offline = True

    resp = client.get("/ledger/balance", params={"accountId": ALEX_ID})

    assert resp.status_code == 502
    assert resp.json()["detail"]["error"] == "network"


def test_balance_before_initialization():
    resp = client.get("/ledger/balance")

    assert resp.status_code == 503
    assert resp.json()["detail"]["error"] == "not_initialized"


def test_transfer(operator, ledger):
    resp = client.post("/ledger/transfer", json={"toAccountId": ALEX_ID, "amount": "1.25"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "SUCCESS"
    assert data["from"] == OPERATOR_ID
    assert data["to"] == ALEX_ID
    assert data["amountSmallestUnit"] == 125_000_000
    assert data["transactionId"].startswith(f"{OPERATOR_ID}@")
    assert ledger.balance_of(ALEX_ID) == 125_000_000


def test_transfer_failing_at_consensus(operator, ledger):
    resp = client.post("/ledger/transfer", json={"toAccountId": ALEX_ID, "amount": "10000"})

    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["status"] == "INSUFFICIENT_ACCOUNT_BALANCE"
    assert detail["transactionId"]
    assert ledger.balance_of(ALEX_ID) == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"toAccountId": "alex", "amount": "1"},
        {"toAccountId": ALEX_ID, "amount": "0"},
        {"toAccountId": ALEX_ID, "amount": "-3"},
        {"toAccountId": ALEX_ID},
    ],
)
def test_transfer_request_validation(operator, ledger, payload):
    resp = client.post("/ledger/transfer", json=payload)

    assert resp.status_code == 422
    assert ledger.submissions == []


def test_transfer_with_too_many_decimals(operator, ledger):
    resp = client.post("/ledger/transfer", json={"toAccountId": ALEX_ID, "amount": "0.000000001"})

    assert resp.status_code == 422
    assert resp.json()["detail"]["error"] == "invalid_request"
    assert ledger.submissions == []


def test_operator(operator):
    data = client.get("/ledger/operator").json()

    assert data["initialized"] is True
    assert data["network"] == "testnet"
    assert data["operatorAccountId"] == OPERATOR_ID
    assert data["publicKey"] == operator.public_key_hex
    assert data["maxTransactionFee"] == 100 * HBAR
    assert data["maxQueryPayment"] == 50 * HBAR
    assert "privateKey" not in data


def test_operator_before_initialization():
    data = client.get("/ledger/operator").json()

    assert data["initialized"] is False
    assert data["operatorAccountId"] is None


def test_request_id_is_echoed(operator):
    resp = client.get("/ledger/operator", headers={"x-request-id": "req-42"})

    assert resp.headers["x-request-id"] == "req-42"
    assert client.get("/ledger/operator").headers["x-request-id"]
