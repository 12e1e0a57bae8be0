import pytest
from fastapi.testclient import TestClient

from ledgerchat.api.dependencies import get_classifier, get_directory, get_gateway, get_orchestrator
from ledgerchat.core.conversation import ConversationOrchestrator, SessionStore
from ledgerchat.core.execution import ActionExecutor
from ledgerchat.core.intents import ArgumentValidator, Directory
from ledgerchat.core.ledger import InMemoryLedger, LedgerGateway, Network
from ledgerchat.core.recovery import ExponentialBackoffStrategy
from ledgerchat.main import app
from ledgerchat.providers.classifier import KeywordIntentClassifier

client = TestClient(app)

OPERATOR_ID = "0.0.1001"
ALEX_ID = "0.0.4515512"
HBAR = 10 ** 8


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(Network.TESTNET)


@pytest.fixture(autouse=True)
def services(ledger):
    gateway = LedgerGateway(
        transport_factory=lambda network: ledger,
        receipt_poll_interval_seconds=0.01,
        query_retry=ExponentialBackoffStrategy(max_attempts=1, initial_delay=0),
    )
    session = gateway.initialize("testnet", OPERATOR_ID, "6a" * 32)
    ledger.create_account(OPERATOR_ID, balance=1_000 * HBAR, public_key_hex=session.public_key_hex)
    ledger.create_account(ALEX_ID)

    directory = Directory.from_mapping({"Alex": ALEX_ID})
    validator = ArgumentValidator(directory)
    classifier = KeywordIntentClassifier()
    orchestrator = ConversationOrchestrator(
        classifier=classifier,
        executor=ActionExecutor(gateway, directory, validator),
        validator=validator,
        store=SessionStore(),
        max_rounds=3,
    )

    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_directory] = lambda: directory
    app.dependency_overrides[get_classifier] = lambda: classifier
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield
    app.dependency_overrides.clear()


def process(message: str, session_id: str = "s1") -> dict:
    resp = client.post("/intents/process", json={"message": message, "userId": "u1", "sessionId": session_id})
    assert resp.status_code == 200, resp.json()
    return resp.json()


def test_complete_transfer_executes(ledger):
    data = process("send 5 HBAR to Alex")

    assert data["type"] == "actionComplete"
    assert data["sessionId"] == "s1"
    assert data["actionResult"]["status"] == "success"
    assert data["actionResult"]["receiptStatus"] == "SUCCESS"
    assert data["intent"]["extractedArgs"]["recipient"] == "Alex"
    assert ledger.balance_of(ALEX_ID) == 5 * HBAR


def test_argument_request_then_form_submission(ledger):
    request = process("send some HBAR")

    assert request["type"] == "argumentRequest"
    assert sorted(request["interactive"]["missingArgs"]) == ["amount", "recipient"]
    assert request["interactive"]["maxRounds"] == 3
    recipient = next(c for c in request["interactive"]["components"] if c["argName"] == "recipient")
    assert recipient["type"] == "choice"
    assert "Alex" in {option["value"] for option in recipient["options"]}

    resp = client.post(
        "/intents/interactive-response",
        json={"sessionId": "s1", "userResponses": {"recipient": "Alex", "amount": "2"}},
    )

    assert resp.status_code == 200
    assert resp.json()["type"] == "actionComplete"
    assert ledger.balance_of(ALEX_ID) == 2 * HBAR


def test_stateless_interactive_response(ledger):
    request = process("send 3 HBAR", session_id="first")

    resp = client.post(
        "/intents/interactive-response",
        json={
            "sessionId": "second",
            "originalIntent": request["originalIntent"],
            "userResponses": {"recipient": "Alex"},
        },
    )

    assert resp.json()["type"] == "actionComplete"
    assert ledger.balance_of(ALEX_ID) == 3 * HBAR


def test_cancel_endpoint(ledger):
    process("send 5 HBAR")

    resp = client.post("/intents/cancel", json={"sessionId": "s1"})

    assert resp.status_code == 200
    assert resp.json()["type"] == "cancelled"
    assert resp.json()["reason"] == "user_cancelled"
    assert ledger.submissions == []

    again = client.post("/intents/cancel", json={"sessionId": "s1"})
    assert again.json()["reason"] == "nothing_pending"


def test_cancel_word_in_chat(ledger):
    process("send 5 HBAR")

    data = process("never mind")

    assert data["type"] == "cancelled"
    assert ledger.submissions == []


def test_failed_precheck_is_action_error(ledger):
    data = process("send 5000 HBAR to Alex")

    assert data["type"] == "actionError"
    assert data["actionResult"]["status"] == "failed_validation"
    assert ledger.submissions == []


def test_information_passthrough():
    data = process("what is hedera?")

    assert data["type"] == "information"
    assert data["classification"]["classificationType"] == "information"


def test_session_id_is_generated():
    resp = client.post("/intents/process", json={"message": "what is hedera?"})

    assert resp.status_code == 200
    assert resp.json()["sessionId"]


def test_empty_message_is_rejected():
    resp = client.post("/intents/process", json={"message": "", "sessionId": "s1"})
    assert resp.status_code == 422


def test_interactive_response_without_pending_intent():
    resp = client.post("/intents/interactive-response", json={"sessionId": "nobody", "userResponses": {}})

    assert resp.json()["type"] == "actionError"
    assert resp.json()["error"] == "no_pending_intent"


def test_contacts_and_tokens():
    data = client.get("/intents/contacts-tokens").json()

    assert data["allContacts"][0] == {"name": "Alex", "accountId": ALEX_ID, "category": "Personal Contacts"}
    assert "HBAR" in {token["symbol"] for token in data["allTokens"]}


def test_supported_actions():
    actions = client.get("/intents/supported-actions").json()["actions"]

    assert set(actions) == {"transfer", "swap", "associateToken", "stake", "createTopic", "sendMessage"}


def test_health_check():
    resp = client.get("/healthz")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["total_providers"] == 2
    assert data["providers"]["ledger"]["network"] == "testnet"
    assert data["providers"]["classifier"]["classifier"] == "keyword"
