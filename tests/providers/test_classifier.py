"""
Tests for the classification clients

Keyword extraction, response parsing and the HTTP client's fallback.
"""

import json

import httpx
import pytest

from ledgerchat.core.intents import ActionType
from ledgerchat.providers.classifier import (
    ActionsClassification,
    ClassificationError,
    FeedbackClassification,
    HttpIntentClassifier,
    InformationClassification,
    KeywordIntentClassifier,
    StrategyClassification,
    UnsupportedActionError,
    build_classifier,
    classification_to_dict,
    normalize_args,
    parse_classification,
)


CLASSIFIER_URL = "https://classifier.test/classify"


# =============================================================================
# Keyword classifier
# =============================================================================

class TestKeywordClassifier:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message,action,args",
        [
            (
                "send 5 HBAR to Alex",
                ActionType.TRANSFER,
                {"amount": "5", "tokenId": "HBAR", "recipient": "Alex"},
            ),
            (
                "transfer 12.5 usdc to 0.0.4515512",
                ActionType.TRANSFER,
                {"amount": "12.5", "tokenId": "USDC", "recipient": "0.0.4515512"},
            ),
            (
                "swap 10 HBAR for USDC",
                ActionType.SWAP,
                {"amount": "10", "fromToken": "HBAR", "toToken": "USDC"},
            ),
            ("stake 500 HBAR with node 0.0.800", ActionType.STAKE, {"amount": "500", "validator": "0.0.800"}),
            ("associate token 0.0.456858", ActionType.ASSOCIATE_TOKEN, {"tokenId": "0.0.456858"}),
            ("create a topic called 'price alerts'", ActionType.CREATE_TOPIC, {"memo": "price alerts"}),
            (
                "send message 'hello' to topic 0.0.123",
                ActionType.SEND_MESSAGE,
                {"topicId": "0.0.123", "message": "hello"},
            ),
        ],
    )
    async def test_extraction(self, message, action, args):
        classification = await KeywordIntentClassifier().classify(message)

        assert isinstance(classification, ActionsClassification)
        assert classification.action_type == action
        assert classification.extracted_args == args
        assert classification.source == "keyword"

    @pytest.mark.asyncio
    async def test_missing_arguments_are_left_out(self):
        classification = await KeywordIntentClassifier().classify("send some money")

        assert classification.action_type == ActionType.TRANSFER
        assert classification.extracted_args == {}

    @pytest.mark.asyncio
    async def test_token_symbol_is_not_a_recipient(self):
        classification = await KeywordIntentClassifier().classify("convert my tokens to USDC")

        assert classification.action_type == ActionType.SWAP
        assert "recipient" not in classification.extracted_args

    @pytest.mark.asyncio
    async def test_everything_else_is_information(self):
        classification = await KeywordIntentClassifier().classify("what is the price of HBAR?")
        assert isinstance(classification, InformationClassification)

    @pytest.mark.asyncio
    async def test_health_check(self):
        health = await KeywordIntentClassifier().health_check()
        assert health == {"classifier": "keyword", "status": "healthy"}


# =============================================================================
# Response parsing
# =============================================================================

class TestParseClassification:

    def test_action_payload(self):
        classification = parse_classification(
            {
                "classificationType": "actions",
                "actionSubtype": "Transfer",
                "confidence": 0.93,
                "extractedArgs": {"recipient": "Alex", "amount": 5, "tokenId": "usdc", "memo": None},
            }
        )

        assert classification.action_type == ActionType.TRANSFER
        assert classification.extracted_args == {"recipient": "Alex", "amount": "5", "tokenId": "USDC"}
        assert classification.confidence == 0.93

    @pytest.mark.parametrize(
        "raw_type,expected",
        [("information", InformationClassification), ("strategy", StrategyClassification), ("feedback", FeedbackClassification)],
    )
    def test_non_action_payloads(self, raw_type, expected):
        assert isinstance(parse_classification({"classificationType": raw_type}), expected)

    def test_unsupported_action(self):
        with pytest.raises(UnsupportedActionError) as exc_info:
            parse_classification({"classificationType": "actions", "actionSubtype": "mintNft"})
        assert exc_info.value.action_subtype == "mintNft"

    def test_action_without_subtype(self):
        with pytest.raises(UnsupportedActionError) as exc_info:
            parse_classification({"classificationType": "actions"})
        assert exc_info.value.action_subtype == "other"

    @pytest.mark.parametrize("payload", [{"classificationType": "weather"}, {}, ["actions"]])
    def test_unusable_payloads(self, payload):
        with pytest.raises(ClassificationError):
            parse_classification(payload)

    def test_to_dict_uses_wire_names(self):
        data = classification_to_dict(
            parse_classification({"type": "action", "actionSubtype": "swap", "args": {"fromToken": "hbar"}})
        )

        assert data["classificationType"] == "actions"
        assert data["actionSubtype"] == "swap"
        assert data["extractedArgs"] == {"fromToken": "HBAR"}

    def test_normalize_args_drops_blank_and_nested_values(self):
        assert normalize_args({"amount": " 5 ", "memo": "", "extra": {"a": 1}, "toToken": "sauce"}) == {
            "amount": "5",
            "toToken": "SAUCE",
        }

    def test_normalize_args_strips_percent_from_slippage(self):
        assert normalize_args({"slippage": "2.5 %"}) == {"slippage": "2.5"}


# =============================================================================
# HTTP classifier
# =============================================================================

def make_http_classifier(handler) -> HttpIntentClassifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpIntentClassifier(CLASSIFIER_URL, api_key="secret", client=client)


class TestHttpClassifier:

    @pytest.mark.asyncio
    async def test_classifies_through_service(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200,
                json={"classificationType": "actions", "actionSubtype": "stake", "extractedArgs": {"amount": "50"}},
            )

        classification = await make_http_classifier(handler).classify("stake 50", "u1")

        assert classification.action_type == ActionType.STAKE
        assert classification.source == "http"
        assert seen["body"] == {"message": "stake 50", "userId": "u1"}
        assert seen["auth"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_service_error_falls_back_to_keywords(self):
        classifier = make_http_classifier(lambda request: httpx.Response(503))

        classification = await classifier.classify("send 5 HBAR to Alex")

        assert classification.source == "keyword"
        assert classification.action_type == ActionType.TRANSFER

    @pytest.mark.asyncio
    async def test_malformed_response_falls_back(self):
        classifier = make_http_classifier(lambda request: httpx.Response(200, json={"classificationType": "weather"}))

        classification = await classifier.classify("what's new?")

        assert classification.source == "keyword"

    @pytest.mark.asyncio
    async def test_unsupported_action_is_not_masked(self):
        classifier = make_http_classifier(
            lambda request: httpx.Response(200, json={"classificationType": "actions", "actionSubtype": "bridge"})
        )

        with pytest.raises(UnsupportedActionError):
            await classifier.classify("bridge my HBAR to Ethereum")


def test_build_classifier():
    assert isinstance(build_classifier(), KeywordIntentClassifier)
    assert isinstance(build_classifier(CLASSIFIER_URL), HttpIntentClassifier)
