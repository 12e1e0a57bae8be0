"""
Classification/extraction service clients.

The classifier itself is an external black box. ``HttpIntentClassifier``
calls it over HTTP and falls back to ``KeywordIntentClassifier`` when the
service is unconfigured or unreachable. Responses are parsed into a closed
tagged union keyed by ``classificationType``.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Annotated, Any, Dict, Iterable, Literal, Mapping, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..core.intents.actions import normalize_arg_value
from ..core.intents.directory import DEFAULT_TOKENS
from ..core.intents.models import ActionType


logger = logging.getLogger(__name__)


class ClassificationError(Exception):
    """The classifier response could not be understood."""


class UnsupportedActionError(ClassificationError):
    """The classifier recognised an action this service cannot execute."""

    def __init__(self, action_subtype: str):
        self.action_subtype = action_subtype
        super().__init__(f"Unsupported action: {action_subtype}")


class _ClassificationBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    confidence: Optional[float] = Field(default=None, description="Opaque classifier confidence")
    reasoning: Optional[str] = Field(default=None, description="Opaque classifier reasoning")
    extracted_args: Dict[str, str] = Field(default_factory=dict, alias="extractedArgs")
    source: str = Field(default="service", description="Which classifier produced this result")


class ActionsClassification(_ClassificationBase):
    classification_type: Literal["actions"] = Field(default="actions", alias="classificationType")
    action_subtype: str = Field(alias="actionSubtype")

    @property
    def action_type(self) -> ActionType:
        return ActionType(self.action_subtype)


class InformationClassification(_ClassificationBase):
    classification_type: Literal["information"] = Field(default="information", alias="classificationType")


class StrategyClassification(_ClassificationBase):
    classification_type: Literal["strategy"] = Field(default="strategy", alias="classificationType")


class FeedbackClassification(_ClassificationBase):
    classification_type: Literal["feedbacks"] = Field(default="feedbacks", alias="classificationType")


Classification = Annotated[
    Union[
        ActionsClassification,
        InformationClassification,
        StrategyClassification,
        FeedbackClassification,
    ],
    Field(discriminator="classification_type"),
]

_classification_adapter: TypeAdapter = TypeAdapter(Classification)

_TYPE_ALIASES = {
    "action": "actions",
    "actions": "actions",
    "info": "information",
    "information": "information",
    "strategy": "strategy",
    "strategies": "strategy",
    "feedback": "feedbacks",
    "feedbacks": "feedbacks",
}


def normalize_args(args: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Stringify extracted values and upper-case token symbols."""
    normalized: Dict[str, str] = {}
    for key, value in (args or {}).items():
        if value is None or isinstance(value, (dict, list)):
            continue
        text = normalize_arg_value(key, value)
        if not text:
            continue
        normalized[key] = text
    return normalized


def parse_classification(payload: Mapping[str, Any], source: str = "service") -> Classification:
    """
    Parse a classifier response.

    Raises:
        UnsupportedActionError: an action subtype with no executor behind it
        ClassificationError: anything else that does not fit the union
    """
    if not isinstance(payload, Mapping):
        raise ClassificationError(f"Expected a JSON object, got {type(payload).__name__}")

    raw_type = str(payload.get("classificationType") or payload.get("type") or "").strip().lower()
    classification_type = _TYPE_ALIASES.get(raw_type)
    if classification_type is None:
        raise ClassificationError(f"Unknown classification type: {raw_type!r}")

    data: Dict[str, Any] = {
        "classificationType": classification_type,
        "confidence": payload.get("confidence"),
        "reasoning": payload.get("reasoning"),
        "extractedArgs": normalize_args(payload.get("extractedArgs") or payload.get("args")),
        "source": source,
    }

    if classification_type == "actions":
        subtype = str(payload.get("actionSubtype") or "").strip()
        action = ActionType.parse(subtype)
        if action is None:
            raise UnsupportedActionError(subtype or "other")
        data["actionSubtype"] = action.value

    try:
        return _classification_adapter.validate_python(data)
    except ValidationError as e:
        raise ClassificationError(f"Malformed classification: {e}") from e


class IntentClassifier(ABC):
    """Base classifier interface"""

    name: str
    timeout_s: float = 20.0

    @abstractmethod
    async def classify(self, message: str, user_id: Optional[str] = None) -> Classification:
        """Classify a message and extract its arguments"""

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"classifier": self.name, "status": "healthy" if await self.ready() else "unavailable"}

    async def close(self) -> None:
        return None


_AMOUNT = r"(\d+(?:\.\d+)?)"
_ENTITY = r"(0\.0\.\d+)"

_AMOUNT_TOKEN_RE = re.compile(_AMOUNT + r"\s*([A-Za-z]{2,10})\b")
_AMOUNT_RE = re.compile(_AMOUNT)
_RECIPIENT_RE = re.compile(r"\bto\s+(?:account\s+)?(" + r"0\.0\.\d+|[A-Za-z]+)\b", re.IGNORECASE)
_SWAP_RE = re.compile(
    r"\b(?:swap|exchange|trade|convert)\s+(?:" + _AMOUNT + r"\s+)?(?:my\s+)?([A-Za-z]+)\s+(?:for|to|into)\s+([A-Za-z]+)",
    re.IGNORECASE,
)
_VALIDATOR_RE = re.compile(r"\b(?:validator|node|to)\s+" + _ENTITY, re.IGNORECASE)
_ASSOCIATE_RE = re.compile(r"\bassociate\s+(?:token\s+)?(" + r"0\.0\.\d+|[A-Za-z]+)", re.IGNORECASE)
_TOPIC_ID_RE = re.compile(r"\btopic\s+" + _ENTITY, re.IGNORECASE)
_QUOTED_RE = re.compile(r"[\"“']([^\"”']+)[\"”']")
_TOPIC_MEMO_RE = re.compile(r"\btopic\s+(?:for|called|named|about)\s+(.+)$", re.IGNORECASE)

_FILLER_WORDS = {"my", "the", "a", "an", "some", "all", "token", "tokens"}


class KeywordIntentClassifier(IntentClassifier):
    """
    Offline fallback: keyword matching plus regex argument extraction.

    Extraction is best-effort; anything it misses is collected interactively.
    """

    name = "keyword"

    # First match wins; topic rules precede transfer so "send ... to topic" is a message
    ACTION_KEYWORDS: Tuple[Tuple[ActionType, Tuple[str, ...]], ...] = (
        (ActionType.SEND_MESSAGE, ("message to topic", "publish to topic", "post to topic", "to topic 0.0.")),
        (ActionType.CREATE_TOPIC, ("create topic", "create a topic", "new topic", "make topic", "make a new topic")),
        (ActionType.ASSOCIATE_TOKEN, ("associate",)),
        (ActionType.SWAP, ("swap", "exchange", "trade", "convert")),
        (ActionType.STAKE, ("stake", "delegate")),
        (ActionType.TRANSFER, ("send", "transfer", "pay")),
    )

    def __init__(self, token_symbols: Optional[Iterable[str]] = None):
        symbols = token_symbols if token_symbols is not None else (t.symbol for t in DEFAULT_TOKENS)
        self.token_symbols = {s.upper() for s in symbols}

    async def classify(self, message: str, user_id: Optional[str] = None) -> Classification:
        lower = (message or "").lower()

        for action, keywords in self.ACTION_KEYWORDS:
            if any(keyword in lower for keyword in keywords):
                return ActionsClassification(
                    action_subtype=action.value,
                    confidence=0.7,
                    reasoning=f"Detected {action.value} keywords",
                    extracted_args=normalize_args(self.extract(action, message)),
                    source=self.name,
                )

        return InformationClassification(
            confidence=0.5,
            reasoning="Fallback classification",
            source=self.name,
        )

    def extract(self, action: ActionType, message: str) -> Dict[str, str]:
        extractors = {
            ActionType.TRANSFER: self._extract_transfer,
            ActionType.SWAP: self._extract_swap,
            ActionType.STAKE: self._extract_stake,
            ActionType.ASSOCIATE_TOKEN: self._extract_associate,
            ActionType.CREATE_TOPIC: self._extract_create_topic,
            ActionType.SEND_MESSAGE: self._extract_send_message,
        }
        return extractors[action](message)

    def _amount_and_token(self, message: str) -> Tuple[Optional[str], Optional[str]]:
        for amount, word in _AMOUNT_TOKEN_RE.findall(message):
            if word.upper() in self.token_symbols:
                return amount, word.upper()
        match = _AMOUNT_RE.search(message.replace("0.0.", " "))
        return (match.group(1) if match else None), None

    def _extract_transfer(self, message: str) -> Dict[str, str]:
        args: Dict[str, str] = {}
        amount, token = self._amount_and_token(message)
        if amount:
            args["amount"] = amount
        if token:
            args["tokenId"] = token
        for candidate in _RECIPIENT_RE.findall(message):
            if candidate.lower() not in _FILLER_WORDS and candidate.upper() not in self.token_symbols:
                args["recipient"] = candidate
                break
        return args

    def _extract_swap(self, message: str) -> Dict[str, str]:
        args: Dict[str, str] = {}
        match = _SWAP_RE.search(message)
        if match:
            amount, source, target = match.groups()
            if amount:
                args["amount"] = amount
            if source.upper() in self.token_symbols:
                args["fromToken"] = source.upper()
            if target.upper() in self.token_symbols:
                args["toToken"] = target.upper()
        if "amount" not in args:
            amount, _ = self._amount_and_token(message)
            if amount:
                args["amount"] = amount
        return args

    def _extract_stake(self, message: str) -> Dict[str, str]:
        args: Dict[str, str] = {}
        amount, _ = self._amount_and_token(message)
        if amount:
            args["amount"] = amount
        match = _VALIDATOR_RE.search(message)
        if match:
            args["validator"] = match.group(1)
        return args

    def _extract_associate(self, message: str) -> Dict[str, str]:
        match = _ASSOCIATE_RE.search(message)
        if not match:
            return {}
        token = match.group(1)
        if token.lower() in _FILLER_WORDS:
            return {}
        return {"tokenId": token}

    def _extract_create_topic(self, message: str) -> Dict[str, str]:
        quoted = _QUOTED_RE.search(message)
        if quoted:
            return {"memo": quoted.group(1)}
        match = _TOPIC_MEMO_RE.search(message)
        return {"memo": match.group(1).strip()} if match else {}

    def _extract_send_message(self, message: str) -> Dict[str, str]:
        args: Dict[str, str] = {}
        topic = _TOPIC_ID_RE.search(message)
        if topic:
            args["topicId"] = topic.group(1)
        quoted = _QUOTED_RE.search(message)
        if quoted:
            args["message"] = quoted.group(1)
        return args


class HttpIntentClassifier(IntentClassifier):
    """Client for the external classification/extraction service."""

    name = "http"

    def __init__(
        self,
        url: str,
        *,
        api_key: Optional[str] = None,
        timeout_s: float = 20.0,
        fallback: Optional[IntentClassifier] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.fallback = fallback or KeywordIntentClassifier()
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json", "content-type": "application/json"}
        if self.api_key:
            headers["authorization"] = f"Bearer {self.api_key}"
        return headers

    async def classify(self, message: str, user_id: Optional[str] = None) -> Classification:
        try:
            response = await self._client.post(
                self.url,
                json={"message": message, "userId": user_id},
                headers=self._headers(),
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Classification service failed, using {self.fallback.name} fallback: {e}")
            return await self.fallback.classify(message, user_id)

        try:
            return parse_classification(payload, source=self.name)
        except UnsupportedActionError:
            raise
        except ClassificationError as e:
            logger.warning(f"Unusable classification response, using {self.fallback.name} fallback: {e}")
            return await self.fallback.classify(message, user_id)

    async def ready(self) -> bool:
        return bool(self.url)

    async def close(self) -> None:
        await self._client.aclose()


def build_classifier(url: Optional[str] = None, api_key: Optional[str] = None, timeout_s: float = 20.0) -> IntentClassifier:
    """HTTP classifier when a service URL is configured, keyword matching otherwise."""
    if url:
        return HttpIntentClassifier(url, api_key=api_key or None, timeout_s=timeout_s)
    logger.info("No classification service configured; using keyword classifier")
    return KeywordIntentClassifier()


def classification_to_dict(classification: Classification) -> Dict[str, Any]:
    return classification.model_dump(by_alias=True)


__all__ = [
    "ActionsClassification",
    "Classification",
    "ClassificationError",
    "FeedbackClassification",
    "HttpIntentClassifier",
    "InformationClassification",
    "IntentClassifier",
    "KeywordIntentClassifier",
    "StrategyClassification",
    "UnsupportedActionError",
    "build_classifier",
    "classification_to_dict",
    "normalize_args",
    "parse_classification",
]
