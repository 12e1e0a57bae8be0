"""
Ledger transports.

A transport moves signed transactions to the network and reads ledger
state back. ``MirrorNodeTransport`` reads through the Hedera mirror node
REST API and submits signed transactions to a relay endpoint.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..recovery.errors import (
    ConfigurationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
)
from .constants import MIRROR_NODE_URLS, PRECHECK_OK
from .models import (
    AccountSnapshot,
    Network,
    Receipt,
    SignedTransaction,
    SubmitResponse,
    TokenSnapshot,
    TopicSnapshot,
)


logger = logging.getLogger(__name__)


class LedgerTransport(ABC):
    """
    Network access used by the gateway.

    Reads raise ``NotFoundError`` for unknown entities and ``NetworkError`` /
    ``TimeoutError`` / ``RateLimitError`` for transient failures.
    """

    name: str
    timeout_s: float = 15.0

    @property
    def can_submit(self) -> bool:
        return True

    @abstractmethod
    async def submit(self, signed: SignedTransaction) -> SubmitResponse:
        """Send a signed transaction once. Never retried by callers."""

    @abstractmethod
    async def get_receipt(self, transaction_id: str) -> Optional[Receipt]:
        """Final receipt, or None while the transaction has not reached consensus."""

    @abstractmethod
    async def get_account(self, account_id: str) -> AccountSnapshot:
        pass

    @abstractmethod
    async def get_token(self, token_id: str) -> TokenSnapshot:
        pass

    @abstractmethod
    async def get_topic(self, topic_id: str) -> TopicSnapshot:
        pass

    @abstractmethod
    async def ready(self) -> bool:
        """Check if the transport can reach the network"""

    async def health_check(self) -> Dict[str, Any]:
        ready = await self.ready()
        return {
            "transport": self.name,
            "status": "healthy" if ready else "unavailable",
            "can_submit": self.can_submit,
        }

    async def close(self) -> None:
        return None


def to_mirror_transaction_id(transaction_id: str) -> str:
    """``0.0.5@1700000000.000000001`` -> ``0.0.5-1700000000-000000001``"""
    account, _, valid_start = transaction_id.partition("@")
    seconds, _, nanos = valid_start.partition(".")
    return f"{account}-{seconds}-{nanos}"


class MirrorNodeTransport(LedgerTransport):
    """Mirror node REST reads plus relay submission over httpx."""

    name = "mirror_node"

    def __init__(
        self,
        network: Network,
        *,
        base_url: Optional[str] = None,
        submit_url: Optional[str] = None,
        timeout_s: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.network = network
        self.base_url = (base_url or MIRROR_NODE_URLS[network.value]).rstrip("/")
        self.submit_url = (submit_url or "").strip()
        self.timeout_s = timeout_s
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def can_submit(self) -> bool:
        return bool(self.submit_url)

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "user-agent": "LedgerChat/1.0",
        }

    async def _get(self, path: str, entity_id: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise TimeoutError(f"Mirror node request timed out: {path}", operation=path) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Mirror node unreachable: {exc}", endpoint=self.base_url) from exc

        if response.status_code == 404:
            raise NotFoundError(f"Not found on {self.network.value}: {entity_id or path}", entity_id=entity_id)
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                "Mirror node rate limit exceeded",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else 5.0,
            )
        if response.status_code >= 500:
            raise NetworkError(
                f"Mirror node error {response.status_code} for {path}",
                endpoint=self.base_url,
            )
        if response.status_code == 400:
            # Malformed ids come back as 400; treat them as unknown entities
            raise NotFoundError(f"Invalid id: {entity_id or path}", entity_id=entity_id)
        response.raise_for_status()
        return response.json()

    async def submit(self, signed: SignedTransaction) -> SubmitResponse:
        if not self.submit_url:
            raise ConfigurationError("No ledger submit endpoint configured (LEDGER_SUBMIT_URL)")

        try:
            response = await self._client.post(
                self.submit_url,
                json=signed.to_wire(),
                headers={**self._headers(), "content-type": "application/json"},
            )
        except httpx.TimeoutException as exc:
            raise TimeoutError(
                f"Submission of {signed.transaction_id} timed out", operation="submit"
            ) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Submit endpoint unreachable: {exc}", endpoint=self.submit_url) from exc

        if response.status_code >= 500:
            raise NetworkError(
                f"Submit endpoint error {response.status_code}", endpoint=self.submit_url
            )

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        status = str(payload.get("status") or payload.get("precheckStatus") or "").strip()
        if not status:
            status = PRECHECK_OK if response.is_success else f"HTTP_{response.status_code}"

        logger.info(f"Transaction {signed.transaction_id} submitted, precheck={status}")
        return SubmitResponse(transaction_id=signed.transaction_id, precheck_status=status)

    async def get_receipt(self, transaction_id: str) -> Optional[Receipt]:
        mirror_id = to_mirror_transaction_id(transaction_id)
        try:
            data = await self._get(f"/api/v1/transactions/{mirror_id}", entity_id=transaction_id)
        except NotFoundError:
            return None

        transactions = data.get("transactions") or []
        if not transactions:
            return None

        # The first entry is the parent transaction; children follow
        record = transactions[0]
        return Receipt(
            transaction_id=transaction_id,
            status=str(record.get("result", "UNKNOWN")),
            entity_id=record.get("entity_id"),
            consensus_timestamp=record.get("consensus_timestamp"),
            details={"name": record.get("name"), "chargedFee": record.get("charged_tx_fee")},
        )

    async def get_account(self, account_id: str) -> AccountSnapshot:
        data = await self._get(f"/api/v1/accounts/{account_id}", entity_id=account_id)
        balance = data.get("balance") or {}
        tokens = {
            str(entry.get("token_id")): int(entry.get("balance", 0))
            for entry in balance.get("tokens") or []
            if entry.get("token_id")
        }
        return AccountSnapshot(
            account_id=str(data.get("account") or account_id),
            balance=int(balance.get("balance", 0)),
            tokens=tokens,
            staked_account_id=data.get("staked_account_id"),
            deleted=bool(data.get("deleted", False)),
        )

    async def get_token(self, token_id: str) -> TokenSnapshot:
        data = await self._get(f"/api/v1/tokens/{token_id}", entity_id=token_id)
        return TokenSnapshot(
            token_id=str(data.get("token_id") or token_id),
            symbol=str(data.get("symbol") or ""),
            name=str(data.get("name") or ""),
            decimals=int(data.get("decimals") or 0),
        )

    async def get_topic(self, topic_id: str) -> TopicSnapshot:
        data = await self._get(f"/api/v1/topics/{topic_id}", entity_id=topic_id)
        return TopicSnapshot(
            topic_id=str(data.get("topic_id") or topic_id),
            memo=str(data.get("memo") or ""),
            deleted=bool(data.get("deleted", False)),
        )

    async def ready(self) -> bool:
        try:
            await self._get("/api/v1/network/nodes?limit=1")
            return True
        except Exception as e:
            logger.warning(f"Mirror node readiness check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
