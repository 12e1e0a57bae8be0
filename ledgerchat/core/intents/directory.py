"""
Contacts and token directory.

Resolves contact names to ledger account ids and token symbols to token
ids, and supplies the grouped option lists shown for choice fields.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import ChoiceOption


ENTITY_ID_RE = re.compile(r"^0\.0\.\d+$")

PERSONAL_CONTACTS = "Personal Contacts"
BUSINESS_CONTACTS = "Business Contacts"


@dataclass(frozen=True)
class Contact:
    name: str
    account_id: str
    category: str = PERSONAL_CONTACTS


@dataclass(frozen=True)
class TokenInfo:
    """Known token; ``token_id`` is None for the native HBAR."""

    symbol: str
    name: str
    decimals: int
    category: str
    token_id: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.token_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "id": self.token_id or self.symbol,
            "decimals": self.decimals,
            "category": self.category,
            "isNative": self.is_native,
        }


HBAR = TokenInfo(symbol="HBAR", name="Hedera", decimals=8, category="Native")

DEFAULT_TOKENS: tuple[TokenInfo, ...] = (
    HBAR,
    TokenInfo(symbol="USDC", name="USD Coin", decimals=6, category="Stablecoins", token_id="0.0.456858"),
    TokenInfo(symbol="USDT", name="Tether USD", decimals=6, category="Stablecoins", token_id="0.0.681309"),
    TokenInfo(symbol="SAUCE", name="SaucerSwap", decimals=6, category="DeFi", token_id="0.0.731861"),
    TokenInfo(symbol="WBTC", name="Wrapped BTC", decimals=8, category="DeFi", token_id="0.0.1456986"),
)


class Directory:
    """In-memory contact book and token registry."""

    def __init__(
        self,
        contacts: Iterable[Contact] = (),
        tokens: Iterable[TokenInfo] = DEFAULT_TOKENS,
    ):
        self._contacts: Dict[str, Contact] = {c.name.strip().lower(): c for c in contacts}
        self._tokens_by_symbol: Dict[str, TokenInfo] = {}
        self._tokens_by_id: Dict[str, TokenInfo] = {}
        for token in tokens:
            self._tokens_by_symbol[token.symbol.upper()] = token
            if token.token_id:
                self._tokens_by_id[token.token_id] = token

    @classmethod
    def from_mapping(cls, contacts: Mapping[str, str], tokens: Iterable[TokenInfo] = DEFAULT_TOKENS) -> "Directory":
        return cls(
            contacts=[Contact(name=name, account_id=account_id) for name, account_id in contacts.items()],
            tokens=tokens,
        )

    @property
    def contacts(self) -> List[Contact]:
        return list(self._contacts.values())

    @property
    def tokens(self) -> List[TokenInfo]:
        return list(self._tokens_by_symbol.values())

    def resolve_account(self, value: Optional[str]) -> Optional[str]:
        """Map a contact name or account id to an account id."""
        text = (value or "").strip()
        if not text:
            return None
        if ENTITY_ID_RE.match(text):
            return text
        contact = self._contacts.get(text.lower())
        return contact.account_id if contact else None

    def find_contact(self, value: Optional[str]) -> Optional[Contact]:
        return self._contacts.get((value or "").strip().lower())

    def find_token(self, value: Optional[str]) -> Optional[TokenInfo]:
        """Look a token up by symbol (any case) or by token id."""
        text = (value or "").strip()
        if not text:
            return None
        if ENTITY_ID_RE.match(text):
            return self._tokens_by_id.get(text)
        return self._tokens_by_symbol.get(text.upper())

    def contact_options(self) -> List[ChoiceOption]:
        return [
            ChoiceOption(value=c.name, label=f"{c.name} ({c.account_id})", category=c.category)
            for c in sorted(self._contacts.values(), key=lambda c: (c.category, c.name))
        ]

    def token_options(self) -> List[ChoiceOption]:
        return [
            ChoiceOption(value=t.symbol, label=f"{t.symbol} - {t.name}", category=t.category, symbol=t.symbol)
            for t in self._tokens_by_symbol.values()
        ]

    def contacts_by_category(self) -> Dict[str, List[Dict[str, str]]]:
        grouped: Dict[str, List[Dict[str, str]]] = {}
        for contact in self._contacts.values():
            grouped.setdefault(contact.category, []).append(
                {"name": contact.name, "accountId": contact.account_id}
            )
        return grouped

    def tokens_by_category(self) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for token in self._tokens_by_symbol.values():
            grouped.setdefault(token.category, []).append(token.to_dict())
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contacts": self.contacts_by_category(),
            "tokens": self.tokens_by_category(),
            "allContacts": [
                {"name": c.name, "accountId": c.account_id, "category": c.category}
                for c in self._contacts.values()
            ],
            "allTokens": [t.to_dict() for t in self._tokens_by_symbol.values()],
        }
