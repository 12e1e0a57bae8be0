import os

from pathlib import Path
from typing import Any, Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the operator credential names used by the Hedera SDK examples."""

        super().model_post_init(__context)

        if not self.hedera_account_id:
            fallback = os.getenv("OPERATOR_ID") or os.getenv("MY_ACCOUNT_ID")
            if fallback:
                object.__setattr__(self, "hedera_account_id", fallback)

        if not self.hedera_private_key:
            fallback = os.getenv("OPERATOR_KEY") or os.getenv("MY_PRIVATE_KEY")
            if fallback:
                object.__setattr__(self, "hedera_private_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Ledger Settings
    hedera_network: str = Field(default="testnet", description="Ledger network (mainnet, testnet, previewnet)")
    hedera_account_id: str = Field(default="", description="Operator account id (0.0.x)")
    hedera_private_key: str = Field(
        default="",
        repr=False,
        description="Operator Ed25519 private key (hex, raw or DER encoded)",
        validation_alias=AliasChoices("hedera_private_key", "HEDERA_PRIVATE_KEY", "HEDERA_OPERATOR_KEY"),
    )
    mirror_node_url: str = Field(
        default="",
        description="Override the mirror node REST base URL for the selected network",
    )
    ledger_submit_url: str = Field(
        default="",
        description="Relay endpoint that accepts signed transactions for submission",
    )
    ledger_transport: str = Field(
        default="http",
        description="Ledger transport: 'http' (mirror node + relay) or 'memory' (simulated ledger)",
    )
    ledger_request_timeout_seconds: float = Field(default=15.0, description="Per-request ledger HTTP timeout")
    receipt_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Maximum time to wait for a transaction receipt before reporting a network failure",
    )
    receipt_poll_interval_seconds: float = Field(default=1.0, gt=0, description="Receipt polling interval")
    query_max_retries: int = Field(default=3, ge=1, description="Attempts for read-only ledger queries")

    # Classification Service
    classifier_url: str = Field(default="", description="Classification/extraction service endpoint")
    classifier_api_key: str = Field(default="", repr=False, description="Classification service API key")
    classifier_timeout_seconds: float = Field(default=20.0, description="Classification request timeout")

    # Conversation Settings
    max_resolution_rounds: int = Field(
        default=5,
        ge=0,
        description="Interactive rounds allowed per intent before it is cancelled (0 disables the cap)",
    )
    session_ttl_seconds: int = Field(default=1800, description="Idle time before a pending session expires")
    max_sessions: int = Field(default=10000, description="Maximum sessions kept in memory")

    # Directory
    contacts: Dict[str, str] = Field(
        default_factory=lambda: {
            "Alex": "0.0.4515512",
            "Samir": "0.0.4515513",
            "Alice": "0.0.4515514",
        },
        description="Known contact names mapped to ledger account ids",
    )

    @property
    def has_operator_credentials(self) -> bool:
        return bool(self.hedera_account_id and self.hedera_private_key)

    @property
    def uses_memory_ledger(self) -> bool:
        return self.ledger_transport.strip().lower() == "memory"


# Global settings instance
settings = Settings()
