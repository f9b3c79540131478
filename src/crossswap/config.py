"""Application configuration using pydantic-settings.

Everything the bot needs to reach Telegram, the database, the Garden swap
engine and the Starknet RPC node is read from environment variables or `.env`.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Telegram
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token from BotFather")

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/crossswap.db",
        description="Database connection URL",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="testnet", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # Garden swap engine
    # ======================
    garden_api_key: str = Field(default="", description="Garden API key")
    garden_quote_url: str = Field(
        default="https://quote-staging.hashira.io",
        description="Garden quote service URL",
    )
    garden_orderbook_url: str = Field(
        default="https://orderbook-staging.hashira.io",
        description="Garden orderbook URL",
    )
    garden_evm_relay_url: str = Field(
        default="https://orderbook-staging.hashira.io/relayer",
        description="Garden EVM relayer URL",
    )
    garden_starknet_relay_url: str = Field(
        default="https://starknet-relayer.garden.finance",
        description="Garden Starknet relayer URL",
    )

    # ======================
    # Network calls
    # ======================
    engine_timeout_seconds: float = Field(
        default=30.0, description="Timeout for every swap engine HTTP call"
    )
    engine_poll_interval_seconds: float = Field(
        default=5.0, description="Delay between order status polls"
    )
    engine_max_match_polls: int = Field(
        default=24, description="Polls to wait for an order to be matched"
    )
    turn_lock_timeout_seconds: float = Field(
        default=120.0, description="Max wait for a user's previous turn to finish"
    )

    # ======================
    # Starknet
    # ======================
    starknet_rpc_url: str = Field(
        default="https://starknet-sepolia.public.blastapi.io/rpc/v0_7",
        description="Starknet JSON-RPC URL",
    )
    starknet_account_class_hash: str = Field(
        default="0x061dac032f228abef9c6626f995015233097ae253a7f72d68552db02f2971b8f",
        description="OpenZeppelin account class hash used to compute new addresses",
    )

    @property
    def is_production(self) -> bool:
        """Check if running against mainnet."""
        return self.environment.lower() in ("production", "mainnet")

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "database_url": self._redact_url(self.database_url),
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "garden": {
                "api_key": "***" if self.garden_api_key else "(not set)",
                "quote": self.garden_quote_url,
                "orderbook": self.garden_orderbook_url,
                "evm_relay": self.garden_evm_relay_url,
                "starknet_relay": self.garden_starknet_relay_url,
            },
            "starknet_rpc": self.starknet_rpc_url,
            "timeouts": {
                "engine": self.engine_timeout_seconds,
                "turn_lock": self.turn_lock_timeout_seconds,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            creds, host = rest.rsplit("@", 1)
            if ":" in creds:
                user, _ = creds.split(":", 1)
                return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
