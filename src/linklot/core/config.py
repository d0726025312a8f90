"""
Configuration management for LinkLot.

Handles loading configuration from environment variables (and an optional
.env file) and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

from dotenv import load_dotenv
from eth_utils import is_address

from linklot.core.types import DEFAULT_BATCH_SIZE


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ValueError(f"Required environment variable {name} is not set")
    return value


def _parse_bool(value: str | bool | None, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    """Runtime configuration."""

    # Comma-separated for multi-provider fallback
    rpc_url: str
    consumer_address: str
    # Node-managed account used for eth_sendTransaction
    sender_address: str | None = None
    chain_id: int | None = None

    # Mutation batching
    batch_mode: bool = True
    batch_size: int = DEFAULT_BATCH_SIZE

    # Timeouts (seconds)
    request_timeout: float = 30.0
    transaction_poll_interval: float = 2.0
    transaction_poll_timeout: float = 120.0
    gas_limit: int | None = None

    # Environment & Logging
    log_level: str = "INFO"
    env: str = "development"

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ValueError("rpc_url is required")
        if not self.consumer_address or not is_address(self.consumer_address):
            raise ValueError(f"consumer_address must be a valid address, got {self.consumer_address!r}")
        if self.sender_address is not None and not is_address(self.sender_address):
            raise ValueError(f"sender_address must be a valid address, got {self.sender_address!r}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be greater than zero, got {self.batch_size}")
        if self.transaction_poll_interval <= 0:
            raise ValueError("transaction_poll_interval must be greater than zero")

    @property
    def rpc_urls(self) -> list[str]:
        """RPC endpoints in fallback order."""
        return [u.strip() for u in self.rpc_url.split(",") if u.strip()]

    @classmethod
    def from_env(cls, env_file: str | None = None, **overrides: Any) -> Config:
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional path to a .env file loaded before reading the environment
            **overrides: Explicit values taking precedence over the environment
        """
        if env_file:
            load_dotenv(env_file)

        rpc_url = overrides.get("rpc_url") or _get_env_var("LINKLOT_RPC_URL", required=True)
        consumer_address = overrides.get("consumer_address") or _get_env_var(
            "LINKLOT_CONSUMER_ADDRESS", required=True
        )
        sender_address = overrides.get("sender_address") or _get_env_var("LINKLOT_SENDER_ADDRESS")

        chain_id_raw = overrides.get("chain_id") or _get_env_var("LINKLOT_CHAIN_ID")
        chain_id = int(chain_id_raw) if chain_id_raw is not None else None

        batch_size = int(
            overrides.get("batch_size") or _get_env_var("LINKLOT_BATCH_SIZE", default=str(DEFAULT_BATCH_SIZE))
        )
        batch_mode = _parse_bool(
            overrides.get("batch_mode", _get_env_var("LINKLOT_BATCH_MODE")), default=True
        )

        log_level = overrides.get("log_level") or _get_env_var("LINKLOT_LOG_LEVEL", default="INFO")
        env = overrides.get("env") or _get_env_var("LINKLOT_ENV", default="development")

        return cls(
            rpc_url=rpc_url,  # type: ignore
            consumer_address=consumer_address,  # type: ignore
            sender_address=sender_address,
            chain_id=chain_id,
            batch_mode=batch_mode,
            batch_size=batch_size,
            request_timeout=overrides.get("request_timeout", cls.request_timeout),
            transaction_poll_interval=overrides.get(
                "transaction_poll_interval", cls.transaction_poll_interval
            ),
            transaction_poll_timeout=overrides.get(
                "transaction_poll_timeout", cls.transaction_poll_timeout
            ),
            gas_limit=overrides.get("gas_limit", cls.gas_limit),
            log_level=log_level,  # type: ignore
            env=env,  # type: ignore
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def masked_rpc_url(self) -> str:
        """Return the first RPC URL with its path (usually an API key) masked for safe logging."""
        first = self.rpc_urls[0]
        scheme, sep, rest = first.partition("://")
        host = rest.split("/", 1)[0]
        return f"{scheme}{sep}{host}/****" if sep else "****"
