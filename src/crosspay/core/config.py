"""
Configuration management for CrossPay.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any

from crosspay.core.exceptions import ConfigurationError
from crosspay.core.networks import DEFAULT_CONFIRMATION_TIMEOUTS

ENV_PREFIX = "CROSSPAY_"


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(ENV_PREFIX + name, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {ENV_PREFIX + name} is not set")
    return value


def _get_float(name: str, default: float) -> float:
    raw = _get_env_var(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{ENV_PREFIX + name} must be a number", details={"value": raw}
        ) from e


def parse_rpc_urls(raw: str | None) -> dict[int, tuple[str, ...]]:
    """
    Parse per-network RPC overrides.

    Format: ``"<chainId>=<url>[|<url>...],<chainId>=<url>"``.
    """
    result: dict[int, tuple[str, ...]] = {}
    if not raw:
        return result
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        chain_id, sep, urls = entry.partition("=")
        if not sep or not urls.strip():
            raise ConfigurationError(
                "Invalid RPC override, expected '<chainId>=<url>'", details={"entry": entry}
            )
        try:
            network_id = int(chain_id.strip())
        except ValueError as e:
            raise ConfigurationError(
                "Invalid chain id in RPC override", details={"entry": entry}
            ) from e
        result[network_id] = tuple(u.strip() for u in urls.split("|") if u.strip())
    return result


def parse_timeouts(raw: str | None) -> dict[int, float]:
    """Parse per-network timeouts in the form ``"<chainId>=<seconds>,..."``."""
    result: dict[int, float] = {}
    if not raw:
        return result
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        chain_id, _, seconds = entry.partition("=")
        try:
            result[int(chain_id.strip())] = float(seconds.strip())
        except ValueError as e:
            raise ConfigurationError(
                "Invalid confirmation timeout override", details={"entry": entry}
            ) from e
    return result


@dataclass(frozen=True)
class Config:
    """SDK configuration."""

    settlement_api_key: str
    settlement_api_url: str = "https://api.gasyard.fi/api"
    settlement_build_url: str | None = None  # defaults to <settlement_api_url>/getSwapData

    # Identity provider (optional)
    identity_api_key: str | None = None
    identity_api_url: str = "https://api.neynar.com/v2/farcaster"

    storage_backend: str = "memory"
    redis_url: str | None = None

    # Environment & Logging
    log_level: str = "INFO"
    env: str = "development"

    # Timeouts (seconds)
    request_timeout: float = 30.0  # settlement provider HTTP, never retried
    rpc_timeout: float = 10.0  # per JSON-RPC call
    rpc_urls: dict[int, tuple[str, ...]] = field(default_factory=dict)

    # Chain read retries
    chain_read_attempts: int = 3
    chain_read_backoff: float = 0.5

    # Confirmation waits
    confirmation_timeout: float = 120.0
    confirmation_timeouts: dict[int, float] = field(
        default_factory=lambda: dict(DEFAULT_CONFIRMATION_TIMEOUTS)
    )

    # Shortest settlement calldata accepted, including the 0x prefix
    min_transaction_data_length: int = 10

    def __post_init__(self) -> None:
        if not self.settlement_api_key:
            raise ConfigurationError("settlement_api_key is required")
        if self.storage_backend == "redis" and not self.redis_url:
            raise ConfigurationError("redis_url is required when storage_backend is 'redis'")
        if self.chain_read_attempts < 1:
            raise ConfigurationError("chain_read_attempts must be at least 1")
        if self.request_timeout <= 0 or self.rpc_timeout <= 0 or self.confirmation_timeout <= 0:
            raise ConfigurationError("timeouts must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        settlement_api_key = overrides.pop("settlement_api_key", None) or _get_env_var(
            "SETTLEMENT_API_KEY", required=True
        )

        values: dict[str, Any] = {
            "settlement_api_url": _get_env_var("SETTLEMENT_API_URL", default=cls.settlement_api_url),
            "settlement_build_url": _get_env_var("SETTLEMENT_BUILD_URL"),
            "identity_api_key": _get_env_var("IDENTITY_API_KEY"),
            "identity_api_url": _get_env_var("IDENTITY_API_URL", default=cls.identity_api_url),
            "storage_backend": _get_env_var("STORAGE_BACKEND", default="memory"),
            "redis_url": _get_env_var("REDIS_URL"),
            "log_level": _get_env_var("LOG_LEVEL", default="INFO"),
            "env": _get_env_var("ENV", default="development"),
            "request_timeout": _get_float("REQUEST_TIMEOUT", cls.request_timeout),
            "rpc_timeout": _get_float("RPC_TIMEOUT", cls.rpc_timeout),
            "rpc_urls": parse_rpc_urls(_get_env_var("RPC_URLS")),
            "chain_read_attempts": int(_get_float("CHAIN_READ_ATTEMPTS", cls.chain_read_attempts)),
            "chain_read_backoff": _get_float("CHAIN_READ_BACKOFF", cls.chain_read_backoff),
            "confirmation_timeout": _get_float("CONFIRMATION_TIMEOUT", cls.confirmation_timeout),
        }
        timeouts = dict(DEFAULT_CONFIRMATION_TIMEOUTS)
        timeouts.update(parse_timeouts(_get_env_var("CONFIRMATION_TIMEOUTS")))
        values["confirmation_timeouts"] = timeouts

        values.update(overrides)
        return cls(settlement_api_key=settlement_api_key, **values)  # type: ignore[arg-type]

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def confirmation_timeout_for(self, network_id: int) -> float:
        return self.confirmation_timeouts.get(network_id, self.confirmation_timeout)

    def masked_api_key(self) -> str:
        """Return API key with most characters masked for safe logging."""
        if len(self.settlement_api_key) <= 8:
            return "****"
        return self.settlement_api_key[:4] + "..." + self.settlement_api_key[-4:]
