"""Environment-driven settings for callbatch.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    The fallback aggregator in particular is never hard-coded: a deployment
    that has none simply leaves it unset and unrecognized calls fail with
    ``FallbackUnavailable``.

Features:
    - **CallBatchSettings:** log level/format, resource budget, chain id,
      fallback aggregator and default executing account
    - **env_prefix:** ``CALLBATCH_`` environment variables
    - **.env file support:** Automatic loading via pydantic-settings
    - **get_settings():** Cached singleton, ``clear_settings_cache()`` for tests

Examples:
    >>> import os
    >>> os.environ["CALLBATCH_GAS_LIMIT"] = "1000000"
    >>> clear_settings_cache()
    >>> get_settings().gas_limit
    1000000

Tags:
    settings, configuration, pydantic, environment, callbatch

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from callbatch.core.errors import AddressError
from callbatch.core.types import Address


class CallBatchSettings(BaseSettings):
    """Settings shared by the deployless shell, entrypoint service and CLI.

    Fields
    ──────
    debug               : Verbose logging
    log_level           : Structlog log level
    log_format          : console | json
    gas_limit           : Resource budget of one execution
    chain_id            : Chain identifier reported by the in-memory host
    fallback_aggregator : Relay target for unrecognized entrypoint calls
    default_caller      : Executing account used by the deployless shell
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLBATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # ── Execution ────────────────────────────────────────────────
    gas_limit: int = Field(default=30_000_000, gt=0)
    chain_id: int = Field(default=1, ge=0)

    # ── Addresses ────────────────────────────────────────────────
    fallback_aggregator: str | None = Field(
        default=None,
        description="Hex address that receives unrecognized entrypoint calls",
    )
    default_caller: str | None = None

    @field_validator("fallback_aggregator", "default_caller")
    @classmethod
    def _check_address(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        try:
            return str(Address.parse(value))
        except AddressError as e:
            raise ValueError(e.message) from e

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def fallback_address(self) -> Address | None:
        return Address.parse(self.fallback_aggregator) if self.fallback_aggregator else None

    @property
    def caller_address(self) -> Address | None:
        return Address.parse(self.default_caller) if self.default_caller else None


_settings_cache: dict[str, CallBatchSettings] = {}


def get_settings(*, _force_reload: bool = False) -> CallBatchSettings:
    """Load, validate, and cache a :class:`CallBatchSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = CallBatchSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (for testing)."""
    _settings_cache.clear()


__all__ = ["CallBatchSettings", "get_settings", "clear_settings_cache"]
