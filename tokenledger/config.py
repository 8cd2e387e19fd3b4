from __future__ import annotations

"""
Configuration loader for tokenledger.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Exposes a cached `get_settings()` accessor.

Environment variables (prefix ``TOKENLEDGER_``):
    TOKENLEDGER_DB_URI            (str, default "memory://")   - KV store URI (see tokenledger.db)
    TOKENLEDGER_ISSUER            (str, default "mailabs")     - issuer allowed to initialize/mint
    TOKENLEDGER_ZERO_ADDRESS      (str, default "0x0")         - "no account" sentinel used in events
    TOKENLEDGER_AMOUNT_BITS       (int, default 64)            - width of amounts, 1..256
    TOKENLEDGER_URI_PLACEHOLDER   (str, default "{id}")        - required substring of multi-token URIs
    TOKENLEDGER_LOG_LEVEL         (str, default "INFO")
    TOKENLEDGER_LOG_FORMAT        (str, default "json")        - "json" or "console"

Notes
-----
- Ledgers take a `Settings` instance explicitly; `get_settings()` is only the
  default when none is passed.
- Call `get_settings.cache_clear()` after changing the environment in tests.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    # Storage
    db_uri: str = Field("memory://", description="KV store URI")

    # Ledger rules
    issuer: str = Field("mailabs", description="Issuer (MSP) allowed to run privileged ops")
    zero_address: str = Field("0x0", description="Sentinel account denoting 'no account'")
    amount_bits: int = Field(64, ge=1, le=256, description="Bit width of amounts")
    uri_placeholder: str = Field("{id}", description="Substitution marker for multi-token URIs")

    # Logging
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field("json", description="'json' or 'console'")

    model_config = SettingsConfigDict(
        env_prefix="TOKENLEDGER_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("issuer", "zero_address", "uri_placeholder")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_level(cls, v):
        s = str(v or "INFO").strip().upper()
        if s not in _LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LEVELS)}")
        return s

    @field_validator("log_format", mode="before")
    @classmethod
    def _norm_format(cls, v):
        s = str(v or "json").strip().lower()
        if s not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return s

    @property
    def max_amount(self) -> int:
        """Largest representable amount, ``2**amount_bits - 1``."""
        return (1 << self.amount_bits) - 1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
