"""CLI configuration management for TrustLink using pydantic-settings.

Handles store location, caller identity from an Algorand account mnemonic,
logging setup and registry assembly.
"""

from __future__ import annotations

import logging
from pathlib import Path

from algosdk import account, mnemonic
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.logging import RichHandler

from trustlink.contracts.events import LoggingEventSink
from trustlink.contracts.keys import DEFAULT_LIFETIME
from trustlink.contracts.registry import TrustLinkRegistry
from trustlink.sdk.auth import StaticAuthenticator
from trustlink.sdk.clock import SystemClock
from trustlink.sdk.store import JsonFileStore


class TrustLinkConfig(BaseSettings):
    """TrustLink CLI configuration using pydantic-settings BaseSettings."""

    model_config = SettingsConfigDict(
        env_prefix='TRUSTLINK_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    store_path: Path = Field(
        default=Path("trustlink.json"),
        description="JSON file holding registry state"
    )
    mnemonic: str | None = Field(
        default=None,
        description="Account mnemonic identifying the caller"
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level for registry output"
    )
    ttl_lifetime: int = Field(
        default=DEFAULT_LIFETIME,
        description="Retention lifetime passed to the store after writes"
    )

    @field_validator('ttl_lifetime')
    @classmethod
    def validate_ttl_lifetime(cls, v: int) -> int:
        """Validate retention lifetime is positive."""
        if v <= 0:
            raise ValueError("TTL lifetime must be positive")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


def create_caller(config: TrustLinkConfig) -> str:
    """Derive the caller address from the configured mnemonic."""
    if not config.mnemonic:
        raise ValueError("Mnemonic required. Set TRUSTLINK_MNEMONIC environment variable.")

    try:
        private_key = mnemonic.to_private_key(config.mnemonic)
        return account.address_from_private_key(private_key)
    except Exception as e:
        raise ValueError(f"Invalid mnemonic: {e}")


def configure_logging(config: TrustLinkConfig) -> None:
    """Route registry logging through rich."""
    logging.basicConfig(
        level=config.log_level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def create_registry(config: TrustLinkConfig, caller: str | None = None) -> TrustLinkRegistry:
    """Assemble a registry backed by the configured JSON store.

    `caller` is the only principal the registry treats as authenticated;
    read-only commands may omit it.
    """
    callers = [caller] if caller else []
    return TrustLinkRegistry(
        store=JsonFileStore(config.store_path),
        authenticator=StaticAuthenticator(callers),
        clock=SystemClock(),
        events=LoggingEventSink(),
        lifetime=config.ttl_lifetime,
    )
