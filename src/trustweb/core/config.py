# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Core configuration - centralized config for the trustweb package.

All environment-based configuration should flow through this module.
This provides a single source of truth and consistent defaults.

Usage:
    from trustweb.core.config import get_config
    config = get_config()

    # Access settings
    db_path = config.database_path
    relays = config.relay_urls
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RELAYS = (
    "wss://relay.ditto.pub",
    "wss://relay.primal.net",
    "wss://relay.damus.io",
    "wss://nos.lol",
)


class TrustwebSettings(BaseSettings):
    """Core configuration settings for trustweb.

    Settings can be configured via environment variables with the
    TRUSTWEB_ prefix, or through a .env file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # STORAGE SETTINGS
    # ==========================================================================

    data_dir: str = Field(
        default=str(Path.home() / ".trustweb"),
        description="Base directory for local state",
        validation_alias="TRUSTWEB_DATA_DIR",
    )
    db_path: str | None = Field(
        default=None,
        description="Social graph database file (defaults to <data_dir>/social/graph.db)",
        validation_alias="TRUSTWEB_DB_PATH",
    )

    # ==========================================================================
    # IDENTITY SETTINGS
    # ==========================================================================

    pubkey: str | None = Field(
        default=None,
        description="The agent's own public key (64 hex chars)",
        validation_alias="TRUSTWEB_PUBKEY",
    )
    signer_command: str | None = Field(
        default=None,
        description="External command that signs an unsigned record read from stdin",
        validation_alias="TRUSTWEB_SIGNER_COMMAND",
    )

    # ==========================================================================
    # RELAY SETTINGS
    # ==========================================================================

    relays: str = Field(
        default=",".join(DEFAULT_RELAYS),
        description="Comma-separated list of relay websocket URLs",
        validation_alias="TRUSTWEB_RELAYS",
    )
    relay_connect_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a relay websocket to open",
        validation_alias="TRUSTWEB_RELAY_CONNECT_TIMEOUT",
    )
    relay_query_timeout: float = Field(
        default=15.0,
        description="Seconds to wait for a relay to finish answering one filter",
        validation_alias="TRUSTWEB_RELAY_QUERY_TIMEOUT",
    )
    relay_publish_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a relay to acknowledge a published record",
        validation_alias="TRUSTWEB_RELAY_PUBLISH_TIMEOUT",
    )

    # ==========================================================================
    # GRAPH SETTINGS
    # ==========================================================================

    sync_depth: int = Field(
        default=2,
        description="Graph sync depth (1 = own lists only, >1 = also contacts' follows)",
        validation_alias="TRUSTWEB_SYNC_DEPTH",
    )
    max_distance: int = Field(
        default=2,
        description="Default maximum trust distance for filtering",
        validation_alias="TRUSTWEB_MAX_DISTANCE",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="TRUSTWEB_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="TRUSTWEB_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="TRUSTWEB_LOG_FILE",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def database_path(self) -> Path:
        """Resolved path of the social graph database."""
        if self.db_path:
            return Path(self.db_path).expanduser()
        return Path(self.data_dir).expanduser() / "social" / "graph.db"

    @property
    def relay_urls(self) -> list[str]:
        """Configured relays, de-duplicated with order preserved."""
        urls: list[str] = []
        for raw in self.relays.split(","):
            url = raw.strip()
            if url and url not in urls:
                urls.append(url)
        return urls


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: TrustwebSettings | None = None


def get_config() -> TrustwebSettings:
    """Get the global configuration instance.

    Returns:
        The singleton TrustwebSettings instance.
    """
    global _config
    if _config is None:
        _config = TrustwebSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
