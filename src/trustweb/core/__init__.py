# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""trustweb core - configuration, logging and the exception hierarchy."""

from .config import TrustwebSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    DatabaseException,
    RelayException,
    SignerException,
    TrustwebException,
    ValidationException,
)
from .logging import (
    configure_logging,
    correlation_context,
    get_correlation_id,
)

__all__ = [
    # Config
    "TrustwebSettings",
    "get_config",
    "clear_config_cache",
    # Exceptions
    "TrustwebException",
    "DatabaseException",
    "ValidationException",
    "ConfigException",
    "RelayException",
    "SignerException",
    # Logging
    "configure_logging",
    "correlation_context",
    "get_correlation_id",
]
