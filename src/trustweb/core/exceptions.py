# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Custom exception hierarchy for trustweb.

Provides specific exception types for different error categories,
enabling better error handling and clearer error messages.
"""

from __future__ import annotations

from typing import Any


class TrustwebException(Exception):  # noqa: N818
    """Base exception for all trustweb errors.

    All trustweb-specific exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class DatabaseException(TrustwebException):
    """Exception for database-related errors.

    Raised when:
    - The social store cannot be opened or initialized
    - Statement execution fails
    - Transaction errors occur
    """

    pass


class ValidationException(TrustwebException):
    """Exception for validation errors.

    Raised when:
    - A pubkey reference is malformed
    - Required arguments are missing
    - Field values are out of range (negative distance, depth < 1)
    - A record does not have the expected shape
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigException(TrustwebException):
    """Exception for configuration errors.

    Raised when:
    - No self identity is configured
    - No relays are configured
    - Publishing was requested but no signer is configured
    """

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []


class RelayException(TrustwebException):
    """Exception for a single relay failing a publish or query."""

    def __init__(self, message: str, relay: str | None = None):
        details = {}
        if relay:
            details["relay"] = relay
        super().__init__(message, details)
        self.relay = relay


class SignerException(TrustwebException):
    """Exception for the external record signer failing."""

    def __init__(self, message: str, command: str | None = None):
        details = {}
        if command:
            details["command"] = command
        super().__init__(message, details)
        self.command = command
