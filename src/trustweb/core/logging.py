# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Structured logging configuration for trustweb.

Provides:
- JSON formatter for piping into log collectors
- Standard formatter for interactive terminals
- Correlation IDs so every line of one graph sync can be grouped

Console output goes to stderr. stdout is reserved for command output, which
matters for ``trustweb graph filter`` where stdout carries records.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

_correlation_id: ContextVar[str | None] = ContextVar("trustweb_correlation_id", default=None)

NOISY_LOGGERS = ("aiohttp", "asyncio")


def get_correlation_id() -> str | None:
    """Return the correlation ID of the current context, if any."""
    return _correlation_id.get()


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
) -> Generator[str, None, None]:
    """Scope a correlation ID to a block.

    Args:
        correlation_id: ID to use. A fresh one is generated when omitted.

    Yields:
        The correlation ID in effect inside the block.

    Example:
        with correlation_context() as cid:
            logger.info("Syncing graph")  # line carries cid
    """
    cid = correlation_id or uuid.uuid4().hex
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per log line.

    Warnings and above carry their source location. A ``relay`` passed via
    ``extra=`` becomes a top-level field, so per-relay failures can be
    grouped by endpoint.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        relay = getattr(record, "relay", None)
        if relay:
            log_data["relay"] = relay

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Terminal formatter: ``time LEVEL logger: [cid] message``, colored on a tty."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(cid)s%(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{self.RESET}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        # Copy so the file handler still sees the plain record
        record = logging.makeLogRecord(record.__dict__)

        correlation_id = get_correlation_id()
        record.cid = self._paint(f"[{correlation_id[:8]}]", self.DIM) + " " if correlation_id else ""
        record.levelname = self._paint(record.levelname, self.LEVEL_COLORS.get(record.levelno, ""))

        return super().format(record)


def _wants_json(log_format: str) -> bool:
    """Map TRUSTWEB_LOG_FORMAT to a formatter choice; anything else auto-detects."""
    log_format = log_format.lower()
    if log_format in ("json", "text"):
        return log_format == "json"
    return not sys.stderr.isatty()


def configure_logging(
    level: str | int | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure the root logger for trustweb.

    Args:
        level: Log level; falls back to TRUSTWEB_LOG_LEVEL.
        json_format: Force JSON (True) or text (False); TRUSTWEB_LOG_FORMAT if None.
        log_file: Optional file that receives JSON lines as well; falls back to TRUSTWEB_LOG_FILE.
    """
    from .config import get_config

    config = get_config()

    if level is None:
        level = config.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    if json_format is None:
        json_format = _wants_json(config.log_format)
    if log_file is None:
        log_file = config.log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(JSONFormatter() if json_format else StandardFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
