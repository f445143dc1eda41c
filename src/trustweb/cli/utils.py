# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Shared helpers for trustweb CLI commands."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import UTC, datetime

from ..core.config import get_config
from ..core.exceptions import ConfigException, RelayException, SignerException, ValidationException
from ..relays.pool import RelayPool
from ..relays.records import Record, UnsignedRecord, is_valid_pubkey
from ..relays.signer import CommandSigner, RecordSigner
from ..social.db import SocialStore
from .output import output_warning

logger = logging.getLogger(__name__)


def resolve_pubkey(ref: str) -> str:
    """Resolve a pubkey reference (64-char hex, any case) to lowercase hex."""
    ref = (ref or "").strip()
    if not ref:
        raise ValidationException("A pubkey is required", field="pubkey")
    if not is_valid_pubkey(ref):
        raise ValidationException("Invalid pubkey format. Use 64-character hex.", field="pubkey", value=ref)
    return ref.lower()


def get_self_pubkey(args: argparse.Namespace) -> str:
    """The agent's own pubkey from --self or TRUSTWEB_PUBKEY."""
    ref = getattr(args, "pubkey_self", None) or get_config().pubkey
    if not ref:
        raise ConfigException(
            "No identity configured. Pass --self or set TRUSTWEB_PUBKEY.",
            missing_vars=["TRUSTWEB_PUBKEY"],
        )
    return resolve_pubkey(ref)


def get_relays(args: argparse.Namespace) -> list[str]:
    """Relays from repeated --relay-url flags, falling back to config."""
    relays = getattr(args, "relay_urls", None)
    return list(relays) if relays else get_config().relay_urls


def open_store(args: argparse.Namespace) -> SocialStore:
    """Open (creating if needed) the social store."""
    return SocialStore.open(getattr(args, "db", None))


def get_signer() -> RecordSigner | None:
    """The configured external signer, if any."""
    command = get_config().signer_command
    return CommandSigner(command) if command else None


async def _publish(record: Record, relays: list[str]) -> list[str]:
    async with RelayPool(relays) as pool:
        return await pool.publish(record)


def publish_record(args: argparse.Namespace, unsigned: UnsignedRecord, label: str) -> bool:
    """Sign and publish a record; failures are warnings, never errors.

    Returns:
        True if at least one relay accepted the record
    """
    signer = get_signer()
    if signer is None:
        output_warning(f"{label} not published: no signer configured (set TRUSTWEB_SIGNER_COMMAND)")
        return False

    relays = get_relays(args)
    if not relays:
        output_warning(f"{label} not published: no relays configured")
        return False

    try:
        record = signer.sign(unsigned)
        accepted = asyncio.run(_publish(record, relays))
    except (SignerException, RelayException) as e:
        output_warning(f"Failed to publish {label.lower()}: {e}")
        return False

    print(f"{label} published to {len(accepted)} relay(s)")
    if not accepted:
        output_warning(f"No relay accepted the {label.lower()}")
    return bool(accepted)


def format_age(timestamp: int | None) -> str:
    """Format a unix timestamp as a human-readable age."""
    if not timestamp:
        return "?"

    delta = datetime.now(UTC) - datetime.fromtimestamp(timestamp, UTC)

    if delta.days > 365:
        return f"{delta.days // 365}y"
    elif delta.days > 30:
        return f"{delta.days // 30}mo"
    elif delta.days > 0:
        return f"{delta.days}d"
    elif delta.seconds > 3600:
        return f"{delta.seconds // 3600}h"
    elif delta.seconds > 60:
        return f"{delta.seconds // 60}m"
    else:
        return "now"
