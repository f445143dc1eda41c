# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Mutes: pubkeys that are always filtered out, whatever their distance."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..relays.records import PubkeyReference, normalize_pubkey
from .db import SocialStore, unix_now

logger = logging.getLogger(__name__)

MUTE_COLUMNS = ("pubkey", "added_at")


@dataclass
class Mute:
    """A muted author. Presence is all that matters."""

    pubkey: str
    added_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"pubkey": self.pubkey, "added_at": self.added_at}

    def to_tag(self) -> list[str]:
        return ["p", self.pubkey]

    @classmethod
    def from_row(cls, row: Any) -> Mute:
        return cls(pubkey=row["pubkey"], added_at=row["added_at"])


def _coerce(item: Mute | PubkeyReference | str) -> str:
    if isinstance(item, (Mute, PubkeyReference)):
        return normalize_pubkey(item.pubkey)
    return normalize_pubkey(item)


class MuteStore:
    """CRUD view over the mutes relation."""

    def __init__(self, store: SocialStore):
        self.store = store

    def add(self, pubkey: str) -> Mute:
        """Mute ``pubkey`` (refreshing added_at if already muted)."""
        mute = Mute(pubkey=_coerce(pubkey), added_at=unix_now())
        self.store.upsert("mutes", MUTE_COLUMNS, [(mute.pubkey, mute.added_at)])
        logger.debug(f"Muted {mute.pubkey[:12]}...")
        return mute

    def remove(self, pubkey: str) -> bool:
        """Unmute. Returns True if the pubkey was muted."""
        return self.store.execute("DELETE FROM mutes WHERE pubkey = ?", (pubkey.lower(),)).rowcount > 0

    def contains(self, pubkey: str) -> bool:
        return self.store.fetchone("SELECT 1 FROM mutes WHERE pubkey = ?", (pubkey.lower(),)) is not None

    def list(self) -> list[Mute]:
        """All mutes, most recent first."""
        rows = self.store.fetchall("SELECT pubkey, added_at FROM mutes ORDER BY added_at DESC, rowid DESC")
        return [Mute.from_row(row) for row in rows]

    def count(self) -> int:
        return self.store.scalar("SELECT COUNT(*) FROM mutes", default=0)

    def clear(self) -> int:
        """Delete every mute. Contacts and cached edges are untouched."""
        return self.store.delete_all("mutes")

    def bulk_upsert(self, items: Iterable[Mute | PubkeyReference | str]) -> int:
        """Upsert many mutes atomically. Validates everything before writing."""
        now = unix_now()
        rows = [(_coerce(item), now) for item in items]
        if not rows:
            return 0
        return self.store.upsert("mutes", MUTE_COLUMNS, rows)

    def replace_all(self, items: Iterable[Mute | PubkeyReference | str]) -> int:
        """Make the relation mirror ``items`` exactly, in one transaction."""
        items = list(items)
        with self.store.transaction():
            self.clear()
            self.bulk_upsert(items)
        return self.count()
