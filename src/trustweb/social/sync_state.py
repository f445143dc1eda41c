# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Key/value bookkeeping about graph syncs (last run time, counts)."""

from __future__ import annotations

from .db import SocialStore, unix_now

LAST_SYNC_AT = "last_sync_at"
LAST_SYNC_DEPTH = "last_sync_depth"
LAST_SYNC_CONTACTS = "last_sync_contacts"
LAST_SYNC_MUTES = "last_sync_mutes"


class SyncStateStore:
    """View over the sync_state relation. Values are stored as text."""

    def __init__(self, store: SocialStore):
        self.store = store

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.store.scalar("SELECT value FROM sync_state WHERE key = ?", (key,), default=default)

    def get_int(self, key: str) -> int | None:
        value = self.get(key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    def set_many(self, values: dict[str, object]) -> None:
        now = unix_now()
        self.store.upsert(
            "sync_state",
            ("key", "value", "updated_at"),
            [(key, str(value), now) for key, value in values.items()],
        )

    def all(self) -> dict[str, str]:
        return {row["key"]: row["value"] for row in self.store.fetchall("SELECT key, value FROM sync_state ORDER BY key")}
