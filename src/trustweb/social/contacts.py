# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Contacts: the pubkeys the agent follows (trust distance 1)."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Union

from ..core.exceptions import ValidationException
from ..relays.records import PubkeyReference, normalize_pubkey
from .db import SocialStore, unix_now

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = ("pubkey", "relay", "petname", "added_at")


@dataclass
class Contact:
    """A followed author."""

    pubkey: str
    relay_hint: str | None = None
    petname: str | None = None
    added_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pubkey": self.pubkey,
            "relay_hint": self.relay_hint,
            "petname": self.petname,
            "added_at": self.added_at,
        }

    def to_tag(self) -> list[str]:
        """``p`` tag for a published contact list."""
        tag = ["p", self.pubkey]
        if self.relay_hint or self.petname:
            tag.append(self.relay_hint or "")
        if self.petname:
            tag.append(self.petname)
        return tag

    @classmethod
    def from_row(cls, row: Any) -> Contact:
        return cls(
            pubkey=row["pubkey"],
            relay_hint=row["relay"],
            petname=row["petname"],
            added_at=row["added_at"],
        )


ContactInput = Union[Contact, PubkeyReference, str, Sequence[str | None]]


def _coerce(item: ContactInput) -> tuple[str, str | None, str | None]:
    if isinstance(item, (Contact, PubkeyReference)):
        pubkey, relay_hint, petname = item.pubkey, item.relay_hint, item.petname
    elif isinstance(item, str):
        pubkey, relay_hint, petname = item, None, None
    else:
        parts = list(item)
        if not parts or len(parts) > 3:
            raise ValidationException("Contact must be (pubkey, relay_hint, petname)", field="contact", value=item)
        parts += [None] * (3 - len(parts))
        pubkey, relay_hint, petname = parts
    return normalize_pubkey(pubkey), relay_hint or None, petname or None


class ContactStore:
    """CRUD view over the contacts relation."""

    def __init__(self, store: SocialStore):
        self.store = store

    def add(self, pubkey: str, relay_hint: str | None = None, petname: str | None = None) -> Contact:
        """Follow ``pubkey``, replacing any previous relay hint and petname.

        Raises:
            ValidationException: If the pubkey is malformed.
        """
        contact = Contact(*_coerce((pubkey, relay_hint, petname)), added_at=unix_now())
        self.store.upsert(
            "contacts",
            CONTACT_COLUMNS,
            [(contact.pubkey, contact.relay_hint, contact.petname, contact.added_at)],
        )
        logger.debug(f"Added contact {contact.pubkey[:12]}...")
        return contact

    def remove(self, pubkey: str) -> bool:
        """Unfollow. Returns True if the pubkey was a contact."""
        removed = self.store.execute("DELETE FROM contacts WHERE pubkey = ?", (pubkey.lower(),)).rowcount > 0
        if removed:
            logger.debug(f"Removed contact {pubkey[:12]}...")
        return removed

    def contains(self, pubkey: str) -> bool:
        return self.store.fetchone("SELECT 1 FROM contacts WHERE pubkey = ?", (pubkey.lower(),)) is not None

    def get(self, pubkey: str) -> Contact | None:
        row = self.store.fetchone(
            "SELECT pubkey, relay, petname, added_at FROM contacts WHERE pubkey = ?",
            (pubkey.lower(),),
        )
        return Contact.from_row(row) if row else None

    def list(self) -> list[Contact]:
        """All contacts, most recently added first."""
        rows = self.store.fetchall(
            """
            SELECT pubkey, relay, petname, added_at
            FROM contacts
            ORDER BY added_at DESC, rowid DESC
            """
        )
        return [Contact.from_row(row) for row in rows]

    def pubkeys(self) -> list[str]:
        return [row["pubkey"] for row in self.store.fetchall("SELECT pubkey FROM contacts")]

    def count(self) -> int:
        return self.store.scalar("SELECT COUNT(*) FROM contacts", default=0)

    def clear(self) -> int:
        """Delete every contact. Mutes and cached edges are untouched."""
        return self.store.delete_all("contacts")

    def bulk_upsert(self, items: Iterable[ContactInput]) -> int:
        """Upsert many contacts atomically; the last duplicate wins.

        Every item is validated before anything is written.

        Returns:
            Number of input rows applied
        """
        now = unix_now()
        rows = [(*_coerce(item), now) for item in items]
        if not rows:
            return 0
        return self.store.upsert("contacts", CONTACT_COLUMNS, rows)

    def replace_all(self, items: Iterable[ContactInput]) -> int:
        """Make the relation mirror ``items`` exactly, in one transaction."""
        items = list(items)
        with self.store.transaction():
            self.clear()
            self.bulk_upsert(items)
        return self.count()
