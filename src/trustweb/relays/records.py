# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Record and filter shapes exchanged with relays.

A record is the signed, content-addressed unit relays store and return.
trustweb never signs or verifies records itself; it only reads the
fields it needs (author, kind, tags, created_at) and shapes queries.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.exceptions import ValidationException

KIND_CONTACT_LIST = 3
KIND_MUTE_LIST = 10000

PUBKEY_TAG = "p"

_HEX64 = re.compile(r"^[0-9a-fA-F]{64}$")


def is_valid_pubkey(value: Any) -> bool:
    """True when ``value`` is a 64 character hex string (any case)."""
    return isinstance(value, str) and bool(_HEX64.match(value))


def normalize_pubkey(value: Any, field_name: str = "pubkey") -> str:
    """Validate a hex pubkey reference and return it lowercased.

    Raises:
        ValidationException: If the value is not 64 hex characters.
    """
    if not is_valid_pubkey(value):
        raise ValidationException(
            "Invalid pubkey format, expected 64 hex characters",
            field=field_name,
            value=value,
        )
    return value.lower()


@dataclass(frozen=True)
class PubkeyReference:
    """A ``p`` tag: referenced pubkey with optional relay hint and petname."""

    pubkey: str
    relay_hint: str | None = None
    petname: str | None = None


@dataclass
class UnsignedRecord:
    """Record content handed to a signer."""

    pubkey: str
    kind: int
    tags: list[list[str]] = field(default_factory=list)
    content: str = ""
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(t) for t in self.tags],
            "content": self.content,
        }


@dataclass
class Record:
    """A signed record as returned by relays."""

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: list[list[str]] = field(default_factory=list)
    content: str = ""
    sig: str = ""

    @property
    def author(self) -> str:
        return self.pubkey

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(t) for t in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Record:
        """Build a record from its wire shape.

        Only structure is checked here. Signature verification belongs to
        the external identity service.

        Raises:
            ValidationException: If required fields are missing or mistyped.
        """
        if not isinstance(data, dict):
            raise ValidationException("Record must be a JSON object", field="record")

        record_id = data.get("id")
        if not isinstance(record_id, str) or not record_id:
            raise ValidationException("Record is missing an id", field="id", value=record_id)

        pubkey = data.get("pubkey")
        if not is_valid_pubkey(pubkey):
            raise ValidationException("Record has an invalid author pubkey", field="pubkey", value=pubkey)

        kind = data.get("kind")
        if not isinstance(kind, int) or isinstance(kind, bool):
            raise ValidationException("Record kind must be an integer", field="kind", value=kind)

        created_at = data.get("created_at")
        if not isinstance(created_at, int) or isinstance(created_at, bool):
            raise ValidationException("Record created_at must be an integer", field="created_at", value=created_at)

        raw_tags = data.get("tags", [])
        if not isinstance(raw_tags, list):
            raise ValidationException("Record tags must be a list", field="tags")
        tags: list[list[str]] = []
        for tag in raw_tags:
            if not isinstance(tag, list) or not all(isinstance(part, str) for part in tag):
                raise ValidationException("Record tags must be lists of strings", field="tags", value=tag)
            tags.append(list(tag))

        content = data.get("content", "")
        if not isinstance(content, str):
            raise ValidationException("Record content must be a string", field="content")

        return cls(
            id=record_id,
            pubkey=pubkey.lower(),
            created_at=created_at,
            kind=kind,
            tags=tags,
            content=content,
            sig=str(data.get("sig", "")),
        )

    def pubkey_references(self) -> Iterator[PubkeyReference]:
        """Yield ``p`` tags whose value is a valid pubkey, in tag order.

        Empty relay/petname slots are reported as None.
        """
        for tag in self.tags:
            if len(tag) < 2 or tag[0] != PUBKEY_TAG or not is_valid_pubkey(tag[1]):
                continue
            relay_hint = tag[2] if len(tag) > 2 and tag[2] else None
            petname = tag[3] if len(tag) > 3 and tag[3] else None
            yield PubkeyReference(tag[1].lower(), relay_hint, petname)

    def referenced_pubkeys(self) -> list[str]:
        """Pubkeys referenced through ``p`` tags, in tag order."""
        return [ref.pubkey for ref in self.pubkey_references()]


@dataclass
class RecordFilter:
    """A relay subscription filter. Unset fields are left out of the query."""

    ids: Sequence[str] | None = None
    authors: Sequence[str] | None = None
    kinds: Sequence[int] | None = None
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.ids is not None:
            data["ids"] = list(self.ids)
        if self.authors is not None:
            data["authors"] = list(self.authors)
        if self.kinds is not None:
            data["kinds"] = list(self.kinds)
        if self.since is not None:
            data["since"] = self.since
        if self.until is not None:
            data["until"] = self.until
        if self.limit is not None:
            data["limit"] = self.limit
        return data


def latest(records: Sequence[Record]) -> Record | None:
    """Most recent record by created_at; the first one wins ties."""
    best: Record | None = None
    for record in records:
        if best is None or record.created_at > best.created_at:
            best = record
    return best
