# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Turn the local contact and mute lists into unsigned records for publishing."""

from __future__ import annotations

from ..relays.records import KIND_CONTACT_LIST, KIND_MUTE_LIST, UnsignedRecord
from .contacts import ContactStore
from .db import unix_now
from .mutes import MuteStore


def contact_list_record(contacts: ContactStore, self_pubkey: str) -> UnsignedRecord:
    """The full local contact list as a kind 3 record."""
    return UnsignedRecord(
        pubkey=self_pubkey,
        kind=KIND_CONTACT_LIST,
        tags=[contact.to_tag() for contact in contacts.list()],
        created_at=unix_now(),
    )


def mute_list_record(mutes: MuteStore, self_pubkey: str) -> UnsignedRecord:
    """The full local mute list as a kind 10000 record."""
    return UnsignedRecord(
        pubkey=self_pubkey,
        kind=KIND_MUTE_LIST,
        tags=[mute.to_tag() for mute in mutes.list()],
        created_at=unix_now(),
    )
