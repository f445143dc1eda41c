# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Social graph: contacts, mutes, edge cache, trust distance and sync."""

from .contacts import Contact, ContactStore
from .db import SocialStore
from .graph import GraphCache, GraphEdge, GraphStats, TrustFilter, TrustResolver
from .lists import contact_list_record, mute_list_record
from .mutes import Mute, MuteStore
from .stream import LineOutcome, StreamFilter, StreamFilterResult, classify_line
from .sync import GraphSync, SyncReport
from .sync_state import SyncStateStore

__all__ = [
    "SocialStore",
    "Contact",
    "ContactStore",
    "Mute",
    "MuteStore",
    "GraphCache",
    "GraphEdge",
    "GraphStats",
    "TrustResolver",
    "TrustFilter",
    "SyncStateStore",
    "GraphSync",
    "SyncReport",
    "StreamFilter",
    "StreamFilterResult",
    "LineOutcome",
    "classify_line",
    "contact_list_record",
    "mute_list_record",
]
