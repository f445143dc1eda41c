# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Graph sync - mirror the agent's lists from relays into the local store.

Steps (each independently fallible):
1. Fetch the agent's latest contact list; replace local contacts with it.
2. Fetch the agent's latest mute list; replace local mutes with it.
3. If depth > 1, fetch every contact's latest contact list and rebuild the
   edge cache with one distance-1 edge per followed pubkey.

A relay failure in one step is logged and recorded on the report; the
remaining steps still run. Store failures are fatal and propagate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

from ..core.exceptions import RelayException, ValidationException
from ..core.logging import correlation_context
from ..relays.records import (
    KIND_CONTACT_LIST,
    KIND_MUTE_LIST,
    Record,
    RecordFilter,
    latest,
    normalize_pubkey,
)
from .contacts import ContactStore
from .db import SocialStore, unix_now
from .graph import GraphCache
from .mutes import MuteStore
from .sync_state import (
    LAST_SYNC_AT,
    LAST_SYNC_CONTACTS,
    LAST_SYNC_DEPTH,
    LAST_SYNC_MUTES,
    SyncStateStore,
)

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 2

# Relay-side failures that skip a step instead of aborting the sync
NETWORK_ERRORS = (RelayException, aiohttp.ClientError, asyncio.TimeoutError, OSError)


class RecordSource(Protocol):
    """The query half of the relay pool."""

    async def query(self, filters: Any, relays: Sequence[str] | None = None) -> list[Record]: ...


@dataclass
class SyncReport:
    """Outcome of one graph sync."""

    depth: int
    contact_list_found: bool = False
    mute_list_found: bool = False
    contacts_synced: int = 0
    mutes_synced: int = 0
    follow_lists_cached: int = 0
    contacts_total: int = 0
    mutes_total: int = 0
    cached_nodes: int = 0
    cached_edges: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "depth": self.depth,
            "contact_list_found": self.contact_list_found,
            "mute_list_found": self.mute_list_found,
            "contacts_synced": self.contacts_synced,
            "mutes_synced": self.mutes_synced,
            "follow_lists_cached": self.follow_lists_cached,
            "contacts_total": self.contacts_total,
            "mutes_total": self.mutes_total,
            "cached_nodes": self.cached_nodes,
            "cached_edges": self.cached_edges,
            "errors": list(self.errors),
        }


class GraphSync:
    """Repopulates contacts, mutes and the edge cache from relays."""

    def __init__(
        self,
        store: SocialStore,
        source: RecordSource,
        relays: Sequence[str] | None = None,
    ):
        """
        Args:
            store: Open social store
            source: Relay pool (anything with an async ``query``)
            relays: Relays to query; None lets the pool use its defaults
        """
        self.store = store
        self.source = source
        self.relays = list(relays) if relays is not None else None
        self.contacts = ContactStore(store)
        self.mutes = MuteStore(store)
        self.graph = GraphCache(store)
        self.state = SyncStateStore(store)

    async def run(self, self_pubkey: str, depth: int = DEFAULT_DEPTH) -> SyncReport:
        """Run a full sync for ``self_pubkey``.

        Raises:
            ValidationException: If the pubkey is malformed or depth < 1.
            DatabaseException: If the store fails.
        """
        me = normalize_pubkey(self_pubkey, "self_pubkey")
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
            raise ValidationException("Sync depth must be an integer >= 1", field="depth", value=depth)

        report = SyncReport(depth=depth)

        with correlation_context():
            logger.info(f"Syncing social graph for {me[:12]}... (depth: {depth})")

            await self._sync_contacts(me, report)
            await self._sync_mutes(me, report)
            if depth > 1:
                await self._sync_graph(me, report)

            stats = self.graph.stats()
            report.contacts_total = self.contacts.count()
            report.mutes_total = self.mutes.count()
            report.cached_nodes = stats.total_nodes
            report.cached_edges = stats.total_edges

            self.state.set_many(
                {
                    LAST_SYNC_AT: unix_now(),
                    LAST_SYNC_DEPTH: depth,
                    LAST_SYNC_CONTACTS: report.contacts_total,
                    LAST_SYNC_MUTES: report.mutes_total,
                }
            )

            logger.info(
                f"Sync finished: {report.contacts_total} contacts, {report.mutes_total} mutes, "
                f"{report.cached_nodes} cached nodes, {report.cached_edges} cached edges"
            )

        return report

    async def _fetch_own_list(self, me: str, kind: int) -> Record | None:
        records = await self.source.query(
            RecordFilter(kinds=[kind], authors=[me], limit=1),
            self.relays,
        )
        return latest([r for r in records if r.pubkey == me and r.kind == kind])

    async def _sync_contacts(self, me: str, report: SyncReport) -> None:
        logger.info("Fetching contact list...")
        try:
            record = await self._fetch_own_list(me, KIND_CONTACT_LIST)
        except NETWORK_ERRORS as e:
            logger.warning(f"Failed to fetch contact list: {e}")
            report.errors.append(f"contact list: {e}")
            return

        if record is None:
            logger.info("No contact list found on relays")
            return

        references = [ref for ref in record.pubkey_references() if ref.pubkey != me]
        report.contact_list_found = True
        report.contacts_synced = self.contacts.replace_all(references)
        logger.info(f"Synced {report.contacts_synced} contacts")

    async def _sync_mutes(self, me: str, report: SyncReport) -> None:
        logger.info("Fetching mute list...")
        try:
            record = await self._fetch_own_list(me, KIND_MUTE_LIST)
        except NETWORK_ERRORS as e:
            logger.warning(f"Failed to fetch mute list: {e}")
            report.errors.append(f"mute list: {e}")
            return

        if record is None:
            logger.info("No mute list found on relays")
            return

        report.mute_list_found = True
        report.mutes_synced = self.mutes.replace_all(record.referenced_pubkeys())
        logger.info(f"Synced {report.mutes_synced} mutes")

    async def _sync_graph(self, me: str, report: SyncReport) -> None:
        logger.info("Building social graph cache...")
        contact_pubkeys = self.contacts.pubkeys()

        if not contact_pubkeys:
            self.graph.clear()
            logger.info("No contacts, graph cache cleared")
            return

        try:
            records = await self.source.query(
                RecordFilter(kinds=[KIND_CONTACT_LIST], authors=contact_pubkeys),
                self.relays,
            )
        except NETWORK_ERRORS as e:
            logger.warning(f"Failed to fetch contacts' follow lists, keeping previous cache: {e}")
            report.errors.append(f"follow lists: {e}")
            return

        contact_set = set(contact_pubkeys)
        newest: dict[str, Record] = {}
        for record in records:
            if record.kind != KIND_CONTACT_LIST or record.pubkey not in contact_set:
                continue
            current = newest.get(record.pubkey)
            if current is None or record.created_at > current.created_at:
                newest[record.pubkey] = record

        with self.store.transaction():
            self.graph.clear()
            for author, record in newest.items():
                targets = [pk for pk in record.referenced_pubkeys() if pk != author]
                self.graph.upsert_edges(author, targets, 1)

        report.follow_lists_cached = len(newest)
        logger.info(f"Cached {len(newest)} follow lists from {len(records)} record(s)")
