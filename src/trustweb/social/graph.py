# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Social graph cache and trust distance.

Trust distance is the number of follow hops from the agent to an author,
as far as the local cache knows:

    0  the agent itself
    1  a direct contact
    n  min(edge.distance) + 1 over cached edges whose source is a contact

Edges are only ever recorded with a direct contact as source (one-hop
crawl), so in practice the resolver answers 0, 1, 2 or unknown (None).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..core.exceptions import ValidationException
from ..relays.records import normalize_pubkey
from .db import SocialStore, unix_now
from .mutes import MuteStore

logger = logging.getLogger(__name__)

EDGE_COLUMNS = ("source_pubkey", "target_pubkey", "distance", "updated_at")


@dataclass
class GraphEdge:
    """``target`` is ``distance`` hops beyond ``source``."""

    source_pubkey: str
    target_pubkey: str
    distance: int
    updated_at: int = 0

    @classmethod
    def from_row(cls, row: Any) -> GraphEdge:
        return cls(
            source_pubkey=row["source_pubkey"],
            target_pubkey=row["target_pubkey"],
            distance=row["distance"],
            updated_at=row["updated_at"],
        )


@dataclass
class GraphStats:
    """Aggregate view of the edge cache."""

    total_nodes: int = 0
    total_edges: int = 0
    max_distance: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "max_distance": self.max_distance,
        }


class GraphCache:
    """CRUD view over the graph_cache relation."""

    def __init__(self, store: SocialStore):
        self.store = store

    def upsert_edges(self, source_pubkey: str, targets: Iterable[str], distance: int) -> int:
        """Record ``source → target`` at ``distance`` for every target, atomically.

        An existing edge for the same pair is overwritten, not merged.

        Raises:
            ValidationException: For a malformed pubkey or negative distance.

        Returns:
            Number of edges written
        """
        if isinstance(distance, bool) or not isinstance(distance, int) or distance < 0:
            raise ValidationException("Distance must be a non-negative integer", field="distance", value=distance)

        source = normalize_pubkey(source_pubkey, "source_pubkey")
        now = unix_now()
        rows = [(source, normalize_pubkey(target, "target_pubkey"), distance, now) for target in targets]
        if not rows:
            return 0
        return self.store.upsert("graph_cache", EDGE_COLUMNS, rows)

    def edges_to(self, target_pubkey: str) -> list[GraphEdge]:
        rows = self.store.fetchall(
            "SELECT * FROM graph_cache WHERE target_pubkey = ? ORDER BY source_pubkey",
            (target_pubkey.lower(),),
        )
        return [GraphEdge.from_row(row) for row in rows]

    def clear(self) -> int:
        """Delete every cached edge. Contacts and mutes are untouched."""
        return self.store.delete_all("graph_cache")

    def stats(self) -> GraphStats:
        row = self.store.fetchone(
            """
            SELECT COUNT(DISTINCT target_pubkey) AS nodes,
                   COUNT(*) AS edges,
                   MAX(distance) AS max_distance
            FROM graph_cache
            """
        )
        if row is None:
            return GraphStats()
        return GraphStats(
            total_nodes=row["nodes"] or 0,
            total_edges=row["edges"] or 0,
            max_distance=row["max_distance"] or 0,
        )


class TrustResolver:
    """Answers "how many hops is this author from me?"."""

    def __init__(self, store: SocialStore):
        self.store = store

    def distance(self, target: str, self_pubkey: str) -> int | None:
        """Trust distance from ``self_pubkey`` to ``target``, or None if unknown."""
        target = target.lower()
        if target == self_pubkey.lower():
            return 0

        if self.store.fetchone("SELECT 1 FROM contacts WHERE pubkey = ?", (target,)) is not None:
            return 1

        return self.store.scalar(
            """
            SELECT MIN(distance) + 1
            FROM graph_cache
            WHERE source_pubkey IN (SELECT pubkey FROM contacts)
              AND target_pubkey = ?
            """,
            (target,),
        )


class TrustFilter:
    """Keeps authors within a trust distance, always dropping muted ones."""

    def __init__(self, store: SocialStore):
        self.resolver = TrustResolver(store)
        self.mutes = MuteStore(store)

    def allows(self, author: str, self_pubkey: str, max_distance: int) -> bool:
        if self.mutes.contains(author):
            return False
        distance = self.resolver.distance(author, self_pubkey)
        if distance is None:
            return False
        return distance <= max_distance

    def filter(self, authors: Sequence[str], self_pubkey: str, max_distance: int) -> list[str]:
        """Order-preserving subsequence of ``authors`` that passes ``allows``."""
        return [author for author in authors if self.allows(author, self_pubkey, max_distance)]
