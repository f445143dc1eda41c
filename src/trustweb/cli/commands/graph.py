# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Graph commands: sync, filter, stats, distance, clear."""

from __future__ import annotations

import argparse
import asyncio
import io
import sys
from datetime import UTC, datetime

from ...core.config import get_config
from ...core.exceptions import ConfigException
from ...relays.pool import RelayPool
from ...social.contacts import ContactStore
from ...social.db import SocialStore
from ...social.graph import GraphCache, TrustResolver
from ...social.mutes import MuteStore
from ...social.stream import StreamFilter
from ...social.sync import GraphSync, SyncReport
from ...social.sync_state import LAST_SYNC_AT, LAST_SYNC_DEPTH, SyncStateStore
from ..output import output_json, output_warning
from ..utils import format_age, get_relays, get_self_pubkey, open_store, resolve_pubkey


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the graph command group on the CLI parser."""
    graph_parser = subparsers.add_parser("graph", help="Social graph cache and trust filtering")
    graph_subparsers = graph_parser.add_subparsers(dest="graph_command", required=True)

    # graph sync
    sync_parser = graph_subparsers.add_parser("sync", help="Sync contacts, mutes and follows-of-follows from relays")
    sync_parser.add_argument(
        "--depth",
        "-d",
        type=int,
        default=None,
        help="1 = own lists only, >1 = also cache contacts' follows (default: TRUSTWEB_SYNC_DEPTH or 2)",
    )
    sync_parser.add_argument("--json", "-j", action="store_true", help="Output the sync report as JSON")
    sync_parser.set_defaults(func=cmd_graph_sync)

    # graph filter
    filter_parser = graph_subparsers.add_parser("filter", help="Filter line-delimited records on stdin by trust distance")
    filter_parser.add_argument(
        "--max-distance",
        "-m",
        type=int,
        default=None,
        help="Maximum trust distance to keep (default: TRUSTWEB_MAX_DISTANCE or 2)",
    )
    filter_parser.set_defaults(func=cmd_graph_filter)

    # graph stats
    stats_parser = graph_subparsers.add_parser("stats", help="Show graph cache statistics")
    stats_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    stats_parser.set_defaults(func=cmd_graph_stats)

    # graph distance
    distance_parser = graph_subparsers.add_parser("distance", help="Show the trust distance to an author")
    distance_parser.add_argument("pubkey", help="Author pubkey (64-char hex)")
    distance_parser.add_argument("--via", action="store_true", help="Also list the contacts that follow the author")
    distance_parser.set_defaults(func=cmd_graph_distance)

    # graph clear
    clear_parser = graph_subparsers.add_parser("clear", help="Empty the follows-of-follows cache")
    clear_parser.set_defaults(func=cmd_graph_clear)


async def _run_sync(store: SocialStore, me: str, depth: int, relays: list[str]) -> SyncReport:
    async with RelayPool(relays) as pool:
        return await GraphSync(store, pool).run(me, depth)


def cmd_graph_sync(args: argparse.Namespace) -> int:
    """Sync the social graph from relays."""
    me = get_self_pubkey(args)
    depth = args.depth if args.depth is not None else get_config().sync_depth
    relays = get_relays(args)
    if not relays:
        raise ConfigException("No relays configured", missing_vars=["TRUSTWEB_RELAYS"])

    print(f"Syncing social graph (depth: {depth})...")
    with open_store(args) as store:
        report = asyncio.run(_run_sync(store, me, depth, relays))

    for error in report.errors:
        output_warning(f"Sync step failed: {error}")

    if args.json:
        output_json(report.to_dict())
        return 0

    if not report.contact_list_found:
        print("No contact list found on relays")
    if not report.mute_list_found:
        print("No mute list found on relays")

    print("\nGraph Statistics:")
    print(f"  Contacts: {report.contacts_total}")
    print(f"  Mutes: {report.mutes_total}")
    print(f"  Cached nodes: {report.cached_nodes}")
    print(f"  Cached edges: {report.cached_edges}")
    return 0


def _lenient(stream):
    """Let undecodable bytes round-trip unchanged through a text stream."""
    if isinstance(stream, io.TextIOWrapper):
        stream.reconfigure(errors="surrogateescape")
    return stream


def cmd_graph_filter(args: argparse.Namespace) -> int:
    """Filter records from stdin by trust distance, writing survivors to stdout."""
    me = get_self_pubkey(args)
    max_distance = args.max_distance if args.max_distance is not None else get_config().max_distance

    with open_store(args) as store:
        result = StreamFilter(store, me, max_distance).run(_lenient(sys.stdin), _lenient(sys.stdout))

    print(result.summary(), file=sys.stderr)
    return 0


def cmd_graph_stats(args: argparse.Namespace) -> int:
    """Show contact, mute and cache counts."""
    with open_store(args) as store:
        stats = GraphCache(store).stats()
        state = SyncStateStore(store)
        data = {
            "contacts": ContactStore(store).count(),
            "mutes": MuteStore(store).count(),
            **stats.to_dict(),
            "last_sync_at": state.get_int(LAST_SYNC_AT),
            "last_sync_depth": state.get_int(LAST_SYNC_DEPTH),
            "sync_state": state.all(),
        }

    if args.json:
        output_json(data)
        return 0

    last_sync = data["last_sync_at"]
    if last_sync:
        when = datetime.fromtimestamp(last_sync, UTC).isoformat(timespec="seconds")
        last_sync_str = f"{when} ({format_age(last_sync)} ago, depth {data['last_sync_depth']})"
    else:
        last_sync_str = "never"

    print("Graph Statistics:")
    print(f"  Contacts: {data['contacts']}")
    print(f"  Mutes: {data['mutes']}")
    print(f"  Cached nodes: {data['total_nodes']}")
    print(f"  Cached edges: {data['total_edges']}")
    print(f"  Max cached distance: {data['max_distance']}")
    print(f"  Last sync: {last_sync_str}")
    return 0


def cmd_graph_distance(args: argparse.Namespace) -> int:
    """Print the trust distance to one author, or "unknown"."""
    me = get_self_pubkey(args)
    target = resolve_pubkey(args.pubkey)

    via: list[str] = []
    with open_store(args) as store:
        distance = TrustResolver(store).distance(target, me)
        muted = MuteStore(store).contains(target)
        if args.via and distance is not None and distance > 1:
            contacts = ContactStore(store)
            via = [e.source_pubkey for e in GraphCache(store).edges_to(target) if contacts.contains(e.source_pubkey)]

    label = "unknown" if distance is None else str(distance)
    print(f"{label} (muted)" if muted else label)
    for source in via:
        print(f"  via {source}")
    return 0


def cmd_graph_clear(args: argparse.Namespace) -> int:
    """Empty the edge cache."""
    with open_store(args) as store:
        removed = GraphCache(store).clear()
    print(f"Cleared {removed} cached edge(s)")
    return 0
