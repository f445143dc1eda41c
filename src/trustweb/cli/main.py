# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""
trustweb CLI - personal web of trust for pseudonymous social networks.

Commands:
  trustweb follow <pubkey>       Follow an author (publishes contact list)
  trustweb unfollow <pubkey>     Unfollow an author
  trustweb mute <pubkey>         Mute an author (publishes mute list)
  trustweb unmute <pubkey>       Unmute an author
  trustweb contacts              List followed authors
  trustweb mutes                 List muted authors
  trustweb graph sync            Sync lists and follows-of-follows from relays
  trustweb graph filter          Filter records on stdin by trust distance
  trustweb graph stats           Show cache statistics
  trustweb graph distance <pk>   Show the trust distance to an author
  trustweb graph clear           Empty the follows-of-follows cache
"""

from __future__ import annotations

import argparse
import logging
import sys

from ..core.exceptions import TrustwebException
from ..core.logging import configure_logging
from .commands import COMMAND_MODULES
from .output import output_error

logger = logging.getLogger(__name__)


def app() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="trustweb",
        description="Personal web of trust for pseudonymous social event networks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  trustweb follow <hex> --petname alice     Follow and publish contact list
  trustweb mute <hex> --no-publish          Mute locally only
  trustweb graph sync --depth 2             Cache follows of follows
  cat feed.jsonl | trustweb graph filter -m 1
  trustweb --self <hex> graph distance <hex>

Environment:
  TRUSTWEB_PUBKEY           Your own pubkey (64-char hex)
  TRUSTWEB_RELAYS           Comma-separated relay URLs
  TRUSTWEB_SIGNER_COMMAND   Command that signs a record read from stdin
  TRUSTWEB_DB_PATH          Social graph database file
        """,
    )

    parser.add_argument("--self", dest="pubkey_self", metavar="PUBKEY", help="Your own pubkey (overrides TRUSTWEB_PUBKEY)")
    parser.add_argument("--db", help="Social graph database path (overrides TRUSTWEB_DB_PATH)")
    parser.add_argument(
        "--relay-url",
        action="append",
        dest="relay_urls",
        metavar="URL",
        help="Relay to use (repeatable, overrides TRUSTWEB_RELAYS)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for module in COMMAND_MODULES:
        module.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = app()
    args = parser.parse_args(argv)

    configure_logging(level="DEBUG" if args.verbose else None)

    try:
        return args.func(args)
    except TrustwebException as e:
        logger.debug(f"Command {args.command} failed", exc_info=True)
        output_error(e.message)
        return 1
    except KeyboardInterrupt:
        output_error("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
