# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""SQLite persistence for the social graph.

Holds four relations:
- contacts: pubkeys the agent follows
- mutes: pubkeys the agent always excludes
- graph_cache: (source, target, distance) edges from one-hop crawls
- sync_state: key/value metadata about the last sync

One SocialStore handle is opened per process and passed to every
component that needs persistence. The store is not meant for concurrent
writers in several processes.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Generator, Iterable, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ..core.exceptions import DatabaseException

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

SCHEMA = """
-- People we follow
CREATE TABLE IF NOT EXISTS contacts (
    pubkey TEXT PRIMARY KEY,
    relay TEXT,
    petname TEXT,
    added_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now'))
);

-- Muted authors
CREATE TABLE IF NOT EXISTS mutes (
    pubkey TEXT PRIMARY KEY,
    added_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now'))
);

-- One-hop follow edges discovered during sync
CREATE TABLE IF NOT EXISTS graph_cache (
    source_pubkey TEXT NOT NULL,
    target_pubkey TEXT NOT NULL,
    distance INTEGER NOT NULL,
    updated_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now')),
    PRIMARY KEY (source_pubkey, target_pubkey)
);

-- Sync bookkeeping
CREATE TABLE IF NOT EXISTS sync_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_graph_distance ON graph_cache(distance);
CREATE INDEX IF NOT EXISTS idx_graph_target ON graph_cache(target_pubkey);
"""


def unix_now() -> int:
    """Current time as integer unix seconds."""
    return int(time.time())


class SocialStore:
    """Handle on the social graph database.

    Usage:
        with SocialStore.open(path) as store:
            ContactStore(store).add(pubkey)

    Connections run in autocommit mode; ``transaction()`` groups statements
    into one atomic unit and may be nested (inner blocks join the outer
    transaction).
    """

    def __init__(self, path: str | Path | None = None):
        """
        Args:
            path: Database file, or ":memory:". Defaults to the configured path.
        """
        if path is None:
            from ..core.config import get_config

            path = get_config().database_path
        self.path = str(path) if str(path) == MEMORY_PATH else str(Path(path).expanduser())
        self._conn: sqlite3.Connection | None = None
        self._tx_depth = 0

    @classmethod
    def open(cls, path: str | Path | None = None) -> SocialStore:
        """Create a store and initialize it (create-on-first-use)."""
        store = cls(path)
        store.initialize()
        return store

    def initialize(self) -> None:
        """Open the connection and create the schema if missing.

        Raises:
            DatabaseException: If the file cannot be created or opened.
        """
        if self._conn is not None:
            return

        try:
            if self.path != MEMORY_PATH:
                directory = Path(self.path).parent
                directory.mkdir(parents=True, exist_ok=True, mode=0o700)

            conn = sqlite3.connect(self.path, isolation_level=None, timeout=30.0)
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise DatabaseException(
                f"Cannot open social store at {self.path}: {e}",
                {"path": self.path},
            ) from e

        self._conn = conn
        logger.debug(f"Opened social store at {self.path}")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseException("Social store is not open", {"path": self.path})
        return self._conn

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._tx_depth = 0

    def __enter__(self) -> SocialStore:
        self.initialize()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block atomically: everything commits or nothing does.

        Nested calls join the outermost transaction.
        """
        conn = self.connection

        if self._tx_depth:
            self._tx_depth += 1
            try:
                yield conn
            finally:
                self._tx_depth -= 1
            return

        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise DatabaseException(f"Cannot start transaction: {e}") from e

        self._tx_depth = 1
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise
        finally:
            self._tx_depth = 0

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute one statement, wrapping driver errors."""
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as e:
            raise DatabaseException(f"Statement failed: {e}", {"sql": sql.strip()}) from e

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Sequence[Any] = (), default: Any = None) -> Any:
        """First column of the first row, or ``default`` when absent or NULL."""
        row = self.fetchone(sql, params)
        if row is None or row[0] is None:
            return default
        return row[0]

    def upsert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
        """Insert rows, replacing any existing row with the same primary key.

        Rows are applied in order inside one transaction, so among rows
        sharing a key the last one wins.

        Returns:
            Number of rows written (including replacements)
        """
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT OR REPLACE INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        written = 0
        with self.transaction() as conn:
            for row in rows:
                try:
                    conn.execute(sql, tuple(row))
                except sqlite3.Error as e:
                    raise DatabaseException(f"Upsert into {table} failed: {e}") from e
                written += 1
        return written

    def delete_all(self, table: str) -> int:
        """Delete every row of a table, returning how many were removed."""
        with self.transaction():
            return self.execute(f"DELETE FROM {table}").rowcount
