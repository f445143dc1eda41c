"""Global test fixtures for the trustweb test suite."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Sequence
from typing import Any

import pytest

from trustweb.core.config import clear_config_cache
from trustweb.relays.records import Record, RecordFilter
from trustweb.social.db import SocialStore

# ============================================================================
# Fixture identities
# ============================================================================

# Readable single-character names for the fixture graph, mapped to hex pubkeys.
PUBKEYS = {
    "M": "1" * 64,  # self
    "A": "a" * 64,
    "B": "b" * 64,
    "C": "c" * 64,
    "D": "d" * 64,
    "E": "e" * 64,
    "Stranger": "f" * 64,
    "Spammer": "9" * 64,
}


def _make_record(
    author: str,
    kind: int,
    follows: Sequence[str | Sequence[str]] = (),
    created_at: int = 1_700_000_000,
    content: str = "",
) -> Record:
    """Build a record whose tags are ``p`` references to ``follows``.

    Each follow is either a pubkey or a (pubkey, relay, petname) tuple.
    """
    tags: list[list[str]] = []
    for follow in follows:
        if isinstance(follow, str):
            tags.append(["p", follow])
        else:
            tags.append(["p", *follow])
    digest = hashlib.sha256(f"{author}:{kind}:{created_at}:{tags}".encode()).hexdigest()
    return Record(
        id=digest,
        pubkey=author,
        created_at=created_at,
        kind=kind,
        tags=tags,
        content=content,
        sig="0" * 128,
    )


class FakeRecordSource:
    """In-memory stand-in for RelayPool.query.

    Returns every stored record matching the filter's kinds and authors,
    ignoring limit, the way several relays answering together would.
    """

    def __init__(self, records: Sequence[Record] = ()):
        self.records = list(records)
        self.queries: list[dict[str, Any]] = []
        self.fail_kinds: set[int] = set()

    async def query(self, filters: Any, relays: Sequence[str] | None = None) -> list[Record]:
        filter_list = filters if isinstance(filters, list) else [filters]
        results: list[Record] = []
        for item in filter_list:
            data = item.to_dict() if isinstance(item, RecordFilter) else dict(item)
            self.queries.append(data)
            kinds = data.get("kinds")
            if kinds and set(kinds) & self.fail_kinds:
                from trustweb.core.exceptions import RelayException

                raise RelayException("relay unreachable", relay="wss://fake.example")
            for record in self.records:
                if kinds is not None and record.kind not in kinds:
                    continue
                if data.get("authors") is not None and record.pubkey not in data["authors"]:
                    continue
                results.append(record)
        return results


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts from a fresh config singleton."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all TRUSTWEB_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("TRUSTWEB_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def isolated_env(clean_env, monkeypatch, tmp_path):
    """Point trustweb at a temporary data dir with no relays reachable."""
    monkeypatch.setenv("TRUSTWEB_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("TRUSTWEB_RELAYS", "wss://relay.test")
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def pubkeys() -> dict[str, str]:
    return dict(PUBKEYS)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "social" / "graph.db"


@pytest.fixture
def store(db_path):
    """An open, file-backed social store."""
    social_store = SocialStore.open(db_path)
    yield social_store
    social_store.close()


@pytest.fixture
def record_source():
    return FakeRecordSource()


@pytest.fixture
def make_record():
    """Factory for relay records; see ``_make_record``."""
    return _make_record


@pytest.fixture
def social_graph(pubkeys, make_record):
    """Relay contents for a small network around M.

    M follows A and B and mutes Spammer. A follows C and D, B follows D
    and E, C follows Stranger. Spammer is followed by A's older list only.
    """
    p = pubkeys
    return FakeRecordSource(
        [
            make_record(p["M"], 3, [p["A"], (p["B"], "wss://b.relay", "bob")]),
            make_record(p["M"], 10000, [p["Spammer"]]),
            make_record(p["A"], 3, [p["C"], p["Spammer"]], created_at=1_600_000_000),
            make_record(p["A"], 3, [p["C"], p["D"]]),
            make_record(p["B"], 3, [p["D"], p["E"], p["M"]]),
            make_record(p["C"], 3, [p["Stranger"]]),
        ]
    )


@pytest.fixture
def cached_targets(store):
    """Targets of the cached edges leaving ``source``, sorted."""

    def _targets(source: str) -> list[str]:
        rows = store.fetchall(
            "SELECT target_pubkey FROM graph_cache WHERE source_pubkey = ? ORDER BY target_pubkey",
            (source,),
        )
        return [row["target_pubkey"] for row in rows]

    return _targets
