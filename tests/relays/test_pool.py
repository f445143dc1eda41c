"""Tests for trustweb.relays.pool module."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import WSMsgType

from trustweb.core.exceptions import RelayException
from trustweb.relays.pool import RelayPool
from trustweb.relays.records import RecordFilter
from trustweb.social.contacts import ContactStore
from trustweb.social.graph import GraphCache
from trustweb.social.sync import GraphSync


class FakeWebSocket:
    """Scripted relay connection.

    ``handler`` receives every frame the client sends and returns the
    frames the relay answers with. Strings are delivered verbatim.
    """

    def __init__(self, handler):
        self.handler = handler
        self.sent: list = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    async def send_json(self, data):
        self.sent.append(data)
        for frame in self.handler(data):
            self._queue.put_nowait(frame)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, SimpleNamespace):
            return item
        data = item if isinstance(item, str) else json.dumps(item)
        return SimpleNamespace(type=WSMsgType.TEXT, data=data)

    async def close(self):
        self.closed = True
        self._queue.put_nowait(None)

    def exception(self):
        return None


def serving(*records, extra=()):
    """Relay that answers any REQ with ``records`` then EOSE."""

    def handler(frame):
        if frame[0] != "REQ":
            return []
        sub_id = frame[1]
        return [*extra, *(["EVENT", sub_id, r.to_dict()] for r in records), ["EOSE", sub_id]]

    return handler


def acking(accepted=True, message=""):
    def handler(frame):
        if frame[0] != "EVENT":
            return []
        return [["NOTICE", "hello"], ["OK", frame[1]["id"], accepted, message]]

    return handler


def silent(frame):
    return []


def closing(frame):
    return [None]


@pytest.fixture
def make_pool(clean_env):
    """Build a pool whose relays are scripted FakeWebSockets keyed by URL."""

    def _make(handlers: dict, **kwargs):
        kwargs.setdefault("query_timeout", 0.2)
        kwargs.setdefault("publish_timeout", 0.2)
        pool = RelayPool(list(handlers), **kwargs)
        sockets: dict[str, FakeWebSocket] = {}

        async def connect(url):
            handler = handlers[url]
            if isinstance(handler, Exception):
                raise handler
            sockets[url] = FakeWebSocket(handler)
            return sockets[url]

        pool._connect = connect
        pool.sockets = sockets
        return pool

    return _make


# ============================================================================
# Publish
# ============================================================================


class TestPublish:
    async def test_all_accept(self, make_pool, make_record, pubkeys):
        record = make_record(pubkeys["M"], 3, [pubkeys["A"]])
        pool = make_pool({"wss://one": acking(), "wss://two": acking()})

        accepted = await pool.publish(record)

        assert accepted == ["wss://one", "wss://two"]
        assert pool.sockets["wss://one"].sent == [["EVENT", record.to_dict()]]
        assert pool.sockets["wss://one"].closed
        assert pool.get_stats()["publish_ok"] == 2

    async def test_failures_isolated(self, make_pool, make_record, pubkeys):
        record = make_record(pubkeys["M"], 3)
        pool = make_pool(
            {
                "wss://down": OSError("refused"),
                "wss://reject": acking(False, "blocked: spam"),
                "wss://silent": silent,
                "wss://gone": closing,
                "wss://ok": acking(),
            }
        )

        accepted = await pool.publish(record)

        assert accepted == ["wss://ok"]
        assert pool.get_stats()["publish_failed"] == 4

    async def test_all_fail_returns_empty(self, make_pool, make_record, pubkeys):
        pool = make_pool({"wss://down": RelayException("Connection timeout", relay="wss://down")})
        assert await pool.publish(make_record(pubkeys["M"], 3)) == []

    async def test_no_relays(self, make_pool, make_record, pubkeys):
        pool = make_pool({})
        assert await pool.publish(make_record(pubkeys["M"], 3)) == []

    async def test_explicit_relays(self, make_pool, make_record, pubkeys):
        pool = make_pool({"wss://one": acking(), "wss://two": acking()})
        assert await pool.publish(make_record(pubkeys["M"], 3), relays=["wss://two"]) == ["wss://two"]
        assert "wss://one" not in pool.sockets


# ============================================================================
# Query
# ============================================================================


class TestQuery:
    async def test_concatenates_without_dedup(self, make_pool, make_record, pubkeys):
        record = make_record(pubkeys["A"], 3, [pubkeys["C"]])
        pool = make_pool({"wss://one": serving(record), "wss://two": serving(record)})

        records = await pool.query(RecordFilter(kinds=[3], authors=[pubkeys["A"]]))

        assert records == [record, record]

    async def test_sends_req_then_close(self, make_pool, pubkeys):
        pool = make_pool({"wss://one": serving()})
        await pool.query(RecordFilter(kinds=[3], authors=[pubkeys["M"]], limit=1))

        sent = pool.sockets["wss://one"].sent
        assert sent[0][0] == "REQ"
        assert sent[0][2] == {"authors": [pubkeys["M"]], "kinds": [3], "limit": 1}
        assert sent[1] == ["CLOSE", sent[0][1]]

    async def test_mapping_filter(self, make_pool):
        pool = make_pool({"wss://one": serving()})
        await pool.query({"kinds": [10000]})
        assert pool.sockets["wss://one"].sent[0][2] == {"kinds": [10000]}

    async def test_multiple_filters_in_order(self, make_pool, make_record, pubkeys):
        contact_list = make_record(pubkeys["M"], 3)
        pool = make_pool({"wss://one": serving(contact_list)})

        records = await pool.query([RecordFilter(kinds=[3]), RecordFilter(kinds=[10000])])

        assert len(records) == 2
        assert pool.get_stats()["query_ok"] == 2

    async def test_failing_relay_skipped(self, make_pool, make_record, pubkeys):
        record = make_record(pubkeys["A"], 3)
        pool = make_pool({"wss://down": OSError("refused"), "wss://one": serving(record)})

        assert await pool.query(RecordFilter(kinds=[3])) == [record]
        assert pool.get_stats()["query_failed"] == 1

    async def test_all_relays_fail(self, make_pool):
        pool = make_pool(
            {
                "wss://down": OSError("refused"),
                "wss://slow": RelayException("Connection timeout", relay="wss://slow"),
            }
        )
        with pytest.raises(RelayException, match="All 2 relay"):
            await pool.query(RecordFilter(kinds=[3]))
        assert pool.get_stats()["query_failed"] == 2

    async def test_empty_answer_is_not_failure(self, make_pool):
        pool = make_pool({"wss://down": OSError("refused"), "wss://one": serving()})
        assert await pool.query(RecordFilter(kinds=[3])) == []

    async def test_any_filter_failing_everywhere_raises(self, make_pool):
        calls = []

        def flaky(frame):
            if frame[0] != "REQ":
                return []
            calls.append(frame)
            return [["EOSE", frame[1]]]

        pool = make_pool({"wss://one": flaky})
        await pool.query(RecordFilter(kinds=[3]))
        pool._connect = AsyncMock(side_effect=OSError("refused"))
        with pytest.raises(RelayException):
            await pool.query([RecordFilter(kinds=[3]), RecordFilter(kinds=[10000])])
        assert len(calls) == 1

    async def test_slow_relay_keeps_partial_results(self, make_pool, make_record, pubkeys):
        record = make_record(pubkeys["A"], 3)

        def partial(frame):
            if frame[0] != "REQ":
                return []
            return [["EVENT", frame[1], record.to_dict()]]

        pool = make_pool({"wss://slow": partial}, query_timeout=0.05)
        assert await pool.query(RecordFilter(kinds=[3])) == [record]

    async def test_ignores_noise(self, make_pool, make_record, pubkeys):
        record = make_record(pubkeys["A"], 3)
        noise = [
            "not json",
            '{"an": "object"}',
            ["NOTICE", "rate limited"],
            ["EVENT", "other-sub", record.to_dict()],
            SimpleNamespace(type=WSMsgType.BINARY, data=b"\x00"),
        ]

        def handler(frame):
            if frame[0] != "REQ":
                return []
            bad = dict(record.to_dict(), pubkey="nope")
            return [*noise, ["EVENT", frame[1], bad], ["EVENT", frame[1], record.to_dict()], ["EOSE", frame[1]]]

        pool = make_pool({"wss://one": handler})
        assert await pool.query(RecordFilter(kinds=[3])) == [record]

    async def test_closed_subscription(self, make_pool):
        def handler(frame):
            if frame[0] != "REQ":
                return []
            return [["CLOSED", frame[1], "auth-required: log in"]]

        pool = make_pool({"wss://one": handler})
        assert await pool.query(RecordFilter(kinds=[3])) == []


# ============================================================================
# Connection handling
# ============================================================================


class TestConnection:
    async def test_connect_timeout(self, clean_env):
        async def slow_connect(*args, **kwargs):
            await asyncio.sleep(1)

        session = MagicMock(closed=False)
        session.ws_connect = AsyncMock(side_effect=slow_connect)
        pool = RelayPool(["wss://slow"], connect_timeout=0.01, session=session)

        with pytest.raises(RelayException, match="Connection timeout"):
            await pool._connect("wss://slow")

    async def test_shared_session_not_closed(self, clean_env):
        session = MagicMock(closed=False)
        session.close = AsyncMock()
        async with RelayPool(["wss://one"], session=session):
            pass
        session.close.assert_not_awaited()

    def test_defaults_from_config(self, clean_env, monkeypatch):
        monkeypatch.setenv("TRUSTWEB_RELAYS", "wss://env.test")
        monkeypatch.setenv("TRUSTWEB_RELAY_QUERY_TIMEOUT", "3")
        pool = RelayPool()
        assert pool.relays == ["wss://env.test"]
        assert pool.query_timeout == 3.0


# ============================================================================
# Graph sync over the pool
# ============================================================================


class TestGraphSyncOverPool:
    async def test_total_outage_reported_and_cache_kept(self, make_pool, store, pubkeys):
        p = pubkeys
        ContactStore(store).add(p["A"])
        GraphCache(store).upsert_edges(p["A"], [p["C"]], 1)
        pool = make_pool({"wss://one": OSError("refused"), "wss://two": OSError("refused")})

        report = await GraphSync(store, pool).run(p["M"], depth=2)

        assert not report.ok
        assert [error.split(":")[0] for error in report.errors] == ["contact list", "mute list", "follow lists"]
        assert ContactStore(store).pubkeys() == [p["A"]]
        assert [e.source_pubkey for e in GraphCache(store).edges_to(p["C"])] == [p["A"]]
        assert report.cached_edges == 1

    async def test_partial_outage_still_syncs(self, make_pool, store, make_record, pubkeys):
        p = pubkeys
        own = make_record(p["M"], 3, [p["A"]])
        follows = make_record(p["A"], 3, [p["C"]])
        pool = make_pool({"wss://down": OSError("refused"), "wss://one": serving(own, follows)})

        report = await GraphSync(store, pool).run(p["M"], depth=2)

        assert report.ok
        assert ContactStore(store).pubkeys() == [p["A"]]
        assert report.cached_edges == 1
