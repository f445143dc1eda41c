# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""
Relay Pool - best-effort fan-out to independent relays.

This module handles:
- Publishing one signed record to every relay concurrently
- Querying every relay with one or more filters and concatenating results
- Per-relay failure isolation (an erroring or slow relay never blocks others)

Relays speak a small JSON-over-websocket protocol:
  client → relay   ["EVENT", record] | ["REQ", sub_id, filter] | ["CLOSE", sub_id]
  relay  → client  ["OK", id, accepted, message] | ["EVENT", sub_id, record]
                   | ["EOSE", sub_id] | ["CLOSED", sub_id, message] | ["NOTICE", message]
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

import aiohttp
from aiohttp import WSMsgType

from ..core.config import get_config
from ..core.exceptions import RelayException, ValidationException
from .records import Record, RecordFilter

logger = logging.getLogger(__name__)

FilterLike = RecordFilter | Mapping[str, Any]


def _decode_frame(data: str) -> list[Any] | None:
    """Parse a relay frame, returning None for anything that is not a typed JSON array."""
    try:
        frame = json.loads(data)
    except (TypeError, ValueError):
        return None
    if not isinstance(frame, list) or not frame or not isinstance(frame[0], str):
        return None
    return frame


def _filter_dict(item: FilterLike) -> dict[str, Any]:
    if isinstance(item, RecordFilter):
        return item.to_dict()
    return dict(item)


class RelayPool:
    """
    Publishes to and queries a set of relays.

    Use as an async context manager so the underlying HTTP session is
    closed afterwards:

        async with RelayPool(relays) as pool:
            accepted = await pool.publish(record)
            records = await pool.query(RecordFilter(kinds=[3], authors=[me], limit=1))
    """

    def __init__(
        self,
        relays: Sequence[str] | None = None,
        connect_timeout: float | None = None,
        query_timeout: float | None = None,
        publish_timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Initialize the RelayPool.

        Args:
            relays: Default relay URLs; falls back to TRUSTWEB_RELAYS
            connect_timeout: Seconds allowed to open each websocket
            query_timeout: Seconds allowed for one relay to answer one filter
            publish_timeout: Seconds allowed for one relay to acknowledge a record
            session: Existing aiohttp session to reuse (not closed by the pool)
        """
        config = get_config()
        self.relays: list[str] = list(relays) if relays is not None else config.relay_urls
        self.connect_timeout = connect_timeout if connect_timeout is not None else config.relay_connect_timeout
        self.query_timeout = query_timeout if query_timeout is not None else config.relay_query_timeout
        self.publish_timeout = publish_timeout if publish_timeout is not None else config.relay_publish_timeout

        self._session = session
        self._owns_session = session is None

        self._stats: dict[str, int] = {
            "publish_ok": 0,
            "publish_failed": 0,
            "query_ok": 0,
            "query_failed": 0,
            "records_received": 0,
        }

    async def __aenter__(self) -> RelayPool:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def get_stats(self) -> dict[str, int]:
        """Get fan-out statistics."""
        return dict(self._stats)

    async def close(self) -> None:
        """Close the HTTP session if this pool created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        session = self._get_session()
        try:
            return await asyncio.wait_for(
                session.ws_connect(url, heartbeat=30),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise RelayException("Connection timeout", relay=url) from e

    # -------------------------------------------------------------------------
    # PUBLISH
    # -------------------------------------------------------------------------

    async def publish(self, record: Record, relays: Sequence[str] | None = None) -> list[str]:
        """
        Publish a record to all relays concurrently.

        Args:
            record: Signed record to publish
            relays: Relays to target; defaults to the pool's relays

        Returns:
            Relays that acknowledged the record, in input order
        """
        targets = list(relays) if relays is not None else self.relays
        if not targets:
            return []

        results = await asyncio.gather(
            *(self._publish_one(url, record) for url in targets),
            return_exceptions=True,
        )

        accepted: list[str] = []
        for url, result in zip(targets, results):
            if result is True:
                accepted.append(url)
                self._stats["publish_ok"] += 1
            else:
                self._stats["publish_failed"] += 1
                logger.warning(f"Publish to {url} failed: {result}", extra={"relay": url})

        logger.info(f"Record {record.id[:12]}... accepted by {len(accepted)}/{len(targets)} relay(s)")
        return accepted

    async def _publish_one(self, url: str, record: Record) -> bool:
        ws = await self._connect(url)
        try:
            await ws.send_json(["EVENT", record.to_dict()])
            try:
                return await asyncio.wait_for(
                    self._await_ok(ws, url, record.id),
                    timeout=self.publish_timeout,
                )
            except asyncio.TimeoutError as e:
                raise RelayException("No acknowledgement before timeout", relay=url) from e
        finally:
            await ws.close()

    async def _await_ok(self, ws: aiohttp.ClientWebSocketResponse, url: str, record_id: str) -> bool:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                raise RelayException(f"Websocket error: {ws.exception()}", relay=url)
            if msg.type != WSMsgType.TEXT:
                continue

            frame = _decode_frame(msg.data)
            if frame is None:
                continue
            if frame[0] == "OK" and len(frame) >= 3 and frame[1] == record_id:
                if frame[2] is True:
                    return True
                reason = frame[3] if len(frame) > 3 else ""
                raise RelayException(f"Relay rejected record: {reason}", relay=url)
            if frame[0] == "NOTICE":
                logger.debug(f"Notice from {url}: {frame[1:]}")

        raise RelayException("Connection closed before acknowledgement", relay=url)

    # -------------------------------------------------------------------------
    # QUERY
    # -------------------------------------------------------------------------

    async def query(
        self,
        filters: FilterLike | Sequence[FilterLike],
        relays: Sequence[str] | None = None,
    ) -> list[Record]:
        """
        Fetch records matching one or more filters from all relays.

        Filters are processed one after another; each is sent to every relay
        concurrently. Results are concatenated without de-duplication, so a
        record stored on several relays appears several times.

        Args:
            filters: A single filter or a sequence of filters
            relays: Relays to target; defaults to the pool's relays

        Returns:
            All records returned, in no particular cross-relay order

        Raises:
            RelayException: If every target relay failed for one filter.
                Some relays answering (even with nothing) is a success.
        """
        targets = list(relays) if relays is not None else self.relays
        if isinstance(filters, (RecordFilter, Mapping)):
            filter_list = [filters]
        else:
            filter_list = list(filters)

        if not targets:
            return []

        collected: list[Record] = []
        for item in filter_list:
            filter_data = _filter_dict(item)
            results = await asyncio.gather(
                *(self._query_one(url, filter_data) for url in targets),
                return_exceptions=True,
            )
            failures: list[str] = []
            for url, result in zip(targets, results):
                if isinstance(result, BaseException):
                    self._stats["query_failed"] += 1
                    logger.warning(f"Query to {url} failed: {result}", extra={"relay": url})
                    failures.append(f"{url}: {result}")
                    continue
                self._stats["query_ok"] += 1
                self._stats["records_received"] += len(result)
                collected.extend(result)

            if len(failures) == len(targets):
                raise RelayException(f"All {len(targets)} relay(s) failed: {'; '.join(failures)}")

        logger.debug(f"Query returned {len(collected)} record(s) from {len(targets)} relay(s)")
        return collected

    async def _query_one(self, url: str, filter_data: dict[str, Any]) -> list[Record]:
        sub_id = uuid.uuid4().hex[:16]
        records: list[Record] = []

        ws = await self._connect(url)
        try:
            await ws.send_json(["REQ", sub_id, filter_data])
            try:
                await asyncio.wait_for(
                    self._collect(ws, url, sub_id, records),
                    timeout=self.query_timeout,
                )
            except asyncio.TimeoutError:
                logger.debug(f"Query to {url} timed out, keeping {len(records)} partial record(s)")

            if not ws.closed:
                try:
                    await ws.send_json(["CLOSE", sub_id])
                except (aiohttp.ClientError, ConnectionResetError) as e:
                    logger.debug(f"Could not close subscription on {url}: {e}")
        finally:
            await ws.close()

        return records

    async def _collect(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        url: str,
        sub_id: str,
        records: list[Record],
    ) -> None:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                raise RelayException(f"Websocket error: {ws.exception()}", relay=url)
            if msg.type != WSMsgType.TEXT:
                continue

            frame = _decode_frame(msg.data)
            if frame is None:
                continue

            kind = frame[0]
            if kind == "EVENT" and len(frame) >= 3 and frame[1] == sub_id:
                try:
                    records.append(Record.from_dict(frame[2]))
                except ValidationException as e:
                    logger.debug(f"Skipping malformed record from {url}: {e}")
            elif kind == "EOSE" and len(frame) >= 2 and frame[1] == sub_id:
                return
            elif kind == "CLOSED" and len(frame) >= 2 and frame[1] == sub_id:
                reason = frame[2] if len(frame) > 2 else ""
                logger.info(f"Relay {url} closed subscription: {reason}")
                return
            elif kind == "NOTICE":
                logger.debug(f"Notice from {url}: {frame[1:]}")
