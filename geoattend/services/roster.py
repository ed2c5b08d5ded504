"""Live roster: push newly created attendance records to the class teacher.

A subscription is a live tail. Nothing is replayed on (re)subscribe.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import AsyncIterator, Protocol

from geoattend.models.attendance import AttendanceRecord, AttendanceRecordDocument
from geoattend.services.codes import as_utc

logger = logging.getLogger(__name__)


class RosterSubscription(Protocol):
    async def __aenter__(self) -> "RosterSubscription": ...

    async def __aexit__(self, *exc_info) -> None: ...

    def __aiter__(self) -> AsyncIterator[AttendanceRecord]: ...

    async def __anext__(self) -> AttendanceRecord: ...


class LiveRosterFeed(Protocol):
    def subscribe(self, class_id: str) -> RosterSubscription: ...


class _QueueSubscription:
    def __init__(self, feed: "InMemoryRosterFeed", class_id: str):
        self._feed = feed
        self._class_id = class_id
        self._queue: asyncio.Queue[AttendanceRecord] = asyncio.Queue()

    async def __aenter__(self) -> "_QueueSubscription":
        self._feed._subscribers[self._class_id].add(self._queue)
        return self

    async def __aexit__(self, *exc_info) -> None:
        queues = self._feed._subscribers.get(self._class_id)
        if queues is not None:
            queues.discard(self._queue)
            if not queues:
                del self._feed._subscribers[self._class_id]

    def __aiter__(self) -> "_QueueSubscription":
        return self

    async def __anext__(self) -> AttendanceRecord:
        return await self._queue.get()


class InMemoryRosterFeed:
    """Fan-out of records inserted into the in-memory record store."""

    def __init__(self):
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, class_id: str) -> _QueueSubscription:
        return _QueueSubscription(self, class_id)

    def publish(self, record: AttendanceRecord) -> None:
        for queue in list(self._subscribers.get(record.class_id, ())):
            queue.put_nowait(record)

    def subscriber_count(self, class_id: str) -> int:
        return len(self._subscribers.get(class_id, ()))


def _record_from_change(change: dict) -> AttendanceRecord:
    doc = dict(change["fullDocument"])
    doc["id"] = str(doc.pop("_id"))
    doc["created_at"] = as_utc(doc["created_at"])
    return AttendanceRecord.model_validate(doc)


class _ChangeStreamSubscription:
    def __init__(self, class_id: str):
        self._pipeline = [
            {"$match": {"operationType": "insert", "fullDocument.class_id": class_id}},
        ]
        self._stream = None

    async def __aenter__(self) -> "_ChangeStreamSubscription":
        self._stream = AttendanceRecordDocument.get_motor_collection().watch(self._pipeline)
        await self._stream.__aenter__()
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._stream is not None:
            await self._stream.close()
            self._stream = None

    def __aiter__(self) -> "_ChangeStreamSubscription":
        return self

    async def __anext__(self) -> AttendanceRecord:
        change = await self._stream.next()
        return _record_from_change(change)


class MongoRosterFeed:
    """MongoDB change streams (requires a replica set)."""

    def subscribe(self, class_id: str) -> _ChangeStreamSubscription:
        return _ChangeStreamSubscription(class_id)


def format_sse(record: AttendanceRecord) -> str:
    return f"event: attendance\ndata: {record.model_dump_json()}\n\n"


async def sse_events(feed: LiveRosterFeed, class_id: str, is_disconnected=None) -> AsyncIterator[str]:
    """Server-Sent Events for a class; ends when the client goes away."""
    async with feed.subscribe(class_id) as records:
        logger.info(f"Live roster opened for class {class_id}")
        try:
            async for record in records:
                if is_disconnected is not None and await is_disconnected():
                    break
                yield format_sse(record)
        finally:
            logger.info(f"Live roster closed for class {class_id}")
