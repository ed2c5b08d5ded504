"""Persistence of redeemed attendance, one record per (class, student, day).

Uniqueness is a property of the storage layer (a unique index), never a
read-then-write performed by the caller.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import date, datetime
from typing import Callable, Optional, Protocol

from pymongo.errors import DuplicateKeyError

from geoattend.errors import RecordExists
from geoattend.models.attendance import (
    AttendanceFields,
    AttendanceRecord,
    AttendanceRecordDocument,
    AttendanceStatus,
    AttendanceSummary,
)
from geoattend.services.codes import as_utc, utcnow
from geoattend.services.reports import summarize
from geoattend.services.roster import InMemoryRosterFeed


class AttendanceRecordStore(Protocol):
    async def insert_if_absent(
        self, class_id: str, student_id: str, day: date, fields: AttendanceFields
    ) -> AttendanceRecord: ...

    async def list_by_class(
        self, class_id: str, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> list[AttendanceRecord]: ...

    async def list_by_student(self, student_id: str, class_id: Optional[str] = None) -> list[AttendanceRecord]: ...

    async def summary(self, student_id: str, class_id: Optional[str] = None) -> list[AttendanceSummary]: ...


def _date_range(date_from: Optional[date], date_to: Optional[date]) -> dict:
    bounds = {}
    if date_from:
        bounds["$gte"] = date_from
    if date_to:
        bounds["$lte"] = date_to
    return {"date": bounds} if bounds else {}


class MongoAttendanceRecordStore:
    async def insert_if_absent(
        self, class_id: str, student_id: str, day: date, fields: AttendanceFields
    ) -> AttendanceRecord:
        doc = AttendanceRecordDocument(
            class_id=class_id,
            student_id=student_id,
            date=day,
            **fields.model_dump(),
        )
        try:
            await doc.insert()
        except DuplicateKeyError as e:
            raise RecordExists(f"Attendance already recorded for {student_id} in {class_id} on {day}") from e
        return doc.to_record()

    async def list_by_class(
        self, class_id: str, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> list[AttendanceRecord]:
        docs = (
            await AttendanceRecordDocument.find({"class_id": class_id, **_date_range(date_from, date_to)})
            .sort("date", "created_at")
            .to_list()
        )
        return [d.to_record() for d in docs]

    async def list_by_student(self, student_id: str, class_id: Optional[str] = None) -> list[AttendanceRecord]:
        query = {"student_id": student_id}
        if class_id:
            query["class_id"] = class_id
        docs = await AttendanceRecordDocument.find(query).sort("-date").to_list()
        return [d.to_record() for d in docs]

    async def summary(self, student_id: str, class_id: Optional[str] = None) -> list[AttendanceSummary]:
        if class_id:
            class_ids = [class_id]
        else:
            class_ids = sorted(await AttendanceRecordDocument.distinct("class_id", {"student_id": student_id}))
        summaries = []
        for cid in class_ids:
            sessions = await AttendanceRecordDocument.distinct("date", {"class_id": cid})
            present = await AttendanceRecordDocument.find(
                {"class_id": cid, "student_id": student_id, "status": AttendanceStatus.PRESENT}
            ).count()
            summaries.append(summarize(cid, present, len(sessions)))
        return summaries


class InMemoryAttendanceRecordStore:
    def __init__(self, roster: Optional[InMemoryRosterFeed] = None, clock: Callable[[], datetime] = utcnow):
        self._roster = roster
        self._clock = clock
        self._records: dict[tuple[str, str, date], AttendanceRecord] = {}

    async def insert_if_absent(
        self, class_id: str, student_id: str, day: date, fields: AttendanceFields
    ) -> AttendanceRecord:
        await asyncio.sleep(0)
        key = (class_id, student_id, day)
        # No await between the membership test and the write.
        if key in self._records:
            raise RecordExists(f"Attendance already recorded for {student_id} in {class_id} on {day}")
        record = AttendanceRecord(
            id=uuid.uuid4().hex,
            class_id=class_id,
            student_id=student_id,
            date=day,
            created_at=as_utc(self._clock()),
            **fields.model_dump(),
        )
        self._records[key] = record
        if self._roster is not None:
            self._roster.publish(record)
        return record

    async def list_by_class(
        self, class_id: str, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> list[AttendanceRecord]:
        await asyncio.sleep(0)
        records = [
            r
            for r in self._records.values()
            if r.class_id == class_id
            and (date_from is None or r.date >= date_from)
            and (date_to is None or r.date <= date_to)
        ]
        return sorted(records, key=lambda r: (r.date, r.created_at))

    async def list_by_student(self, student_id: str, class_id: Optional[str] = None) -> list[AttendanceRecord]:
        await asyncio.sleep(0)
        records = [
            r
            for r in self._records.values()
            if r.student_id == student_id and (class_id is None or r.class_id == class_id)
        ]
        return sorted(records, key=lambda r: r.date, reverse=True)

    async def summary(self, student_id: str, class_id: Optional[str] = None) -> list[AttendanceSummary]:
        await asyncio.sleep(0)
        records = list(self._records.values())
        if class_id:
            class_ids = [class_id]
        else:
            class_ids = sorted({r.class_id for r in records if r.student_id == student_id})
        summaries = []
        for cid in class_ids:
            sessions = {r.date for r in records if r.class_id == cid}
            present = sum(
                1
                for r in records
                if r.class_id == cid and r.student_id == student_id and r.status == AttendanceStatus.PRESENT
            )
            summaries.append(summarize(cid, present, len(sessions)))
        return summaries
