"""Persistence of issued attendance codes.

Expiry is always evaluated against the store's clock: MongoDB compares
``expires_at`` with ``$$NOW`` on the server, the in-memory store with its own
injected clock. Callers never pass "now" in.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from typing import Callable, Optional, Protocol

from pymongo.errors import DuplicateKeyError

from geoattend.errors import CodeConflict
from geoattend.models.attendance_code import AttendanceCode, AttendanceCodeDocument
from geoattend.models.location import Coordinates
from geoattend.services.codes import as_utc, utcnow

_NOT_EXPIRED = {"$expr": {"$gt": ["$expires_at", "$$NOW"]}}
_EXPIRED = {"$expr": {"$lte": ["$expires_at", "$$NOW"]}}


class AttendanceCodeStore(Protocol):
    async def now(self) -> datetime: ...

    async def issue(
        self,
        class_id: str,
        code: str,
        expires_at: datetime,
        issuer_location: Optional[Coordinates] = None,
        *,
        issued_at: Optional[datetime] = None,
        issued_by: Optional[str] = None,
    ) -> AttendanceCode: ...

    async def lookup(self, class_id: str, code: str) -> Optional[AttendanceCode]: ...

    async def latest_active(self, class_id: str) -> Optional[AttendanceCode]: ...


class MongoAttendanceCodeStore:
    async def now(self) -> datetime:
        reply = await AttendanceCodeDocument.get_motor_collection().database.command("hello")
        return as_utc(reply["localTime"])

    async def issue(
        self,
        class_id: str,
        code: str,
        expires_at: datetime,
        issuer_location: Optional[Coordinates] = None,
        *,
        issued_at: Optional[datetime] = None,
        issued_by: Optional[str] = None,
    ) -> AttendanceCode:
        if issued_at is None:
            issued_at = await self.now()

        def build() -> AttendanceCodeDocument:
            return AttendanceCodeDocument(
                class_id=class_id,
                code=code,
                issued_at=issued_at,
                expires_at=expires_at,
                issuer_latitude=issuer_location.latitude if issuer_location else None,
                issuer_longitude=issuer_location.longitude if issuer_location else None,
                issued_by=issued_by,
            )

        doc = build()
        try:
            await doc.insert()
        except DuplicateKeyError:
            # The unique index also covers expired rows the TTL monitor has not
            # collected yet; drop those and take the slot.
            purged = await AttendanceCodeDocument.find(
                {"class_id": class_id, "code": code, **_EXPIRED}
            ).delete()
            if not purged or not purged.deleted_count:
                raise CodeConflict(f"Code already active for class {class_id}")
            doc = build()
            try:
                await doc.insert()
            except DuplicateKeyError as e:
                raise CodeConflict(f"Code already active for class {class_id}") from e
        return doc.to_code()

    async def lookup(self, class_id: str, code: str) -> Optional[AttendanceCode]:
        doc = await AttendanceCodeDocument.find_one({"class_id": class_id, "code": code, **_NOT_EXPIRED})
        return doc.to_code() if doc else None

    async def latest_active(self, class_id: str) -> Optional[AttendanceCode]:
        doc = (
            await AttendanceCodeDocument.find({"class_id": class_id, **_NOT_EXPIRED})
            .sort("-issued_at")
            .first_or_none()
        )
        return doc.to_code() if doc else None


class InMemoryAttendanceCodeStore:
    """Single-process store; ``clock`` plays the role of the database server's clock."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._codes: dict[tuple[str, str], AttendanceCode] = {}

    def _is_active(self, code: AttendanceCode) -> bool:
        return as_utc(code.expires_at) > as_utc(self._clock())

    async def now(self) -> datetime:
        return as_utc(self._clock())

    async def issue(
        self,
        class_id: str,
        code: str,
        expires_at: datetime,
        issuer_location: Optional[Coordinates] = None,
        *,
        issued_at: Optional[datetime] = None,
        issued_by: Optional[str] = None,
    ) -> AttendanceCode:
        await asyncio.sleep(0)
        key = (class_id, code)
        existing = self._codes.get(key)
        if existing and self._is_active(existing):
            raise CodeConflict(f"Code already active for class {class_id}")
        issued = AttendanceCode(
            id=uuid.uuid4().hex,
            class_id=class_id,
            code=code,
            issued_at=issued_at or as_utc(self._clock()),
            expires_at=expires_at,
            issuer_latitude=issuer_location.latitude if issuer_location else None,
            issuer_longitude=issuer_location.longitude if issuer_location else None,
            issued_by=issued_by,
        )
        self._codes[key] = issued
        return issued

    async def lookup(self, class_id: str, code: str) -> Optional[AttendanceCode]:
        await asyncio.sleep(0)
        found = self._codes.get((class_id, code))
        if found and self._is_active(found):
            return found
        return None

    async def latest_active(self, class_id: str) -> Optional[AttendanceCode]:
        await asyncio.sleep(0)
        active = [c for c in self._codes.values() if c.class_id == class_id and self._is_active(c)]
        if not active:
            return None
        return max(active, key=lambda c: as_utc(c.issued_at))
