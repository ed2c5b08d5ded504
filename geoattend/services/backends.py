"""Storage backend selection: MongoDB in production, in-memory for dev and tests."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from geoattend.config import settings
from geoattend.services.code_store import (
    AttendanceCodeStore,
    InMemoryAttendanceCodeStore,
    MongoAttendanceCodeStore,
)
from geoattend.services.codes import utcnow
from geoattend.services.enrollment import (
    EnrollmentDirectory,
    InMemoryEnrollmentDirectory,
    MongoEnrollmentDirectory,
)
from geoattend.services.record_store import (
    AttendanceRecordStore,
    InMemoryAttendanceRecordStore,
    MongoAttendanceRecordStore,
)
from geoattend.services.roster import InMemoryRosterFeed, LiveRosterFeed, MongoRosterFeed


@dataclass
class AttendanceBackend:
    codes: AttendanceCodeStore
    records: AttendanceRecordStore
    enrollments: EnrollmentDirectory
    roster: LiveRosterFeed


def memory_backend(clock: Callable[[], datetime] = utcnow) -> AttendanceBackend:
    roster = InMemoryRosterFeed()
    return AttendanceBackend(
        codes=InMemoryAttendanceCodeStore(clock),
        records=InMemoryAttendanceRecordStore(roster, clock),
        enrollments=InMemoryEnrollmentDirectory(),
        roster=roster,
    )


def mongo_backend() -> AttendanceBackend:
    """Requires ``geoattend.db.init_db`` to have run."""
    return AttendanceBackend(
        codes=MongoAttendanceCodeStore(),
        records=MongoAttendanceRecordStore(),
        enrollments=MongoEnrollmentDirectory(),
        roster=MongoRosterFeed(),
    )


_backend: Optional[AttendanceBackend] = None


def get_backend() -> AttendanceBackend:
    global _backend
    if _backend is None:
        _backend = memory_backend() if settings.storage_backend == "memory" else mongo_backend()
    return _backend


def set_backend(backend: Optional[AttendanceBackend]) -> None:
    global _backend
    _backend = backend
