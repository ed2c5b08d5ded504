from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

from geoattend.models.location import ReportedLocation
from geoattend.services.codes import as_utc


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"  # implied by a missing record; never written by redemption


class AttendanceRecordDocument(Document):
    """One student's attendance for a class on a calendar day."""
    class_id: Indexed(str)
    student_id: Indexed(str)
    date: date
    status: AttendanceStatus = AttendanceStatus.PRESENT
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_address: Optional[str] = None
    code_id: Optional[str] = None  # redeemed attendance code
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "attendance"
        indexes = [
            IndexModel(
                [("class_id", ASCENDING), ("student_id", ASCENDING), ("date", ASCENDING)],
                unique=True,
                name="class_student_date_unique",
            ),
        ]

    def to_record(self) -> "AttendanceRecord":
        return AttendanceRecord(
            id=str(self.id),
            class_id=self.class_id,
            student_id=self.student_id,
            date=self.date,
            status=self.status,
            latitude=self.latitude,
            longitude=self.longitude,
            location_address=self.location_address,
            code_id=self.code_id,
            created_at=as_utc(self.created_at),
        )


class AttendanceFields(BaseModel):
    status: AttendanceStatus = AttendanceStatus.PRESENT
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_address: Optional[str] = None
    code_id: Optional[str] = None


class AttendanceRecord(AttendanceFields):
    id: str
    class_id: str
    student_id: str
    date: date
    created_at: datetime


class RedeemRequest(BaseModel):
    class_id: str
    code: str = Field(min_length=1, max_length=32)
    location: Optional[ReportedLocation] = None


class AttendanceSummary(BaseModel):
    """A student's standing in one class."""
    class_id: str
    present: int
    total_sessions: int  # distinct days with any attendance recorded for the class
    percentage: float


class AttendanceReportRow(BaseModel):
    student_id: str
    statuses: List[AttendanceStatus]  # aligned with AttendanceReport.dates
    present: int


class AttendanceReport(BaseModel):
    class_id: str
    dates: List[date]
    rows: List[AttendanceReportRow]
