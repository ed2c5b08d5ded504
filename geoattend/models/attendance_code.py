"""Short-lived attendance codes bound to the issuer's location."""
from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

from geoattend.config import settings
from geoattend.models.location import Coordinates
from geoattend.services.codes import MAX_CODE_TTL_MINUTES, as_utc


class AttendanceCodeDocument(Document):
    """Issued code. Immutable; valid while expires_at is in the future (server clock)."""
    class_id: Indexed(str)
    code: str
    issued_at: datetime
    expires_at: datetime
    issuer_latitude: Optional[float] = None
    issuer_longitude: Optional[float] = None
    issued_by: Optional[str] = None  # teacher user_id

    class Settings:
        name = "attendance_codes"
        indexes = [
            IndexModel([("class_id", ASCENDING), ("code", ASCENDING)], unique=True, name="class_code_unique"),
            # Out-of-band garbage collection; validity is always checked at read time.
            IndexModel(
                [("expires_at", ASCENDING)],
                expireAfterSeconds=settings.code_retention_hours * 3600,
                name="expires_at_ttl",
            ),
        ]

    def to_code(self) -> "AttendanceCode":
        return AttendanceCode(
            id=str(self.id),
            class_id=self.class_id,
            code=self.code,
            issued_at=as_utc(self.issued_at),
            expires_at=as_utc(self.expires_at),
            issuer_latitude=self.issuer_latitude,
            issuer_longitude=self.issuer_longitude,
            issued_by=self.issued_by,
        )


class AttendanceCode(BaseModel):
    id: str
    class_id: str
    code: str
    issued_at: datetime
    expires_at: datetime
    issuer_latitude: Optional[float] = None
    issuer_longitude: Optional[float] = None
    issued_by: Optional[str] = None

    @property
    def issuer_location(self) -> Optional[Coordinates]:
        if self.issuer_latitude is None or self.issuer_longitude is None:
            return None
        return Coordinates(latitude=self.issuer_latitude, longitude=self.issuer_longitude)


class IssueCodeRequest(BaseModel):
    ttl_minutes: int = Field(default_factory=lambda: settings.code_ttl_minutes, ge=0, le=MAX_CODE_TTL_MINUTES)
    ttl_seconds: int = Field(default_factory=lambda: settings.code_ttl_seconds, ge=0, le=59)
    location: Optional[Coordinates] = None  # teacher's device position


class IssuedCode(BaseModel):
    id: str
    code: str
    class_id: str
    issued_at: datetime
    expires_at: datetime


class ActiveCodeOut(IssuedCode):
    seconds_remaining: int
    time_left: str  # MM:SS
    issuer_location: str  # formatted coordinates or "N/A"
