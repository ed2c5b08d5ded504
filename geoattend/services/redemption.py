"""Student side: redeem an attendance code.

The student's position is acquired first; without it nothing else runs.
The checks then run in a fixed order and the first failure wins:

1. the code exists for the class and has not expired (store clock),
2. the student is enrolled in the class,
3. the student is within range of the issuer's position,
4. the record insert succeeds (the unique index rejects a second check-in).

Enrollment is checked before distance so students outside the class learn
nothing about where it is held.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from geoattend.errors import AlreadyMarked, InvalidOrExpiredCode, NotEnrolled, OutOfRange, RecordExists
from geoattend.models.attendance import AttendanceFields, AttendanceRecord, AttendanceStatus
from geoattend.models.location import Coordinates
from geoattend.services.code_store import AttendanceCodeStore
from geoattend.services.enrollment import EnrollmentDirectory
from geoattend.services.geo import distance_meters
from geoattend.services.location import LocationProvider, ReverseGeocoder, acquire_location
from geoattend.services.record_store import AttendanceRecordStore

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_METERS = 50.0


@dataclass
class Redemption:
    record: AttendanceRecord
    distance_meters: Optional[float] = None  # None when the code carries no issuer position


class CodeRedemptionService:
    def __init__(
        self,
        codes: AttendanceCodeStore,
        records: AttendanceRecordStore,
        enrollments: EnrollmentDirectory,
        *,
        radius_meters: float = DEFAULT_RADIUS_METERS,
        require_issuer_location: bool = False,
        timezone: str = "UTC",
        geocoder: Optional[ReverseGeocoder] = None,
    ):
        self._codes = codes
        self._records = records
        self._enrollments = enrollments
        self._radius_meters = radius_meters
        self._require_issuer_location = require_issuer_location
        self._tz = ZoneInfo(timezone)
        self._geocoder = geocoder

    def attendance_day(self, now: datetime) -> date:
        return now.astimezone(self._tz).date()

    async def redeem(
        self,
        student_id: str,
        class_id: str,
        code: str,
        location_provider: LocationProvider,
    ) -> Redemption:
        location = await acquire_location(location_provider)

        issued = await self._codes.lookup(class_id, code)
        if issued is None:
            logger.warning(f"Rejected redemption by {student_id} for class {class_id}: invalid or expired code")
            raise InvalidOrExpiredCode()

        if not await self._enrollments.is_enrolled(student_id, class_id):
            logger.warning(f"Rejected redemption by {student_id} for class {class_id}: not enrolled")
            raise NotEnrolled()

        distance = self._check_distance(student_id, class_id, issued.issuer_location, location)

        fields = AttendanceFields(
            status=AttendanceStatus.PRESENT,
            latitude=location.latitude,
            longitude=location.longitude,
            location_address=await self._address_for(location),
            code_id=issued.id,
        )
        day = self.attendance_day(await self._codes.now())
        try:
            record = await self._records.insert_if_absent(class_id, student_id, day, fields)
        except RecordExists:
            raise AlreadyMarked()

        logger.info(f"Attendance marked for {student_id} in class {class_id} on {day.isoformat()}")
        return Redemption(record=record, distance_meters=distance)

    def _check_distance(
        self,
        student_id: str,
        class_id: str,
        issuer: Optional[Coordinates],
        student: Coordinates,
    ) -> Optional[float]:
        if issuer is None:
            if self._require_issuer_location:
                logger.warning(f"Rejected redemption by {student_id} for class {class_id}: code has no issuer location")
                raise OutOfRange("The class location was not captured for this code")
            return None

        distance = distance_meters(student.latitude, student.longitude, issuer.latitude, issuer.longitude)
        if distance > self._radius_meters:
            logger.warning(
                f"Rejected redemption by {student_id} for class {class_id}: {distance:.0f}m away"
            )
            raise OutOfRange(
                f"You are too far from the class location. Please ensure you are within "
                f"{self._radius_meters:.0f} meters of the teacher's location."
            )
        return distance

    async def _address_for(self, location: Coordinates) -> Optional[str]:
        address = getattr(location, "address", None)
        if address:
            return address
        if self._geocoder is None:
            return None
        return await self._geocoder.address_for(location.latitude, location.longitude)
