"""Typed outcomes of code issuance and redemption."""
from __future__ import annotations


class AttendanceError(Exception):
    """Base for user-facing attendance failures.

    ``reason`` is a stable machine-readable code for clients, ``status_code``
    the HTTP status the API answers with.
    """

    reason = "attendance_error"
    status_code = 400
    default_message = "Attendance request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class LocationUnavailable(AttendanceError):
    reason = "location_unavailable"
    status_code = 422
    default_message = "Location is required. Enable location services and grant permission."


class InvalidOrExpiredCode(AttendanceError):
    reason = "invalid_or_expired_code"
    status_code = 400
    default_message = "Invalid or expired code for this class"


class NotEnrolled(AttendanceError):
    reason = "not_enrolled"
    status_code = 403
    default_message = "You are not enrolled in this class"


class OutOfRange(AttendanceError):
    reason = "out_of_range"
    status_code = 403
    default_message = "You are too far from the class location"


class AlreadyMarked(AttendanceError):
    """Informational: the student already has a record for today."""

    reason = "already_marked"
    status_code = 200
    default_message = "You have already marked your attendance for this class today"


class IssuanceFailed(AttendanceError):
    reason = "issuance_failed"
    status_code = 503
    default_message = "Failed to generate attendance code, please try again"


# Store-level conflicts, translated by the services.

class CodeConflict(Exception):
    """The code value already exists un-expired for the class."""


class RecordExists(Exception):
    """An attendance record already exists for (class, student, date)."""
