"""Beanie document models and Pydantic schemas."""
from geoattend.models.attendance import (
    AttendanceFields,
    AttendanceRecord,
    AttendanceRecordDocument,
    AttendanceReport,
    AttendanceReportRow,
    AttendanceStatus,
    AttendanceSummary,
    RedeemRequest,
)
from geoattend.models.attendance_code import (
    ActiveCodeOut,
    AttendanceCode,
    AttendanceCodeDocument,
    IssueCodeRequest,
    IssuedCode,
)
from geoattend.models.location import Coordinates, ReportedLocation
from geoattend.models.school_class import ClassEnrollment, SchoolClass
from geoattend.models.user import Principal, UserRole

__all__ = [
    "AttendanceFields",
    "AttendanceRecord",
    "AttendanceRecordDocument",
    "AttendanceReport",
    "AttendanceReportRow",
    "AttendanceStatus",
    "AttendanceSummary",
    "RedeemRequest",
    "ActiveCodeOut",
    "AttendanceCode",
    "AttendanceCodeDocument",
    "IssueCodeRequest",
    "IssuedCode",
    "Coordinates",
    "ReportedLocation",
    "ClassEnrollment",
    "SchoolClass",
    "Principal",
    "UserRole",
]
