"""Attendance summaries for students and the class grid for teachers.

Only presence is stored. A student with no record on a day the class met
counts as absent.
"""
from typing import Iterable

from geoattend.models.attendance import (
    AttendanceRecord,
    AttendanceReport,
    AttendanceReportRow,
    AttendanceStatus,
    AttendanceSummary,
)


def summarize(class_id: str, present: int, total_sessions: int) -> AttendanceSummary:
    percentage = round(present / total_sessions * 100, 1) if total_sessions else 0.0
    return AttendanceSummary(
        class_id=class_id,
        present=present,
        total_sessions=total_sessions,
        percentage=percentage,
    )


def build_report(class_id: str, records: Iterable[AttendanceRecord]) -> AttendanceReport:
    """Student x date grid over the days that have any record; gaps read as absent."""
    by_cell = {}
    for r in records:
        by_cell[(r.student_id, r.date)] = r.status
    dates = sorted({day for _, day in by_cell})
    students = sorted({student for student, _ in by_cell})

    rows = []
    for student_id in students:
        statuses = [by_cell.get((student_id, day), AttendanceStatus.ABSENT) for day in dates]
        rows.append(
            AttendanceReportRow(
                student_id=student_id,
                statuses=statuses,
                present=sum(1 for s in statuses if s == AttendanceStatus.PRESENT),
            )
        )
    return AttendanceReport(class_id=class_id, dates=dates, rows=rows)
