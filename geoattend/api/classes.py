"""Teacher endpoints: issue codes, watch the countdown, review attendance and follow check-ins live."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from geoattend.api.deps import Backend, IssuanceService, TeacherOrAdmin, ensure_teaches
from geoattend.models.attendance import AttendanceRecord, AttendanceReport
from geoattend.models.attendance_code import ActiveCodeOut, IssueCodeRequest, IssuedCode
from geoattend.services.codes import format_time_left, seconds_remaining, ttl_from_parts
from geoattend.services.geo import format_coordinates
from geoattend.services.location import ReportedLocationProvider
from geoattend.services.reports import build_report
from geoattend.services.roster import sse_events

router = APIRouter()


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format (YYYY-MM-DD)")


def _parse_range(from_date: Optional[str], to_date: Optional[str]) -> tuple[Optional[date], Optional[date]]:
    d_from = _parse_date(from_date)
    d_to = _parse_date(to_date)
    if d_from and d_to and d_from > d_to:
        raise HTTPException(status_code=400, detail="from_date must not be after to_date")
    return d_from, d_to


@router.post("/{class_id}/codes", response_model=IssuedCode, status_code=status.HTTP_201_CREATED)
async def issue_code(
    class_id: str,
    data: IssueCodeRequest,
    user: TeacherOrAdmin,
    backend: Backend,
    service: IssuanceService,
):
    """Generate a code bound to the teacher's current location."""
    await ensure_teaches(user, class_id, backend)
    try:
        ttl = ttl_from_parts(data.ttl_minutes, data.ttl_seconds)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    issued = await service.issue_code(
        class_id,
        ttl,
        ReportedLocationProvider(data.location),
        issued_by=user.id,
    )
    return IssuedCode(
        id=issued.id,
        code=issued.code,
        class_id=issued.class_id,
        issued_at=issued.issued_at,
        expires_at=issued.expires_at,
    )


@router.get("/{class_id}/codes/current", response_model=ActiveCodeOut)
async def current_code(class_id: str, user: TeacherOrAdmin, backend: Backend):
    """Most recent code still valid, with the time left computed now."""
    await ensure_teaches(user, class_id, backend)
    issued = await backend.codes.latest_active(class_id)
    if not issued:
        raise HTTPException(status_code=404, detail="No active code for this class")
    remaining = seconds_remaining(issued.expires_at, await backend.codes.now())
    return ActiveCodeOut(
        id=issued.id,
        code=issued.code,
        class_id=issued.class_id,
        issued_at=issued.issued_at,
        expires_at=issued.expires_at,
        seconds_remaining=remaining,
        time_left=format_time_left(remaining),
        issuer_location=format_coordinates(issued.issuer_latitude, issued.issuer_longitude),
    )


@router.get("/{class_id}/attendance", response_model=List[AttendanceRecord])
async def list_attendance(
    class_id: str,
    user: TeacherOrAdmin,
    backend: Backend,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
):
    """Attendance records for a class, optionally within a date range (inclusive)."""
    await ensure_teaches(user, class_id, backend)
    d_from, d_to = _parse_range(from_date, to_date)
    return await backend.records.list_by_class(class_id, d_from, d_to)


@router.get("/{class_id}/attendance/report", response_model=AttendanceReport)
async def attendance_report(
    class_id: str,
    user: TeacherOrAdmin,
    backend: Backend,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
):
    """Student x date grid; a student with no record on a class day is absent."""
    await ensure_teaches(user, class_id, backend)
    d_from, d_to = _parse_range(from_date, to_date)
    return build_report(class_id, await backend.records.list_by_class(class_id, d_from, d_to))


@router.get("/{class_id}/attendance/live")
async def live_attendance(class_id: str, request: Request, user: TeacherOrAdmin, backend: Backend):
    """Server-Sent Events stream of check-ins as they happen (no replay)."""
    await ensure_teaches(user, class_id, backend)
    return StreamingResponse(
        sse_events(backend.roster, class_id, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
