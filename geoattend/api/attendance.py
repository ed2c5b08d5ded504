"""Student endpoints: redeem a code, view own attendance."""
from typing import List, Optional

from fastapi import APIRouter, Response, status

from geoattend.api.deps import Backend, RedemptionService, StudentOnly
from geoattend.errors import AlreadyMarked
from geoattend.models.attendance import AttendanceRecord, AttendanceSummary, RedeemRequest
from geoattend.services.location import ReportedLocationProvider

router = APIRouter()


@router.post("/redeem", status_code=status.HTTP_201_CREATED)
async def redeem_code(
    data: RedeemRequest,
    user: StudentOnly,
    service: RedemptionService,
    response: Response,
):
    """Mark the caller present using a teacher-issued code."""
    try:
        result = await service.redeem(
            user.id,
            data.class_id,
            data.code.strip(),
            ReportedLocationProvider(data.location),
        )
    except AlreadyMarked as e:
        response.status_code = status.HTTP_200_OK
        return {"status": "already_marked", "message": e.message}

    return {
        "status": "present",
        "message": "Attendance marked",
        "record": result.record,
        "distance_meters": round(result.distance_meters, 1) if result.distance_meters is not None else None,
    }


@router.get("/me", response_model=List[AttendanceRecord])
async def my_attendance(user: StudentOnly, backend: Backend, class_id: Optional[str] = None):
    return await backend.records.list_by_student(user.id, class_id)


@router.get("/me/summary", response_model=List[AttendanceSummary])
async def my_attendance_summary(user: StudentOnly, backend: Backend, class_id: Optional[str] = None):
    """Per-class present count and percentage over the days each class met."""
    return await backend.records.summary(user.id, class_id)
