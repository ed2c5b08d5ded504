"""Shared dependencies: JWT verification, role checks and service wiring."""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from geoattend.config import settings
from geoattend.models.user import Principal, UserRole
from geoattend.services.backends import AttendanceBackend, get_backend
from geoattend.services.issuance import CodeIssuanceService
from geoattend.services.location import ReverseGeocoder
from geoattend.services.redemption import CodeRedemptionService

security = HTTPBearer(auto_error=False)


def create_access_token(subject: str, role: str) -> str:
    """Mint a token the way the auth provider does (tooling and tests)."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Principal:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(credentials.credentials, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        return Principal(id=user_id, role=payload.get("role"))
    except ValidationError:
        raise HTTPException(status_code=401, detail="Invalid token role")


CurrentUser = Annotated[Principal, Depends(get_current_user)]


def require_roles(*allowed: UserRole):
    async def checker(user: CurrentUser):
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return checker


Backend = Annotated[AttendanceBackend, Depends(get_backend)]


async def ensure_teaches(user: Principal, class_id: str, backend: AttendanceBackend) -> None:
    if user.role == UserRole.ADMIN:
        return
    if not await backend.enrollments.teaches(user.id, class_id):
        raise HTTPException(status_code=403, detail="You are not assigned to this class")


@lru_cache
def get_geocoder() -> Optional[ReverseGeocoder]:
    if not settings.reverse_geocoding_enabled:
        return None
    return ReverseGeocoder(settings.geocoder_user_agent, timeout=settings.geocoder_timeout_seconds)


def get_issuance_service(backend: Backend) -> CodeIssuanceService:
    return CodeIssuanceService(backend.codes, max_attempts=settings.code_issue_max_attempts)


def get_redemption_service(
    backend: Backend,
    geocoder: Annotated[Optional[ReverseGeocoder], Depends(get_geocoder)],
) -> CodeRedemptionService:
    return CodeRedemptionService(
        backend.codes,
        backend.records,
        backend.enrollments,
        radius_meters=settings.proximity_radius_meters,
        require_issuer_location=settings.require_issuer_location,
        timezone=settings.attendance_timezone,
        geocoder=geocoder,
    )


# Type aliases for route injection
TeacherOrAdmin = Annotated[Principal, Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN))]
StudentOnly = Annotated[Principal, Depends(require_roles(UserRole.STUDENT))]
IssuanceService = Annotated[CodeIssuanceService, Depends(get_issuance_service)]
RedemptionService = Annotated[CodeRedemptionService, Depends(get_redemption_service)]
