"""Teacher side: issue a location-bound attendance code."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional

from geoattend.errors import CodeConflict, IssuanceFailed
from geoattend.models.attendance_code import AttendanceCode
from geoattend.services.code_store import AttendanceCodeStore
from geoattend.services.codes import generate_code
from geoattend.services.location import LocationProvider, acquire_location

logger = logging.getLogger(__name__)


class CodeIssuanceService:
    def __init__(
        self,
        codes: AttendanceCodeStore,
        *,
        max_attempts: int = 3,
        generate: Callable[[], str] = generate_code,
    ):
        self._codes = codes
        self._max_attempts = max_attempts
        self._generate = generate

    async def issue_code(
        self,
        class_id: str,
        ttl: timedelta,
        location_provider: LocationProvider,
        *,
        issued_by: Optional[str] = None,
    ) -> AttendanceCode:
        """Capture the issuer's position and persist a fresh code for ``class_id``.

        No code is issued without a location, since redemption is checked
        against it. Raises LocationUnavailable or IssuanceFailed.
        """
        location = await acquire_location(location_provider)

        for attempt in range(1, self._max_attempts + 1):
            code = self._generate()
            issued_at = await self._codes.now()
            try:
                issued = await self._codes.issue(
                    class_id,
                    code,
                    issued_at + ttl,
                    location,
                    issued_at=issued_at,
                    issued_by=issued_by,
                )
            except CodeConflict:
                logger.warning(f"Code collision for class {class_id} (attempt {attempt}/{self._max_attempts})")
                continue
            logger.info(f"Issued attendance code for class {class_id}, expires at {issued.expires_at.isoformat()}")
            return issued

        raise IssuanceFailed()
