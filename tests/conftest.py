import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest

from geoattend.models.location import ReportedLocation
from geoattend.services.geo import EARTH_RADIUS_METERS

METERS_PER_DEGREE_LAT = EARTH_RADIUS_METERS * 3.141592653589793 / 180


class FakeClock:
    """Stands in for the database server's clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubLocationProvider:
    def __init__(self, location=None, granted=True):
        self.location = location
        self.granted = granted

    async def request_permission(self) -> bool:
        return self.granted

    async def get_current_location(self):
        return self.location


def north_of(latitude: float, longitude: float, meters: float) -> ReportedLocation:
    return ReportedLocation(latitude=latitude + meters / METERS_PER_DEGREE_LAT, longitude=longitude)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
