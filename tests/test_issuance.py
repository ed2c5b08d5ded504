from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from geoattend.errors import IssuanceFailed, LocationUnavailable
from geoattend.models.location import Coordinates
from geoattend.services.code_store import InMemoryAttendanceCodeStore
from geoattend.services.issuance import CodeIssuanceService
from geoattend.services.location import ReportedLocationProvider

from conftest import StubLocationProvider

TEACHER_AT = Coordinates(latitude=40.0, longitude=-75.0)


async def test_issue_code_persists_location_and_expiry(clock):
    store = InMemoryAttendanceCodeStore(clock)
    service = CodeIssuanceService(store)

    issued = await service.issue_code("C1", timedelta(minutes=15), ReportedLocationProvider(TEACHER_AT), issued_by="T1")

    assert len(issued.code) == 6 and issued.code.isdigit()
    assert issued.issued_at == clock()
    assert issued.expires_at == clock() + timedelta(minutes=15)
    assert issued.issuer_location == TEACHER_AT
    assert issued.issued_by == "T1"
    assert await store.lookup("C1", issued.code) == issued


async def test_issue_code_without_location_fails_closed(clock):
    store = InMemoryAttendanceCodeStore(clock)
    service = CodeIssuanceService(store)

    with pytest.raises(LocationUnavailable):
        await service.issue_code("C1", timedelta(minutes=15), ReportedLocationProvider(None))
    with pytest.raises(LocationUnavailable):
        await service.issue_code("C1", timedelta(minutes=15), StubLocationProvider(TEACHER_AT, granted=False))

    assert await store.latest_active("C1") is None


async def test_issue_code_regenerates_on_collision(clock):
    store = InMemoryAttendanceCodeStore(clock)
    await store.issue("C1", "111111", clock() + timedelta(minutes=15), TEACHER_AT)
    generate = MagicMock(side_effect=["111111", "111111", "222222"])
    service = CodeIssuanceService(store, generate=generate)

    issued = await service.issue_code("C1", timedelta(minutes=15), ReportedLocationProvider(TEACHER_AT))

    assert issued.code == "222222"
    assert generate.call_count == 3


async def test_issue_code_gives_up_after_bounded_retries(clock, caplog):
    store = InMemoryAttendanceCodeStore(clock)
    await store.issue("C1", "111111", clock() + timedelta(minutes=15), TEACHER_AT)
    generate = MagicMock(return_value="111111")
    service = CodeIssuanceService(store, max_attempts=3, generate=generate)

    with pytest.raises(IssuanceFailed):
        await service.issue_code("C1", timedelta(minutes=15), ReportedLocationProvider(TEACHER_AT))

    assert generate.call_count == 3
    assert sum("Code collision" in r.getMessage() for r in caplog.records) == 3


async def test_multiple_valid_codes_may_coexist(clock):
    store = InMemoryAttendanceCodeStore(clock)
    service = CodeIssuanceService(store, generate=MagicMock(side_effect=["111111", "222222"]))
    provider = ReportedLocationProvider(TEACHER_AT)

    await service.issue_code("C1", timedelta(minutes=15), provider)
    await service.issue_code("C1", timedelta(minutes=15), provider)

    assert await store.lookup("C1", "111111") is not None
    assert await store.lookup("C1", "222222") is not None
