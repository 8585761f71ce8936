"""Tests for the ordered photo -> passport -> routes submission flow."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from carbon_passport.config import settings
from carbon_passport.domain.entities import Leg
from carbon_passport.domain.errors import (
    DatabaseUnavailable,
    OrphanedPassportError,
    PhotoRejected,
    StorageUnavailable,
    SubmissionRejected,
)
from carbon_passport.domain.forms import (
    PassportSubmission,
    PreferencesStep,
    RoutesStep,
    TravellerStep,
)
from carbon_passport.infrastructure.models import PassportModel, RouteModel
from carbon_passport.infrastructure.repositories import PassportRepository
from carbon_passport.infrastructure.storage import PhotoUpload
from carbon_passport.services.submissions import PassportSubmissionService

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

PNG = PhotoUpload("me.png", "image/png", b"\x89PNG\r\n\x1a\n" + b"0" * 32)


def _submission(*legs: Leg, name: str = "Kim Minji") -> PassportSubmission:
    return PassportSubmission(
        traveller=TravellerStep(name=name, travel_date=date(2026, 5, 1)),
        routes=RoutesStep(legs=legs, max_legs=20),
        preferences=PreferencesStep(frequency="monthly", esg_interest=True),
    )


def _service(db_session, storage) -> PassportSubmissionService:
    return PassportSubmissionService(db_session, storage, clock=lambda: NOW)


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar()


class TestSubmit:
    @pytest.mark.asyncio
    async def test_creates_passport_with_routes(self, db_session, storage):
        outcome = await _service(db_session, storage).submit(
            _submission(Leg("SEOUL", "BUSAN"), Leg("BUSAN", "GYEONGJU"))
        )

        passport = outcome.passport
        assert passport.id
        assert passport.created_at == NOW
        assert [r.sequence_order for r in passport.routes] == [0, 1]
        assert all(r.passport_id == passport.id for r in passport.routes)
        assert outcome.errors == ()
        assert outcome.summary() == "2 of 2 routes added"
        assert await _count(db_session, RouteModel) == 2

    @pytest.mark.asyncio
    async def test_partial_success_reports_failed_legs(self, db_session, storage):
        outcome = await _service(db_session, storage).submit(
            _submission(Leg("SEOUL", "ATLANTIS"), Leg("SEOUL", "BUSAN"))
        )
        assert len(outcome.passport.routes) == 1
        assert outcome.passport.routes[0].sequence_order == 0
        assert outcome.errors[0].startswith("Route 1:")
        assert outcome.summary() == "1 of 2 routes added"

    @pytest.mark.asyncio
    async def test_same_station_leg_is_skipped_not_fatal(self, db_session, storage):
        outcome = await _service(db_session, storage).submit(
            _submission(Leg("SEOUL", "BUSAN"), Leg("SEOUL", "SEOUL"))
        )
        assert [(r.origin_code, r.destination_code) for r in outcome.passport.routes] == [
            ("SEOUL", "BUSAN")
        ]
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("Route 2:")
        assert await _count(db_session, RouteModel) == 1

    @pytest.mark.asyncio
    async def test_blank_endpoint_is_a_leg_error(self, db_session, storage):
        outcome = await _service(db_session, storage).submit(
            _submission(Leg("SEOUL", "BUSAN"), Leg("DAEJEON", " "))
        )
        assert len(outcome.passport.routes) == 1
        assert "missing station" in outcome.errors[0]

    @pytest.mark.asyncio
    async def test_no_valid_leg_writes_nothing(self, db_session, storage):
        with pytest.raises(SubmissionRejected) as exc:
            await _service(db_session, storage).submit(
                _submission(Leg("SEOUL", "ATLANTIS"), Leg("BUSAN", "부산역")),
                photo=PNG,
            )
        assert len(exc.value.errors) == 2
        assert await _count(db_session, PassportModel) == 0
        assert not storage.root.exists()

    @pytest.mark.asyncio
    async def test_form_errors_rejected(self, db_session, storage):
        with pytest.raises(SubmissionRejected) as exc:
            await _service(db_session, storage).submit(
                _submission(Leg("SEOUL", "BUSAN"), name=" ")
            )
        assert exc.value.errors == ["name: Name is required"]

    @pytest.mark.asyncio
    async def test_replay_returns_stored_passport(self, db_session, storage):
        service = _service(db_session, storage)
        first = await service.submit(
            _submission(Leg("SEOUL", "BUSAN")), idempotency_key="key-1"
        )
        second = await service.submit(
            _submission(Leg("SEOUL", "DAEJEON"), Leg("DAEJEON", "BUSAN")),
            idempotency_key="key-1",
        )
        assert second.replayed
        assert second.passport.id == first.passport.id
        assert len(second.passport.routes) == 1
        assert await _count(db_session, PassportModel) == 1


class TestPhoto:
    @pytest.mark.asyncio
    async def test_photo_is_stored(self, db_session, storage):
        outcome = await _service(db_session, storage).submit(
            _submission(Leg("SEOUL", "BUSAN")), photo=PNG
        )
        url = outcome.passport.photo_url
        assert url.startswith(f"http://test/photos/passport-{outcome.passport.id}-")
        assert not outcome.photo_degraded

    @pytest.mark.asyncio
    async def test_rejected_photo_fails_submission(self, db_session, storage):
        gif = PhotoUpload("me.gif", "image/gif", b"GIF89a")
        with pytest.raises(PhotoRejected):
            await _service(db_session, storage).submit(
                _submission(Leg("SEOUL", "BUSAN")), photo=gif
            )
        assert await _count(db_session, PassportModel) == 0

    @pytest.mark.asyncio
    async def test_storage_outage_degrades_to_no_photo(
        self, db_session, storage, monkeypatch
    ):
        monkeypatch.setattr(settings, "gateway_retry_backoff_seconds", 0.0)
        storage.upload = AsyncMock(side_effect=StorageUnavailable("bucket down"))

        outcome = await _service(db_session, storage).submit(
            _submission(Leg("SEOUL", "BUSAN")), photo=PNG
        )
        assert outcome.photo_degraded
        assert outcome.passport.photo_url is None
        assert outcome.warnings
        assert storage.upload.await_count == settings.gateway_retry_attempts


class TestOrphanedPassport:
    @pytest.mark.asyncio
    async def test_route_insert_failure_is_reported(self, db_session, storage):
        service = _service(db_session, storage)
        service.routes.create_routes = AsyncMock(side_effect=SQLAlchemyError("boom"))

        with pytest.raises(OrphanedPassportError) as exc:
            await service.submit(_submission(Leg("SEOUL", "BUSAN")))

        orphan = await PassportRepository(db_session).get_by_id(exc.value.passport_id)
        assert orphan is not None
        assert await _count(db_session, RouteModel) == 0

    @pytest.mark.asyncio
    async def test_retry_after_orphan_is_not_a_success(self, db_session, storage):
        service = _service(db_session, storage)
        service.routes.create_routes = AsyncMock(side_effect=SQLAlchemyError("boom"))
        with pytest.raises(OrphanedPassportError) as first:
            await service.submit(
                _submission(Leg("SEOUL", "BUSAN")), idempotency_key="k1"
            )

        with pytest.raises(OrphanedPassportError) as retry:
            await service.submit(
                _submission(Leg("SEOUL", "BUSAN")), idempotency_key="k1"
            )
        assert retry.value.passport_id == first.value.passport_id
        assert await _count(db_session, PassportModel) == 1


class TestPassportInsertFailure:
    @pytest.mark.asyncio
    async def test_failed_insert_removes_photo(self, db_session, storage):
        service = _service(db_session, storage)
        service.passports.create_passport = AsyncMock(
            side_effect=SQLAlchemyError("connection reset")
        )

        with pytest.raises(DatabaseUnavailable):
            await service.submit(_submission(Leg("SEOUL", "BUSAN")), photo=PNG)

        assert list(storage.root.iterdir()) == []
        assert await _count(db_session, PassportModel) == 0

    @pytest.mark.asyncio
    async def test_failed_insert_without_photo(self, db_session, storage):
        service = _service(db_session, storage)
        service.passports.create_passport = AsyncMock(side_effect=SQLAlchemyError("x"))
        storage.delete = AsyncMock()

        with pytest.raises(DatabaseUnavailable):
            await service.submit(_submission(Leg("SEOUL", "BUSAN")))
        storage.delete.assert_not_awaited()
