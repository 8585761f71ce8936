"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  The ``*_to_domain`` helpers turn ORM rows
into the immutable domain entities the aggregator works on.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import PassportModel, RouteModel, StationModel, SurveyResponseModel
from carbon_passport.domain.entities import (
    CO2Emissions,
    Coordinate,
    Passport,
    PassportMetadata,
    Route,
    Station,
    SurveyResponse,
)
from carbon_passport.domain.enums import Locale


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; everything we write is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Mapping ───────────────────────────────────────────────────────────


def route_to_domain(row: RouteModel) -> Route:
    return Route(
        id=row.id,
        passport_id=row.passport_id,
        origin_code=row.start_station,
        destination_code=row.end_station,
        distance=row.distance,
        emissions=CO2Emissions.from_snapshot(
            train=row.co2_train,
            car=row.co2_car,
            bus=row.co2_bus,
            airplane=row.co2_airplane,
            saved=row.co2_saved,
        ),
        sequence_order=row.sequence_order,
    )


def passport_to_domain(
    row: PassportModel, routes: Optional[Iterable[RouteModel]] = None
) -> Passport:
    return Passport(
        id=row.id,
        traveler_name=row.traveler_name,
        country=row.country,
        photo_url=row.photo_url,
        travel_date=row.travel_date,
        share_hash=row.share_hash,
        expires_at=_aware(row.expires_at),
        created_at=_aware(row.created_at),
        metadata=PassportMetadata.from_dict(row.metadata_),
        routes=[route_to_domain(r) for r in (routes or [])],
    )


def station_to_domain(row: StationModel) -> Station:
    names = {"ko": row.name_ko, "en": row.name_en}
    if row.name_ja:
        names["ja"] = row.name_ja
    if row.name_zh:
        names["zh"] = row.name_zh
    return Station(
        code=row.code,
        names=names,
        coordinate=Coordinate(row.latitude, row.longitude),
        region=row.region,
        is_primary_hub=row.is_primary_hub,
        is_active=row.is_active,
    )


def survey_to_domain(row: SurveyResponseModel) -> SurveyResponse:
    return SurveyResponse(
        passport_id=row.passport_id,
        responses=dict(row.responses or {}),
        completed=row.completed,
        completed_at=_aware(row.completed_at),
    )


# ── Repositories ──────────────────────────────────────────────────────


class PassportRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_passport(
        self, passport: Passport, idempotency_key: str | None = None
    ) -> PassportModel:
        row = PassportModel(
            traveler_name=passport.traveler_name,
            country=passport.country,
            photo_url=passport.photo_url,
            travel_date=passport.travel_date,
            share_hash=passport.share_hash,
            idempotency_key=idempotency_key,
            expires_at=passport.expires_at,
            metadata_=passport.metadata.as_dict(),
        )
        if passport.id:
            row.id = passport.id
        if passport.created_at is not None:
            row.created_at = passport.created_at
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_by_id(self, passport_id: str) -> Optional[PassportModel]:
        return await self.session.get(PassportModel, passport_id)

    async def get_with_routes(self, passport_id: str) -> Optional[PassportModel]:
        result = await self.session.execute(
            select(PassportModel)
            .options(selectinload(PassportModel.routes))
            .where(PassportModel.id == passport_id)
        )
        return result.scalar_one_or_none()

    async def get_by_share_hash(self, share_hash: str) -> Optional[PassportModel]:
        result = await self.session.execute(
            select(PassportModel)
            .options(selectinload(PassportModel.routes))
            .where(PassportModel.share_hash == share_hash)
        )
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(self, key: str) -> Optional[PassportModel]:
        result = await self.session.execute(
            select(PassportModel)
            .options(selectinload(PassportModel.routes))
            .where(PassportModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def attach_photo(
        self, passport_id: str, photo_url: str
    ) -> Optional[PassportModel]:
        row = await self.get_by_id(passport_id)
        if row is None:
            return None
        row.photo_url = photo_url
        await self.session.flush()
        return row

    async def delete(self, passport_id: str) -> bool:
        """Delete a passport together with its routes and survey."""
        result = await self.session.execute(
            select(PassportModel)
            .options(
                selectinload(PassportModel.routes),
                selectinload(PassportModel.survey),
            )
            .where(PassportModel.id == passport_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True


class RouteRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_routes(
        self, passport_id: str, routes: Sequence[Route]
    ) -> list[RouteModel]:
        """Bulk insert; ``sequence_order`` is taken from the routes as given."""
        rows = [
            RouteModel(
                passport_id=passport_id,
                start_station=r.origin_code,
                end_station=r.destination_code,
                distance=r.distance,
                co2_train=r.emissions.train,
                co2_car=r.emissions.car,
                co2_bus=r.emissions.bus,
                co2_airplane=r.emissions.airplane,
                co2_saved=r.emissions.saved,
                sequence_order=r.sequence_order,
            )
            for r in routes
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def list_for_passport(self, passport_id: str) -> list[RouteModel]:
        result = await self.session.execute(
            select(RouteModel)
            .where(RouteModel.passport_id == passport_id)
            .order_by(RouteModel.sequence_order)
        )
        return list(result.scalars().all())


class StationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_stations(
        self, locale: str = Locale.KO.value, active_only: bool = True
    ) -> list[StationModel]:
        name_column = getattr(StationModel, f"name_{Locale(locale).value}")
        query = select(StationModel).order_by(name_column, StationModel.code)
        if active_only:
            query = query.where(StationModel.is_active.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get(self, code: str) -> Optional[StationModel]:
        return await self.session.get(StationModel, code)

    async def upsert_many(self, stations: Iterable[Station]) -> int:
        count = 0
        for s in stations:
            await self.session.merge(
                StationModel(
                    code=s.code,
                    name_ko=s.names["ko"],
                    name_en=s.names["en"],
                    name_ja=s.names.get("ja"),
                    name_zh=s.names.get("zh"),
                    latitude=s.coordinate.latitude,
                    longitude=s.coordinate.longitude,
                    region=s.region,
                    is_primary_hub=s.is_primary_hub,
                    is_active=s.is_active,
                )
            )
            count += 1
        await self.session.flush()
        return count


class SurveyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, passport_id: str) -> Optional[SurveyResponseModel]:
        result = await self.session.execute(
            select(SurveyResponseModel).where(
                SurveyResponseModel.passport_id == passport_id
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        passport_id: str,
        responses: dict[str, str],
        completed: bool = False,
    ) -> SurveyResponseModel:
        row = await self.get(passport_id)
        if row is None:
            row = SurveyResponseModel(passport_id=passport_id)
            self.session.add(row)
        row.responses = dict(responses)
        row.completed = completed
        row.completed_at = datetime.now(timezone.utc) if completed else None
        await self.session.flush()
        return row
