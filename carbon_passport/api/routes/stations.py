"""
Station endpoints
=================

GET /api/stations?locale=&region=   -- active stations, sorted by local name
GET /api/stations/search?q=&locale= -- autocomplete over display names
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carbon_passport.api.dependencies import get_db, get_directory, get_locale
from carbon_passport.api.middleware import limiter
from carbon_passport.api.schemas import StationListResponse, StationOut
from carbon_passport.config import settings
from carbon_passport.domain.stations import StationDirectory, region_name
from carbon_passport.infrastructure.repositories import (
    StationRepository,
    station_to_domain,
)
from carbon_passport.infrastructure.retry import retry_async

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get(
    "",
    response_model=StationListResponse,
    summary="List active stations",
    description=(
        "Reads the ``stations`` table; when it has not been seeded yet the "
        "built-in directory is served instead."
    ),
)
@limiter.limit(settings.rate_limit)
async def list_stations(
    request: Request,
    region: Optional[str] = Query(None),
    locale: str = Depends(get_locale),
    db: AsyncSession = Depends(get_db),
    directory: StationDirectory = Depends(get_directory),
):
    repo = StationRepository(db)
    rows = await retry_async(lambda: repo.list_stations(locale))
    if rows:
        stations = [station_to_domain(r) for r in rows]
    else:
        logger.info("Station table is empty, serving the built-in directory")
        stations = sorted(
            directory.active(), key=lambda s: (s.name(locale), s.code)
        )
    if region:
        stations = [s for s in stations if s.region == region]

    return StationListResponse(
        count=len(stations),
        stations=[
            StationOut.from_station(
                s, locale, region_name(s.region, locale) if s.region else None
            )
            for s in stations
        ],
    )


@router.get(
    "/search",
    response_model=StationListResponse,
    summary="Station autocomplete",
)
@limiter.limit(settings.rate_limit)
async def search_stations(
    request: Request,
    q: str = Query("", max_length=50),
    limit: int = Query(10, ge=1, le=50),
    locale: str = Depends(get_locale),
    directory: StationDirectory = Depends(get_directory),
):
    matches = [s for s in directory.search(q, locale) if s.is_active][:limit]
    return StationListResponse(
        count=len(matches),
        stations=[StationOut.from_station(s, locale) for s in matches],
    )
