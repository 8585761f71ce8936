"""
Route preview
=============

POST /api/routes/calculate -- run the assembler without storing anything
"""

from fastapi import APIRouter, Depends, Request

from carbon_passport.api.dependencies import get_directory, get_locale
from carbon_passport.api.middleware import limiter
from carbon_passport.api.schemas import (
    CO2Out,
    RouteCalculationRequest,
    RouteCalculationResponse,
    route_out,
)
from carbon_passport.config import settings
from carbon_passport.domain.emissions import trees_equivalent
from carbon_passport.domain.routes import assemble
from carbon_passport.domain.stations import StationDirectory

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post(
    "/calculate",
    response_model=RouteCalculationResponse,
    summary="Preview distances and CO2 for a list of trips",
)
@limiter.limit(settings.rate_limit)
async def calculate_routes(
    request: Request,
    body: RouteCalculationRequest,
    locale: str = Depends(get_locale),
    directory: StationDirectory = Depends(get_directory),
):
    result = assemble([leg.to_leg() for leg in body.routes], directory)
    return RouteCalculationResponse(
        success=result.succeeded,
        routes=[
            route_out(
                r,
                directory.get_by_code(r.origin_code).name(locale),
                directory.get_by_code(r.destination_code).name(locale),
            )
            for r in result.routes
        ],
        total_distance=result.total_distance,
        total_co2=CO2Out.from_emissions(result.total_emissions),
        tree_equivalent=trees_equivalent(result.total_emissions.saved),
        errors=list(result.errors),
        summary=result.summary(),
    )
