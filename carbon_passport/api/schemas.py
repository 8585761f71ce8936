"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from carbon_passport.domain.entities import (
    CO2Emissions,
    Leg,
    PassportDisplayData,
    Route,
    Station,
    SurveyResponse,
)
from carbon_passport.domain.enums import ImpactTier


class CamelModel(BaseModel):
    """Responses are serialised with camelCase keys for the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Requests ──────────────────────────────────────────────────────────


class LegInput(BaseModel):
    """One trip as typed by the user; accepts both form vocabularies."""

    origin: str = Field(
        ..., validation_alias=AliasChoices("from", "departure", "origin")
    )
    destination: str = Field(
        ..., validation_alias=AliasChoices("to", "destination")
    )
    distance: Optional[float] = Field(
        None, description="Known distance in km; replaces the great-circle figure."
    )

    def to_leg(self) -> Leg:
        return Leg(self.origin, self.destination, self.distance)


class RouteCalculationRequest(BaseModel):
    routes: list[LegInput]


class SurveyUpdateRequest(BaseModel):
    responses: dict[str, str]
    completed: Optional[bool] = Field(
        None, description="Defaults to whether every question is answered."
    )


# ── Responses ─────────────────────────────────────────────────────────


class CO2Out(CamelModel):
    train: float
    car: float
    bus: float
    airplane: float
    saved: float

    @classmethod
    def from_emissions(cls, emissions: CO2Emissions) -> "CO2Out":
        return cls(**emissions.as_dict())


class PassportSummary(CamelModel):
    id: str
    name: str
    share_hash: str
    photo_url: Optional[str] = None
    total_co2_saved: float = Field(..., alias="totalCO2Saved")
    total_distance: float
    route_count: int


class PassportCreateResponse(CamelModel):
    success: bool = True
    passport: PassportSummary
    share_url: str
    errors: list[str] = []
    warnings: list[str] = []
    message: str
    replayed: bool = False


class EnvironmentalImpactOut(CamelModel):
    level: ImpactTier
    description: str
    badge: str
    color: str


class SavingsComparisonOut(CamelModel):
    vs_car: float
    vs_bus: float
    vs_airplane: float


class RouteRowOut(CamelModel):
    from_code: str
    to_code: str
    from_name: str
    to_name: str
    distance: float
    co2_saved: float
    co2_train: float
    savings_percentage: int
    sequence_order: int


class PassportDisplayOut(CamelModel):
    id: Optional[str] = None
    name: str
    country: str
    country_code: str
    issue_date: str
    photo_url: Optional[str] = None
    total_distance: float
    total_co2_saved: float = Field(..., alias="totalCO2Saved")
    total_co2_train: float = Field(..., alias="totalCO2Train")
    trip_count: int
    tree_equivalent: int
    environmental_impact: EnvironmentalImpactOut
    savings_comparison: SavingsComparisonOut
    routes: list[RouteRowOut]
    share_hash: Optional[str] = None
    share_url: Optional[str] = None
    barcode_data: Optional[str] = None

    @classmethod
    def from_display(cls, display: PassportDisplayData) -> "PassportDisplayOut":
        impact = display.environmental_impact
        comparison = display.savings_comparison
        return cls(
            id=display.id,
            name=display.name,
            country=display.country,
            country_code=display.country_code,
            issue_date=display.issue_date,
            photo_url=display.photo_url,
            total_distance=display.total_distance,
            total_co2_saved=display.total_co2_saved,
            total_co2_train=display.total_co2_train,
            trip_count=display.trip_count,
            tree_equivalent=display.tree_equivalent,
            environmental_impact=EnvironmentalImpactOut(
                level=impact.level,
                description=impact.description,
                badge=impact.badge,
                color=impact.color,
            ),
            savings_comparison=SavingsComparisonOut(
                vs_car=comparison.vs_car,
                vs_bus=comparison.vs_bus,
                vs_airplane=comparison.vs_airplane,
            ),
            routes=[
                RouteRowOut(
                    from_code=r.from_code,
                    to_code=r.to_code,
                    from_name=r.from_name,
                    to_name=r.to_name,
                    distance=r.distance,
                    co2_saved=r.co2_saved,
                    co2_train=r.co2_train,
                    savings_percentage=r.savings_percentage,
                    sequence_order=r.sequence_order,
                )
                for r in display.routes
            ],
            share_hash=display.share_hash,
            share_url=display.share_url,
            barcode_data=display.barcode_data,
        )


class PassportDetailResponse(CamelModel):
    success: bool = True
    passport: PassportDisplayOut


class CalculatedRouteOut(CamelModel):
    from_code: str
    to_code: str
    from_name: str
    to_name: str
    distance: float
    co2: CO2Out
    sequence_order: int


class RouteCalculationResponse(CamelModel):
    success: bool
    routes: list[CalculatedRouteOut]
    total_distance: float
    total_co2: CO2Out = Field(..., alias="totalCO2")
    tree_equivalent: int
    errors: list[str] = []
    summary: str


class StationOut(CamelModel):
    code: str
    name: str
    names: dict[str, str]
    latitude: float
    longitude: float
    region: Optional[str] = None
    region_name: Optional[str] = None
    is_primary_hub: bool = False

    @classmethod
    def from_station(
        cls, station: Station, locale: str, region_name: Optional[str] = None
    ) -> "StationOut":
        return cls(
            code=station.code,
            name=station.name(locale),
            names=dict(station.names),
            latitude=station.coordinate.latitude,
            longitude=station.coordinate.longitude,
            region=station.region,
            region_name=region_name,
            is_primary_hub=station.is_primary_hub,
        )


class StationListResponse(CamelModel):
    success: bool = True
    count: int
    stations: list[StationOut]


class SurveyOut(CamelModel):
    success: bool = True
    passport_id: str
    responses: dict[str, str]
    completed: bool
    completed_at: Optional[datetime] = None

    @classmethod
    def from_survey(cls, survey: SurveyResponse) -> "SurveyOut":
        return cls(
            passport_id=survey.passport_id,
            responses=survey.responses,
            completed=survey.completed,
            completed_at=survey.completed_at,
        )


class DeleteResponse(CamelModel):
    success: bool = True
    id: str


class HealthResponse(BaseModel):
    status: str = "ok"


def route_out(route: Route, from_name: str, to_name: str) -> CalculatedRouteOut:
    return CalculatedRouteOut(
        from_code=route.origin_code,
        to_code=route.destination_code,
        from_name=from_name,
        to_name=to_name,
        distance=route.distance,
        co2=CO2Out.from_emissions(route.emissions),
        sequence_order=route.sequence_order,
    )
