"""
Passport endpoints
==================

POST /api/passports                     -- issue a passport (multipart form)
GET  /api/passports/share/{share_hash}  -- public view by share link
GET  /api/passports/{passport_id}       -- passport document data
GET  /api/passports/{passport_id}/survey
PUT  /api/passports/{passport_id}/survey
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Request,
    UploadFile,
)
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from carbon_passport.api.dependencies import (
    get_db,
    get_directory,
    get_locale,
    get_storage,
)
from carbon_passport.api.middleware import limiter
from carbon_passport.api.schemas import (
    LegInput,
    PassportCreateResponse,
    PassportDetailResponse,
    PassportDisplayOut,
    PassportSummary,
    SurveyOut,
    SurveyUpdateRequest,
)
from carbon_passport.config import settings
from carbon_passport.domain.entities import Passport, SurveyResponse
from carbon_passport.domain.enums import CountryCode
from carbon_passport.domain.errors import SubmissionRejected
from carbon_passport.domain.forms import (
    PassportSubmission,
    PreferencesStep,
    RoutesStep,
    TravellerStep,
)
from carbon_passport.domain.passport import share_url, to_display
from carbon_passport.domain.routes import route_statistics
from carbon_passport.domain.stations import StationDirectory
from carbon_passport.domain.survey import (
    InvalidSurveyResponse,
    is_complete,
    validate_responses,
)
from carbon_passport.infrastructure.locks import SubmissionInFlight, SubmissionLock
from carbon_passport.infrastructure.redis_client import get_redis
from carbon_passport.infrastructure.repositories import (
    PassportRepository,
    SurveyRepository,
    passport_to_domain,
    survey_to_domain,
)
from carbon_passport.infrastructure.storage import PhotoStorage, PhotoUpload
from carbon_passport.services.submissions import PassportSubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/passports", tags=["passports"])

_LEGS = TypeAdapter(list[LegInput])


def _parse_legs(raw: Optional[str]) -> tuple:
    if not raw:
        return ()
    try:
        return tuple(leg.to_leg() for leg in _LEGS.validate_json(raw))
    except ValidationError as exc:
        raise SubmissionRejected(
            "Routes must be a JSON list of {from, to} objects",
            [f"routes: {err['msg']}" for err in exc.errors()],
        ) from exc


def _parse_date(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise SubmissionRejected(
            "Submission is incomplete", ["date: Travel date must be YYYY-MM-DD"]
        ) from exc


async def _read_photo(photo: Optional[UploadFile]) -> Optional[PhotoUpload]:
    # Browsers send an empty part when no file was chosen
    if photo is None or not photo.filename:
        return None
    return PhotoUpload(
        filename=photo.filename,
        content_type=photo.content_type or "",
        data=await photo.read(),
    )


async def _load_or_404(repo: PassportRepository, passport_id: str) -> Passport:
    row = await repo.get_with_routes(passport_id)
    if not row:
        raise HTTPException(status_code=404, detail="Passport not found")
    return passport_to_domain(row, row.routes)


@router.post(
    "",
    response_model=PassportCreateResponse,
    summary="Issue a carbon passport",
    description=(
        "Resolves each trip against the station directory, computes the CO2 "
        "snapshot and stores the passport.  Trips that fail are reported in "
        "``errors``; the passport is created as long as one trip succeeds."
    ),
    responses={
        400: {"description": "Missing fields, no valid trip or bad photo."},
        409: {"description": "Same Idempotency-Key already in progress."},
    },
)
@limiter.limit(settings.rate_limit)
async def create_passport(
    request: Request,
    name: Optional[str] = Form(None),
    travel_date: Optional[str] = Form(None, alias="date"),
    routes: Optional[str] = Form(None),
    country: str = Form(CountryCode.KR.value),
    frequency: Optional[str] = Form(None),
    purpose: Optional[str] = Form(None),
    esg_interest: bool = Form(False),
    locale: str = Depends(get_locale),
    photo: Optional[UploadFile] = File(None),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
    directory: StationDirectory = Depends(get_directory),
):
    submission = PassportSubmission(
        traveller=TravellerStep(
            name=name or "", travel_date=_parse_date(travel_date), country=country
        ),
        routes=RoutesStep(
            legs=_parse_legs(routes), max_legs=settings.max_routes_per_passport
        ),
        preferences=PreferencesStep(
            frequency=frequency, purpose=purpose, esg_interest=esg_interest
        ),
    )
    upload = await _read_photo(photo)
    service = PassportSubmissionService(db, storage, directory)

    # ── Idempotency guard ─────────────────────────────────────────
    if idempotency_key:
        redis = await get_redis()
        lock = SubmissionLock(
            redis, idempotency_key, settings.submission_lock_ttl_seconds
        )
        try:
            async with lock:
                outcome = await service.submit(submission, upload, idempotency_key)
        except SubmissionInFlight:
            raise HTTPException(
                status_code=409,
                detail="A submission with this Idempotency-Key is in progress",
            )
    else:
        outcome = await service.submit(submission, upload)

    passport = outcome.passport
    stats = route_statistics(passport.routes)
    return PassportCreateResponse(
        passport=PassportSummary(
            id=passport.id,
            name=passport.traveler_name,
            share_hash=passport.share_hash,
            photo_url=passport.photo_url,
            total_co2_saved=stats.total_co2_saved,
            total_distance=stats.total_distance,
            route_count=stats.total_routes,
        ),
        share_url=share_url(settings.public_base_url, locale, passport.share_hash),
        errors=list(outcome.errors),
        warnings=outcome.warnings,
        message=outcome.summary(),
        replayed=outcome.replayed,
    )


@router.get(
    "/share/{share_hash}",
    response_model=PassportDetailResponse,
    summary="Public passport view by share link",
    responses={410: {"description": "The share link has expired."}},
)
@limiter.limit(settings.rate_limit)
async def get_shared_passport(
    request: Request,
    share_hash: str,
    locale: str = Depends(get_locale),
    db: AsyncSession = Depends(get_db),
    directory: StationDirectory = Depends(get_directory),
):
    row = await PassportRepository(db).get_by_share_hash(share_hash)
    if not row:
        raise HTTPException(status_code=404, detail="Passport not found")
    passport = passport_to_domain(row, row.routes)
    if passport.is_expired(datetime.now(timezone.utc)):
        raise HTTPException(status_code=410, detail="Share link has expired")
    display = to_display(
        passport,
        locale=locale,
        base_url=settings.public_base_url,
        directory=directory,
    )
    return PassportDetailResponse(passport=PassportDisplayOut.from_display(display))


@router.get(
    "/{passport_id}",
    response_model=PassportDetailResponse,
    summary="Passport document data",
)
@limiter.limit(settings.rate_limit)
async def get_passport(
    request: Request,
    passport_id: str,
    locale: str = Depends(get_locale),
    db: AsyncSession = Depends(get_db),
    directory: StationDirectory = Depends(get_directory),
):
    passport = await _load_or_404(PassportRepository(db), passport_id)
    display = to_display(
        passport,
        locale=locale,
        base_url=settings.public_base_url,
        directory=directory,
    )
    return PassportDetailResponse(passport=PassportDisplayOut.from_display(display))


@router.get(
    "/{passport_id}/survey",
    response_model=SurveyOut,
    summary="ESG survey answers for a passport",
)
@limiter.limit(settings.rate_limit)
async def get_survey(
    request: Request,
    passport_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await PassportRepository(db).get_by_id(passport_id):
        raise HTTPException(status_code=404, detail="Passport not found")
    row = await SurveyRepository(db).get(passport_id)
    survey = survey_to_domain(row) if row else SurveyResponse(passport_id=passport_id)
    return SurveyOut.from_survey(survey)


@router.put(
    "/{passport_id}/survey",
    response_model=SurveyOut,
    summary="Save ESG survey answers",
)
@limiter.limit(settings.rate_limit)
async def put_survey(
    request: Request,
    passport_id: str,
    body: SurveyUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    if not await PassportRepository(db).get_by_id(passport_id):
        raise HTTPException(status_code=404, detail="Passport not found")

    responses = validate_responses(body.responses)
    complete = is_complete(responses)
    if body.completed and not complete:
        raise InvalidSurveyResponse("Every question must be answered to complete")
    completed = complete if body.completed is None else body.completed

    row = await SurveyRepository(db).upsert(passport_id, responses, completed)
    logger.info("Survey saved for passport %s (completed=%s)", passport_id, completed)
    return SurveyOut.from_survey(survey_to_domain(row))
