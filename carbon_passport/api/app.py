"""
FastAPI application factory.

* Registers routes for passports, stations, route previews and admin.
* Translates domain errors into JSON ``{"error": ...}`` responses.
* Closes the shared Redis pool on shutdown.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from carbon_passport.api.middleware import limiter
from carbon_passport.api.routes import admin, calculations, passports, stations
from carbon_passport.config import settings
from carbon_passport.domain.errors import (
    DomainValidationError,
    InvariantViolation,
    OrphanedPassportError,
    SubmissionRejected,
    UpstreamError,
)
from carbon_passport.infrastructure.redis_client import close_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Carbon passport API starting")
    yield
    await close_redis()
    logger.info("Carbon passport API stopped")


# ── Error translation ─────────────────────────────────────────────────


async def _validation_error(request: Request, exc: DomainValidationError):
    body = {"error": str(exc)}
    if isinstance(exc, SubmissionRejected):
        body["errors"] = exc.errors
    return JSONResponse(status_code=400, content=body)


async def _upstream_error(request: Request, exc: UpstreamError):
    if isinstance(exc, OrphanedPassportError):
        logger.error("Orphaned passport %s: %s", exc.passport_id, exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Passport was created but its routes could not be saved",
                "passportId": exc.passport_id,
            },
        )
    logger.error("Upstream failure on %s %s: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503, content={"error": "Service temporarily unavailable"}
    )


async def _invariant_violation(request: Request, exc: InvariantViolation):
    logger.exception("Invariant violated on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal error"})


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Carbon Passport API",
        description=(
            "Issues shareable carbon passports for rail journeys: great-circle "
            "distances between stations, per-mode CO2 estimates and the "
            "savings against driving."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(DomainValidationError, _validation_error)
    app.add_exception_handler(UpstreamError, _upstream_error)
    app.add_exception_handler(InvariantViolation, _invariant_violation)

    # Routers
    app.include_router(passports.router, prefix="/api")
    app.include_router(stations.router, prefix="/api")
    app.include_router(calculations.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    return app
