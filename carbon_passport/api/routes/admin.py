"""
Admin / observability endpoints
===============================

GET    /api/admin/health                  -- simple health check
DELETE /api/admin/passports/{passport_id} -- remove a passport, its routes,
                                             survey and photo
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carbon_passport.api.dependencies import get_db, get_storage
from carbon_passport.api.middleware import limiter
from carbon_passport.api.schemas import DeleteResponse, HealthResponse
from carbon_passport.config import settings
from carbon_passport.domain.errors import StorageUnavailable
from carbon_passport.infrastructure.repositories import PassportRepository
from carbon_passport.infrastructure.storage import PhotoStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


@router.delete(
    "/passports/{passport_id}",
    response_model=DeleteResponse,
    summary="Delete a passport with its routes and survey",
)
@limiter.limit(settings.rate_limit)
async def delete_passport(
    request: Request,
    passport_id: str,
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
):
    repo = PassportRepository(db)
    row = await repo.get_by_id(passport_id)
    if not row:
        raise HTTPException(status_code=404, detail="Passport not found")
    photo_url = row.photo_url

    await repo.delete(passport_id)
    if photo_url:
        try:
            await storage.delete(photo_url)
        except StorageUnavailable as exc:
            logger.warning("Photo for passport %s left behind: %s", passport_id, exc)

    logger.info("Deleted passport %s", passport_id)
    return DeleteResponse(id=passport_id)
