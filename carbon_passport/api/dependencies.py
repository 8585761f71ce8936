"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carbon_passport.config import settings
from carbon_passport.domain.enums import Locale
from carbon_passport.domain.stations import DEFAULT_DIRECTORY, StationDirectory
from carbon_passport.infrastructure.database import async_session_factory
from carbon_passport.infrastructure.storage import PhotoStorage


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_storage() -> PhotoStorage:
    return PhotoStorage()


def get_directory() -> StationDirectory:
    return DEFAULT_DIRECTORY


def get_locale(
    locale: Optional[str] = Query(None, description="ko, en, ja or zh")
) -> str:
    """Validated display locale; falls back to the deployment default."""
    value = locale or settings.default_locale
    if value not in {loc.value for loc in Locale}:
        raise HTTPException(status_code=400, detail=f"Unsupported locale {value!r}")
    return value
