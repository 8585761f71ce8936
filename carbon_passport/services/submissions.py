"""
Passport Submission Service
===========================

Turns a validated web-form submission into a stored passport.

Order of operations
-------------------
1. Validate the form steps; any field error rejects the submission.
2. Replay: a submission whose idempotency key is already stored returns
   the stored passport unchanged.  A stored passport without routes is an
   earlier orphan and is reported again as ``OrphanedPassportError``.
3. Assemble the legs.  If no leg survives, nothing is written.
4. Validate and upload the optional photo (bounded retries).  A rejected
   photo fails the submission; a storage outage only drops the photo.
5. Insert the passport row and commit.  On failure the uploaded photo is
   removed again and ``DatabaseUnavailable`` is raised.
6. Bulk-insert the routes and commit.  A failure here leaves a passport
   without routes, which is reported as ``OrphanedPassportError``.

Caller-level concurrency (one in-flight submission per idempotency key) is
handled by ``SubmissionLock`` in the HTTP layer.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carbon_passport.config import settings
from carbon_passport.domain.entities import Passport
from carbon_passport.domain.errors import (
    DatabaseUnavailable,
    OrphanedPassportError,
    StorageUnavailable,
    SubmissionRejected,
    UpstreamError,
)
from carbon_passport.domain.forms import PassportSubmission
from carbon_passport.domain.passport import new_passport
from carbon_passport.domain.routes import assemble
from carbon_passport.domain.stations import DEFAULT_DIRECTORY, StationDirectory
from carbon_passport.infrastructure.repositories import (
    PassportRepository,
    RouteRepository,
    passport_to_domain,
    route_to_domain,
)
from carbon_passport.infrastructure.retry import retry_async
from carbon_passport.infrastructure.storage import PhotoStorage, PhotoUpload

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SubmissionOutcome:
    passport: Passport
    errors: tuple[str, ...] = ()
    leg_count: int = 0
    photo_degraded: bool = False
    replayed: bool = False
    warnings: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return f"{len(self.passport.routes)} of {self.leg_count} routes added"


class PassportSubmissionService:
    def __init__(
        self,
        session: AsyncSession,
        storage: PhotoStorage,
        directory: StationDirectory = DEFAULT_DIRECTORY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session = session
        self.storage = storage
        self.directory = directory
        self.clock = clock
        self.passports = PassportRepository(session)
        self.routes = RouteRepository(session)

    async def submit(
        self,
        submission: PassportSubmission,
        photo: Optional[PhotoUpload] = None,
        idempotency_key: Optional[str] = None,
    ) -> SubmissionOutcome:
        field_errors = submission.validate()
        if field_errors:
            raise SubmissionRejected(
                "Submission is incomplete", [str(e) for e in field_errors]
            )

        if idempotency_key:
            existing = await self.passports.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                if not existing.routes:
                    # A previous attempt stored the passport but lost its routes
                    logger.error(
                        "Idempotency key %s maps to orphaned passport %s",
                        idempotency_key, existing.id,
                    )
                    raise OrphanedPassportError(existing.id)
                logger.info(
                    "Replaying passport %s for idempotency key %s",
                    existing.id, idempotency_key,
                )
                passport = passport_to_domain(existing, existing.routes)
                return SubmissionOutcome(
                    passport=passport,
                    leg_count=len(passport.routes),
                    replayed=True,
                )

        result = assemble(submission.routes.legs, self.directory)
        if not result.succeeded:
            raise SubmissionRejected("No valid routes to save", list(result.errors))

        passport_id = str(uuid.uuid4())
        photo_url, degraded = await self._store_photo(photo, passport_id)

        traveller = submission.traveller
        passport = new_passport(
            passport_id=passport_id,
            traveler_name=traveller.name,
            country=traveller.country,
            travel_date=traveller.travel_date,
            metadata=submission.metadata(),
            now=self.clock(),
            expiry_days=settings.passport_expiry_days,
            photo_url=photo_url,
        )

        try:
            await self.passports.create_passport(passport, idempotency_key)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Could not store passport %s: %s", passport_id, exc)
            await self._discard_photo(photo_url)
            raise DatabaseUnavailable(f"Passport {passport_id} was not stored") from exc

        try:
            rows = await self.routes.create_routes(passport_id, result.routes)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "Passport %s stored without routes (%d pending): %s",
                passport_id, len(result.routes), exc,
            )
            raise OrphanedPassportError(passport_id) from exc

        passport.routes = [route_to_domain(r) for r in rows]
        logger.info(
            "Created passport %s: %s", passport_id, result.summary()
        )
        outcome = SubmissionOutcome(
            passport=passport,
            errors=result.errors,
            leg_count=result.leg_count,
            photo_degraded=degraded,
        )
        if degraded:
            outcome.warnings.append(
                "Photo could not be stored; the passport was created without it"
            )
        return outcome

    async def _store_photo(
        self, photo: Optional[PhotoUpload], owner_id: str
    ) -> tuple[Optional[str], bool]:
        """Return ``(photo_url, degraded)``; ``PhotoRejected`` propagates."""
        if photo is None:
            return None, False
        self.storage.validate(photo)
        try:
            url = await retry_async(lambda: self.storage.upload(photo, owner_id))
        except UpstreamError as exc:
            logger.warning(
                "Photo upload failed for passport %s, continuing without photo: %s",
                owner_id, exc,
            )
            return None, True
        return url, False

    async def _discard_photo(self, photo_url: Optional[str]) -> None:
        if photo_url is None:
            return
        try:
            await self.storage.delete(photo_url)
        except StorageUnavailable as exc:
            logger.warning("Could not remove unreferenced photo %s: %s", photo_url, exc)
