"""
Bounded retry for calls to the persistence gateway.

Only transient upstream failures are retried; validation errors and
anything raised by the pure core propagate on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError

from carbon_passport.config import settings
from carbon_passport.domain.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    StorageUnavailable,
    OperationalError,
    ConnectionError,
    TimeoutError,
)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int | None = None,
    backoff_seconds: float | None = None,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
) -> T:
    """Await ``fn()`` up to *attempts* times with exponential backoff."""
    attempts = attempts or settings.gateway_retry_attempts
    delay = (
        settings.gateway_retry_backoff_seconds
        if backoff_seconds is None
        else backoff_seconds
    )
    attempt = 1
    while True:
        try:
            return await fn()
        except retry_on as exc:
            if attempt >= attempts:
                raise
            logger.warning(
                "Transient gateway error (attempt %d/%d): %s", attempt, attempts, exc
            )
            await asyncio.sleep(delay * 2 ** (attempt - 1))
            attempt += 1
