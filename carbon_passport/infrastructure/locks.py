"""
Redis-based submission lock.

Guarantees at most one in-flight passport submission per client
idempotency key, across every API process.  The TTL bounds how long a
crashed request can block retries of the same submission.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.  An unreachable Redis on acquire is
reported as ``LockUnavailable``.
"""

from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from carbon_passport.domain.errors import LockUnavailable

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class SubmissionInFlight(RuntimeError):
    """Another request is already processing the same submission."""


class SubmissionLock:
    def __init__(
        self, client: aioredis.Redis, submission_key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:passport-submission:{submission_key}"
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex
        self.held = False

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        try:
            acquired = await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        except RedisError as exc:
            raise LockUnavailable(f"Could not acquire {self.key}") from exc
        self.held = bool(acquired)
        return self.held

    async def release(self) -> None:
        """Release only if we still own the lock."""
        if not self.held:
            return
        self.held = False
        try:
            await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        except RedisError as exc:
            # The key still expires after its TTL
            logger.warning("Could not release %s: %s", self.key, exc)

    async def __aenter__(self) -> "SubmissionLock":
        if not await self.acquire():
            raise SubmissionInFlight(
                f"Submission already in progress: {self.key}"
            )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.release()
