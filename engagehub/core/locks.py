"""
Redis-backed job locks.

A scheduler job must not run twice at the same time anywhere in the
deployment: Celery workers each build their own ``Scheduler``, so the
in-process lock only covers the embedded mode. ``JobLock`` holds a
``SET NX EX`` key per job name on the broker redis; the key expires on
its own if the holder dies mid-sweep.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

from engagehub.config import settings
from engagehub.core.logging_config import get_logger

logger = get_logger(__name__)

# Delete the key only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class JobLock:
    """Cross-process mutual exclusion keyed by job name."""

    def __init__(
        self,
        client: aioredis.Redis | None = None,
        ttl: int | None = None,
        prefix: str = "engagehub:job-lock:",
    ) -> None:
        self._client = client
        self.ttl = ttl or settings.job_lock_ttl_seconds
        self.prefix = prefix

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                str(settings.redis_url),
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    def _build_key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    @asynccontextmanager
    async def hold(self, name: str) -> AsyncIterator[bool]:
        """
        Try to take the lock for ``name``.

        Yields True when this holder owns the lock for the duration of the
        block, False when another holder already has it. Never waits.
        """
        key = self._build_key(name)
        token = uuid.uuid4().hex
        acquired = bool(await self.client.set(key, token, nx=True, ex=self.ttl))
        if not acquired:
            logger.info("job_lock_busy", job=name)
        try:
            yield acquired
        finally:
            if acquired:
                await self.client.eval(_RELEASE_SCRIPT, 1, key, token)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
