"""Per-caller request windows kept in Redis sorted sets.

Each admitted request is a member scored with its arrival time. A caller is
over the limit when the members newer than ``window_seconds`` already fill it.
"""

import math
import time
import uuid

import redis.asyncio as redis

from src.api.core.models.rate_limit import ClientIdentifier, RateLimitResult
from src.utils.logger import get_logger

logger = get_logger(__name__)


class SlidingWindowLimiter:
    """Sliding window of ``limit`` requests per ``window_seconds`` for one scope."""

    def __init__(self, redis_client: redis.Redis, limit: int, window_seconds: int):
        self.redis_client = redis_client
        self.limit = limit
        self.window_seconds = window_seconds

    async def hit(self, client: ClientIdentifier) -> RateLimitResult:
        """Record a request from ``client`` and report whether it is admitted.

        Rejected requests are not kept in the window, so a caller retrying in a
        tight loop does not push its own reset further out. Redis failures
        admit the request.
        """
        key = client.to_cache_key()
        now = time.time()
        member = uuid.uuid4().hex

        try:
            pipe = self.redis_client.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {member: now})
            pipe.expire(key, self.window_seconds + 1)
            _, admitted_before, _, _ = await pipe.execute()

            if admitted_before < self.limit:
                return self._result(client, admitted_before + 1)

            await self.redis_client.zrem(key, member)
            oldest = await self.redis_client.zrange(key, 0, 0, withscores=True)
        except Exception as e:
            logger.warning(
                "Rate limit store unavailable, admitting request",
                scope=client.scope,
                client=str(client),
                error=str(e),
            )
            return self._result(client, 0)

        return self._result(
            client, admitted_before, retry_after=self._retry_after(oldest, now)
        )

    def _retry_after(self, oldest: list, now: float) -> int:
        """Whole seconds until the oldest admitted request leaves the window."""
        if not oldest:
            return self.window_seconds
        _, oldest_score = oldest[0]
        return max(1, math.ceil(self.window_seconds - (now - float(oldest_score))))

    def _result(
        self, client: ClientIdentifier, count: int, retry_after: int | None = None
    ) -> RateLimitResult:
        return RateLimitResult(
            is_allowed=retry_after is None,
            current_count=count,
            retry_after=retry_after,
            client_identifier=client,
            limit=self.limit,
            window_seconds=self.window_seconds,
        )
