from __future__ import annotations

from dataclasses import dataclass

from app.core.cache import RedisCache


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    count: int
    limit: int


class RateLimiter:
    def __init__(self, cache: RedisCache) -> None:
        self.cache = cache

    async def check(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        count, admitted = await self.cache.window_hit(key, window_seconds, limit)
        return RateLimitResult(allowed=admitted, count=count, limit=limit)
