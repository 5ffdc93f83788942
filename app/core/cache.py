from __future__ import annotations

import json
import time
import uuid
from typing import Any

from redis.asyncio import Redis


class RedisCache:
    def __init__(self, url: str) -> None:
        self.redis: Redis = Redis.from_url(url, decode_responses=True)

    async def get_json(self, key: str) -> Any | None:
        raw = await self.redis.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, value: Any, ttl: int = 0) -> None:
        payload = json.dumps(value, default=str)
        if ttl > 0:
            await self.redis.set(key, payload, ex=ttl)
        else:
            await self.redis.set(key, payload)

    async def set_if_absent(self, key: str, ttl: int = 60) -> bool:
        return bool(await self.redis.set(key, "1", ex=ttl, nx=True))

    async def window_hit(self, key: str, window_seconds: int, limit: int) -> tuple[int, bool]:
        """Admit one hit into a sliding window unless it already holds `limit` hits.

        Rejected hits are not recorded, so the window drains on schedule.
        Returns the hits inside the window and whether this one was admitted.
        """
        now = time.time()
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now - window_seconds)
            pipe.zcard(key)
            _, count = await pipe.execute()
        count = int(count)
        if count >= limit:
            return count, False

        member = f"{now:.6f}:{uuid.uuid4().hex[:8]}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zadd(key, {member: now})
            pipe.expire(key, window_seconds)
            await pipe.execute()
        return count + 1, True

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def close(self) -> None:
        await self.redis.aclose()
