from __future__ import annotations

import pytest

from app.core.cache import RedisCache
from app.core.rate_limit import RateLimiter


class _FakePipeline:
    def __init__(self, redis: "_FakeRedis") -> None:
        self.redis = redis
        self.ops: list[tuple] = []

    async def __aenter__(self) -> "_FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def zremrangebyscore(self, key: str, low: float, high: float) -> None:
        self.ops.append(("zrem", key, low, high))

    def zcard(self, key: str) -> None:
        self.ops.append(("zcard", key))

    def zadd(self, key: str, mapping: dict[str, float]) -> None:
        self.ops.append(("zadd", key, mapping))

    def expire(self, key: str, seconds: int) -> None:
        self.ops.append(("expire", key, seconds))

    async def execute(self) -> list:
        out = []
        for op in self.ops:
            zset = self.redis.zsets.setdefault(op[1], {})
            if op[0] == "zrem":
                for member, score in list(zset.items()):
                    if op[2] <= score <= op[3]:
                        del zset[member]
                out.append(0)
            elif op[0] == "zcard":
                out.append(len(zset))
            elif op[0] == "zadd":
                zset.update(op[2])
                out.append(len(op[2]))
            else:
                out.append(True)
        return out


class _FakeRedis:
    def __init__(self) -> None:
        self.zsets: dict[str, dict[str, float]] = {}

    def pipeline(self, transaction: bool = True) -> _FakePipeline:  # noqa: ARG002
        return _FakePipeline(self)


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock(monkeypatch) -> _Clock:
    clock = _Clock()
    monkeypatch.setattr("app.core.cache.time.time", clock)
    return clock


@pytest.fixture
def limiter() -> RateLimiter:
    cache = RedisCache("redis://localhost:6379/0")
    cache.redis = _FakeRedis()  # type: ignore[assignment]
    return RateLimiter(cache)


@pytest.mark.asyncio
async def test_limit_allows_until_exceeded(clock, limiter) -> None:
    results = []
    for _ in range(4):
        results.append(await limiter.check("rl:search:1", limit=3, window_seconds=60))
        clock.now += 1
    assert [r.allowed for r in results] == [True, True, True, False]
    assert results[-1].count == 3


@pytest.mark.asyncio
async def test_limit_is_per_key(clock, limiter) -> None:  # noqa: ARG001
    await limiter.check("rl:search:1", limit=1, window_seconds=60)
    assert (await limiter.check("rl:search:2", limit=1, window_seconds=60)).allowed


@pytest.mark.asyncio
async def test_rejected_hits_do_not_extend_the_lockout(clock, limiter) -> None:
    assert (await limiter.check("rl:search:1", limit=2, window_seconds=60)).allowed
    clock.now += 30
    assert (await limiter.check("rl:search:1", limit=2, window_seconds=60)).allowed

    for _ in range(50):
        clock.now += 0.5
        assert not (await limiter.check("rl:search:1", limit=2, window_seconds=60)).allowed

    # admitted hits sit at t=1000 and t=1030; only the first has left the window
    clock.now = 1_061.0
    result = await limiter.check("rl:search:1", limit=2, window_seconds=60)
    assert result.allowed
    assert result.count == 2
