"""Token-bucket rate limiting.

Each key owns a bucket of ``capacity`` tokens refilled at ``refill_rate``
tokens per second; a request spends one token or is rejected.  Buckets
allow short bursts (a learner ticking several checklist items in a row)
while holding the long-run rate down.

Two backends share the ``RateLimiter`` protocol: a per-process dict for
dev and tests, and Redis for deployments with more than one API worker.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    retry_after: float  # seconds until the next token, 0 when allowed


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """capacity is the burst size, refill_rate the sustained tokens/second."""

    capacity: int = 60
    refill_rate: float = 1.0


# Login and registration: 10 attempts, then one every ~6 seconds.
AUTH_LIMIT = RateLimitConfig(capacity=10, refill_rate=0.17)
# Mark-as-read is called once per opened message.
MESSAGE_READ_LIMIT = RateLimitConfig(capacity=30, refill_rate=0.5)


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


class InMemoryRateLimiter:
    """Single-process buckets; each API worker would count separately."""

    def __init__(self) -> None:
        # key -> (tokens, last_refill monotonic time)
        self._buckets: dict[str, tuple[float, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()
        tokens, last = self._buckets.get(key, (float(config.capacity), now))
        tokens = min(config.capacity, tokens + (now - last) * config.refill_rate)

        if tokens >= 1:
            tokens -= 1
            self._buckets[key] = (tokens, now)
            return RateLimitResult(
                allowed=True, remaining=int(tokens), limit=config.capacity, retry_after=0
            )

        self._buckets[key] = (tokens, now)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)

    def clear(self) -> None:
        self._buckets.clear()


class RedisRateLimiter:
    """Buckets stored as Redis hashes, shared by every worker.

    Refill and spend happen inside one Lua script so two concurrent
    requests can never both spend the same token.
    """

    # KEYS[1] bucket key; ARGV capacity, refill_rate, now (seconds)
    # returns {allowed, remaining, retry_after_ms}
    _LUA_SCRIPT = """
    local capacity = tonumber(ARGV[1])
    local rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / rate) + 60

    local state = redis.call('HMGET', KEYS[1], 'tokens', 'last_refill')
    local tokens = tonumber(state[1])
    local last = tonumber(state[2])
    if tokens == nil then
        tokens = capacity
        last = now
    end
    tokens = math.min(capacity, tokens + (now - last) * rate)

    local allowed = 0
    local retry_ms = 0
    if tokens >= 1 then
        tokens = tokens - 1
        allowed = 1
    else
        retry_ms = math.ceil((1 - tokens) / rate * 1000)
    end
    redis.call('HSET', KEYS[1], 'tokens', tokens, 'last_refill', now)
    redis.call('EXPIRE', KEYS[1], ttl)
    return {allowed, math.floor(tokens), retry_ms}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = redis_client.register_script(self._LUA_SCRIPT)

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        allowed, remaining, retry_ms = await self._script(
            keys=[f"ratelimit:{key}"],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=max(int(remaining), 0) if allowed else 0,
            limit=config.capacity,
            retry_after=retry_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"ratelimit:{key}")
