"""Redis connection management.

Mirrors engine.py: with REDIS_URL set we open one shared connection pool,
without it ``redis_pool`` is None and the rate limiter keeps its buckets
in process memory.  Redis holds only ephemeral counters here; every
learner record lives in PostgreSQL.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learnhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis.

    A failed ping is logged and the app keeps starting; rate limiting
    calls will surface the outage per request instead.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, rate limits are per-process")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
