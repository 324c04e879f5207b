"""Rate limiting as a per-route dependency.

Only routes that declare ``require_rate_limit`` are limited, each with its
own bucket size: login and registration are strict, health checks are
never limited.  The bucket key is the token subject when a bearer token
is present and the client IP otherwise.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, status

from learnhub.core.metrics import RATE_LIMIT_HITS
from learnhub.db.redis import redis_pool
from learnhub.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    _rate_limiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()


def require_rate_limit(bucket: str, config: RateLimitConfig = RateLimitConfig()):
    """Dependency factory, e.g. Depends(require_rate_limit("login", AUTH_LIMIT)).

    Routes naming the same bucket share one quota per caller.
    """

    async def _check(request: Request) -> None:
        key = f"{bucket}:{_build_key(request)}"
        result = await _rate_limiter.check(key, config)
        if result.allowed:
            return

        RATE_LIMIT_HITS.labels(key_type="user" if ":user:" in key else "ip").inc()
        logger.warning("Rate limit exceeded key=%s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={
                "Retry-After": str(int(result.retry_after) + 1),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    return _check


def _build_key(request: Request) -> str:
    """Token subject if one is present, else client IP.

    The token is decoded without verification; a forged subject only
    earns its own bucket, and authentication happens in require_user.
    """
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = pyjwt.decode(auth_header[7:], options={"verify_signature": False})
        except pyjwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
