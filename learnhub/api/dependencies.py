"""Shared FastAPI dependencies: the repository bundle and the caller.

``get_repos`` hands each request one ``Repos`` bundle.  With a database
configured the bundle wraps a fresh AsyncSession that commits when the
route returns and rolls back if it raises, so a route is one unit of
work.  Without one, every request shares the process-wide in-memory
bundle.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from learnhub.db import engine as db_engine
from learnhub.models.principal import Principal
from learnhub.repos.bundle import Repos, in_memory_repos, pg_repos
from learnhub.services import token_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
_optional_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

# Process-wide store used when DATABASE_URL is unset.
memory_repos = in_memory_repos()


async def get_repos() -> AsyncGenerator[Repos, None]:
    if db_engine.async_session_factory is None:
        yield memory_repos
        return

    async with db_engine.async_session_factory() as session:
        try:
            yield pg_repos(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


RepoBundle = Annotated[Repos, Depends(get_repos)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _principal_from_token(raw_token: str) -> Principal:
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        user_id = UUID(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a user id")
        raise _unauthorized("Invalid token") from None

    return Principal(user_id=user_id, roles=frozenset(claims.get("roles", [])))


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller. 401 otherwise."""
    principal = _principal_from_token(raw_token)
    logger.debug("Token validated for user=%s roles=%s", principal.user_id, principal.roles)
    return principal


def optional_user(
    raw_token: Annotated[str | None, Depends(_optional_scheme)],
) -> Principal | None:
    """Like require_user, but anonymous requests get None.

    A token that is present but invalid is still a 401.
    """
    if raw_token is None:
        return None
    return _principal_from_token(raw_token)


def require_role(role: str):
    """Dependency factory: Depends(require_role("admin"))."""

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s", principal.user_id, role
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


CurrentUser = Annotated[Principal, Depends(require_user)]
AdminUser = Annotated[Principal, Depends(require_role("admin"))]
