"""Domain error taxonomy and its HTTP mapping.

Services raise these; they never build HTTP responses themselves.  A
single exception handler registered on the app turns each error into
``{"detail": message}`` with the status code carried by its class, the
same body shape FastAPI uses for HTTPException.

    NotFoundError       404  a referenced record does not exist
    ConflictError       409  a uniqueness or state rule was violated
    AuthenticationError 401  credentials were missing or wrong
    AccessDeniedError   403  the caller does not own the resource
    InvalidInputError   422  the request is well-formed but unacceptable
    InternalError       500  the store failed in a way the caller can't fix
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LearnHubError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LearnHubError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(LearnHubError):
    status_code = status.HTTP_409_CONFLICT


class AuthenticationError(LearnHubError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AccessDeniedError(LearnHubError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidInputError(LearnHubError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InternalError(LearnHubError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def _handle_learnhub_error(_request: Request, exc: LearnHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Internal error: %s", exc.message)
    else:
        logger.info("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LearnHubError, _handle_learnhub_error)  # type: ignore[arg-type]
