from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnhub.api.activity import router as activity_router
from learnhub.api.admin import router as admin_router
from learnhub.api.auth import router as auth_router
from learnhub.api.dependencies import memory_repos
from learnhub.api.enrollments import router as enrollments_router
from learnhub.api.health import router as health_router
from learnhub.api.messages import router as messages_router
from learnhub.api.metrics_endpoint import router as metrics_router
from learnhub.api.projects import router as projects_router
from learnhub.core.config import SETTINGS
from learnhub.core.errors import setup_error_handlers
from learnhub.core.logging import setup_logging
from learnhub.db import engine as db_engine
from learnhub.db.engine import lifespan_db
from learnhub.db.redis import lifespan_redis
from learnhub.middleware.metrics import MetricsMiddleware
from learnhub.middleware.request_context import RequestContextMiddleware
from learnhub.services import project_service

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


async def _seed_dev_catalog() -> None:
    """Give a fresh in-memory dev server one project to enroll in."""
    if db_engine.async_session_factory is not None or not SETTINGS.is_dev:
        return
    project = await project_service.import_project(
        memory_repos, project_service.SAMPLE_PROJECT
    )
    logger.info("Seeded sample project slug=%s", project.slug)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one hook fails.
    async with lifespan_db():
        async with lifespan_redis():
            await _seed_dev_catalog()
            yield


app = FastAPI(
    title="learnhub",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

setup_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(projects_router)
app.include_router(enrollments_router)
app.include_router(activity_router)
app.include_router(auth_router)
app.include_router(messages_router)
app.include_router(admin_router)

logger.info(
    "learnhub started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
