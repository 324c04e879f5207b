from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

# Ensure repo root is on sys.path so `import learnhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from learnhub.api import dependencies  # noqa: E402
from learnhub.api.ratelimit import _rate_limiter  # noqa: E402
from learnhub.main import app  # noqa: E402
from learnhub.repos.bundle import Repos, in_memory_repos  # noqa: E402
from learnhub.services import project_service, token_service  # noqa: E402
from learnhub.services.project_service import (  # noqa: E402
    ProjectDraft,
    StepDraft,
    SubmissionDraft,
)


@pytest.fixture(autouse=True)
def repos(monkeypatch: pytest.MonkeyPatch) -> Repos:
    """A fresh in-memory store per test, also served by the API."""
    fresh = in_memory_repos()
    monkeypatch.setattr(dependencies, "memory_repos", fresh)
    return fresh


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def run(coro):
    """Drive an async service call from a sync test."""
    return asyncio.run(coro)


def mint_token(user_id: UUID | None = None, roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(user_id or uuid4()), roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(roles=["admin"])


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def make_draft(
    slug: str = "bridge-build",
    *,
    steps: int = 4,
    checklist_per_step: int = 2,
    submission: SubmissionDraft | None = SubmissionDraft(type="LINK"),
) -> ProjectDraft:
    return ProjectDraft(
        slug=slug,
        title=slug.replace("-", " ").title(),
        short_desc="A test project",
        class_min=5,
        class_max=8,
        level="BEGINNER",
        guidance="FULLY_GUIDED",
        duration_hrs=3,
        subjects=("Physics",),
        tags=("hands-on",),
        steps=tuple(
            StepDraft(
                title=f"Step {i}",
                checklist=tuple(f"Item {i}.{j}" for j in range(1, checklist_per_step + 1)),
            )
            for i in range(1, steps + 1)
        ),
        submission=submission,
    )


def import_project(repos: Repos, draft: ProjectDraft | None = None):
    return run(project_service.import_project(repos, draft or make_draft()))


def sample(name: str, labels: dict[str, str] | None = None) -> float:
    """Current value of a metric sample; counters are global, so assert on deltas."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0
