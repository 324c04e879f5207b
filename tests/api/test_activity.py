"""Tests for client-reported activity."""

from __future__ import annotations

import json
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from learnhub.repos.bundle import Repos
from tests.conftest import import_project, run


def _enroll(client: TestClient) -> str:
    return client.post(
        "/enrollments",
        json={"project_slug": "bridge-build", "email": "a@b.co", "name": "A", "class_num": 6},
    ).json()["id"]


def test_log_page_view(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    eid = _enroll(client)

    resp = client.post(
        "/activity",
        json={"enrollment_id": eid, "activity_type": "PAGE_VIEW", "metadata": {"step": 2}},
    )

    assert resp.status_code == 201
    assert resp.json()["success"] is True
    stored = run(repos.activities.list_for_enrollment(UUID(eid)))[-1]
    assert stored.activity_type == "PAGE_VIEW"
    assert json.loads(stored.metadata_json) == {"step": 2}


def test_log_activity_unknown_enrollment_is_404(client: TestClient) -> None:
    resp = client.post(
        "/activity", json={"enrollment_id": str(uuid4()), "activity_type": "SESSION_START"}
    )
    assert resp.status_code == 404


def test_log_activity_unknown_type_is_422(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    resp = client.post(
        "/activity", json={"enrollment_id": _enroll(client), "activity_type": "NAP"}
    )
    assert resp.status_code == 422
