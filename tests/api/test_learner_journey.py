"""End to end: a learner joins, works through a project, and leaves."""

from __future__ import annotations

from uuid import UUID

from fastapi.testclient import TestClient

from learnhub.repos.bundle import Repos
from tests.conftest import auth, import_project, make_draft, run


def test_learner_journey(client: TestClient, repos: Repos) -> None:
    import_project(repos, make_draft(steps=3, checklist_per_step=1))

    # Join anonymously, then register off the enrollment.
    enrollment = client.post(
        "/enrollments",
        json={
            "project_slug": "bridge-build",
            "email": "ada@example.com",
            "name": "Ada",
            "school": "Hill School",
            "class_num": 6,
        },
    ).json()
    eid = enrollment["id"]
    registered = client.post(
        "/auth/register",
        json={"enrollment_id": eid, "phone_number": "+14155550100", "password": "s3cret-pass"},
    ).json()
    headers = auth(registered["access_token"])

    # Work through the steps.
    detail = client.get(f"/enrollments/{eid}").json()
    client.patch(
        f"/enrollments/{eid}/checklist",
        json={"checklist_item_id": detail["steps"][0]["checklist"][0]["id"], "completed": True},
    )
    percentages = []
    for step in detail["steps"]:
        resp = client.patch(
            f"/enrollments/{eid}/step", json={"step_id": step["id"], "completed": True}
        )
        percentages.append(resp.json()["completion_percentage"])
    assert percentages == [33, 67, 100]
    assert resp.json()["project_completed"] is True

    # Ticking a step again is a no-op.
    again = client.patch(
        f"/enrollments/{eid}/step",
        json={"step_id": detail["steps"][0]["id"], "completed": True},
    )
    assert again.json()["completion_percentage"] == 100
    assert again.json()["project_completed"] is False

    # The profile shows the finished enrollment.
    me = client.get("/auth/me", headers=headers).json()
    assert me["enrollments"][0]["progress"]["completed_steps"] == 3
    assert me["enrollments"][0]["progress"]["completed_checklists"] == 1

    # A congratulation arrived; reading it clears the badge.
    inbox = client.get("/me/messages", headers=headers).json()
    assert inbox["items"][0]["type"] == "SYSTEM"
    assert client.get("/me/messages/unread-count", headers=headers).json()["unread_count"] == 1
    client.post(f"/me/messages/{inbox['items'][0]['id']}/read", headers=headers)
    assert client.get("/me/messages/unread-count", headers=headers).json()["unread_count"] == 0

    # Form a pair, then leave the project.
    group = client.post(
        f"/enrollments/{eid}/group-member", json={"name": "Bo"}, headers=headers
    ).json()
    left = client.post(f"/enrollments/{eid}/unassign", headers=headers)
    assert left.json() == {"success": True}

    assert run(repos.enrollments.get(UUID(eid))) is None
    assert run(repos.groups.get(UUID(group["id"]))) is None
    assert run(repos.progress.list_for_enrollment(UUID(eid))) == []
    assert client.get("/auth/me", headers=headers).json()["enrollments"] == []
