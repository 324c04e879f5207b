"""Tests for learner registration, login and the profile endpoint."""

from __future__ import annotations

import datetime
from uuid import UUID, uuid4

import jwt
from fastapi.testclient import TestClient

from learnhub.models.enrollment import Enrollment
from learnhub.repos.bundle import Repos
from learnhub.services import token_service
from tests.conftest import auth, import_project, mint_token, run

PHONE = "+14155550100"
PASSWORD = "s3cret-pass"


def _enroll(client: TestClient, email: str = "ada@example.com") -> str:
    resp = client.post(
        "/enrollments",
        json={
            "project_slug": "bridge-build",
            "email": email,
            "name": "Ada",
            "school": "Hill School",
            "class_num": 6,
        },
    )
    return resp.json()["id"]


def _register(client: TestClient, enrollment_id: str, phone: str = PHONE):
    return client.post(
        "/auth/register",
        json={"enrollment_id": enrollment_id, "phone_number": phone, "password": PASSWORD},
    )


# ---- register ----


def test_register_returns_token(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    enrollment_id = _enroll(client)

    resp = _register(client, enrollment_id)

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["phone_number"] == PHONE
    assert body["user"]["email"] == "ada@example.com"
    claims = token_service.decode_access_token(body["access_token"])
    assert claims["sub"] == body["user"]["id"]
    assert claims["roles"] == ["user"]
    assert claims["phone"] == PHONE


def test_register_links_enrollment(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    enrollment_id = _enroll(client)

    user_id = _register(client, enrollment_id).json()["user"]["id"]

    assert client.get(f"/enrollments/{enrollment_id}").json()["enrollment"]["user_id"] == (
        user_id
    )


def test_register_duplicate_phone_is_409(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    _register(client, _enroll(client))

    resp = _register(client, _enroll(client, "bo@example.com"))

    assert resp.status_code == 409
    assert "Please login instead" in resp.json()["detail"]


def test_register_bad_phone_is_422(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    resp = _register(client, _enroll(client), phone="12345")
    assert resp.status_code == 422


def test_register_unknown_enrollment_is_404(client: TestClient) -> None:
    assert _register(client, str(uuid4())).status_code == 404


# ---- login ----


def test_login(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    user_id = _register(client, _enroll(client)).json()["user"]["id"]

    resp = client.post("/auth/login", json={"phone_number": PHONE, "password": PASSWORD})

    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user_id


def test_login_wrong_password_is_401(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    _register(client, _enroll(client))

    resp = client.post("/auth/login", json={"phone_number": PHONE, "password": "nope-nope"})

    assert resp.status_code == 401
    assert resp.json() == {"detail": "Invalid phone number or password"}


# ---- /auth/me ----


def test_me_requires_token(client: TestClient) -> None:
    assert client.get("/auth/me").status_code == 401


def test_me_with_expired_token(client: TestClient) -> None:
    expired = token_service.create_access_token(sub=str(uuid4()), ttl_min=-1)
    resp = client.get("/auth/me", headers=auth(expired))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_me_with_foreign_signature(client: TestClient) -> None:
    forged = jwt.encode({"sub": str(uuid4())}, "not-the-key", algorithm="HS256")
    resp = client.get("/auth/me", headers=auth(forged))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_me_for_deleted_user_is_404(client: TestClient) -> None:
    resp = client.get("/auth/me", headers=auth(mint_token()))
    assert resp.status_code == 404


def test_me_reconciles_duplicate_enrollments(client: TestClient, repos: Repos) -> None:
    import_project(repos)
    first = _enroll(client)
    body = _register(client, first).json()
    user_id = UUID(body["user"]["id"])
    older = run(repos.enrollments.get(UUID(first)))
    newer = Enrollment.new(
        project_id=older.project_id,
        email=older.email,
        name=older.name,
        school=older.school,
        class_num=older.class_num,
        user_id=user_id,
        created_at=older.created_at + datetime.timedelta(minutes=5),
    )
    run(repos.enrollments.add(newer))

    resp = client.get("/auth/me", headers=auth(body["access_token"]))

    assert resp.status_code == 200
    enrollments = resp.json()["enrollments"]
    assert [e["enrollment"]["id"] for e in enrollments] == [str(newer.id)]
    assert enrollments[0]["project_slug"] == "bridge-build"
    assert enrollments[0]["progress"]["total_steps"] == 4
    assert client.get(f"/enrollments/{first}").status_code == 404
