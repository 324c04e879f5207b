from __future__ import annotations

import dataclasses

import pytest
from fastapi.testclient import TestClient

from learnhub import main
from learnhub.repos.bundle import Repos
from tests.conftest import run


def test_app_mounts_every_router(client: TestClient) -> None:
    paths = set(main.app.openapi()["paths"])
    for expected in (
        "/health",
        "/projects",
        "/enrollments/{enrollment_id}/unassign",
        "/activity",
        "/auth/register",
        "/me/messages",
        "/admin/users",
    ):
        assert expected in paths
    assert client.get("/metrics").status_code == 200


def test_dev_server_seeds_sample_project(
    monkeypatch: pytest.MonkeyPatch, repos: Repos, client: TestClient
) -> None:
    monkeypatch.setattr(main, "memory_repos", repos)
    monkeypatch.setattr(main, "SETTINGS", dataclasses.replace(main.SETTINGS, app_env="dev"))

    run(main._seed_dev_catalog())

    assert client.get("/projects/solar-oven").status_code == 200


def test_seed_skipped_outside_dev(monkeypatch: pytest.MonkeyPatch, repos: Repos) -> None:
    monkeypatch.setattr(main, "memory_repos", repos)
    monkeypatch.setattr(main, "SETTINGS", dataclasses.replace(main.SETTINGS, app_env="test"))

    run(main._seed_dev_catalog())

    assert run(repos.projects.get_by_slug("solar-oven")) is None
