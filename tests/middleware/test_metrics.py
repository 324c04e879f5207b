"""Tests for the Prometheus metrics middleware.

Counters live in the global registry and never reset, so every test
asserts on the delta around the request it makes.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import sample


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = sample("http_requests_total", labels)
    client.get("/health")
    assert sample("http_requests_total", labels) - before == 1


def test_endpoint_label_is_route_template(client: TestClient) -> None:
    labels = {
        "method": "GET",
        "endpoint": "/enrollments/{enrollment_id}",
        "status_code": "404",
    }
    before = sample("http_requests_total", labels)

    client.get(f"/enrollments/{uuid4()}")
    client.get(f"/enrollments/{uuid4()}")

    assert sample("http_requests_total", labels) - before == 2


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = sample("http_requests_total", labels)
    client.get("/nope")
    client.get("/also/nope")
    assert sample("http_requests_total", labels) - before == 2


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert sample("http_request_duration_seconds_count", labels) - before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "enrollments_purged" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert sample("http_requests_total", labels) == before
