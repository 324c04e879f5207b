"""Tests for the JSON log shape.

Operators filter best-effort failures by enrollment_id and activity_type,
so those keys must come out at the top level.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from learnhub.core.logging import _ContainerFormatter, _JsonFormatter


def _record(**kwargs) -> logging.LogRecord:
    defaults = dict(
        name="learnhub.services.activity_service",
        level=logging.INFO,
        pathname="activity_service.py",
        lineno=42,
        msg="Logged %s",
        args=("PAGE_VIEW",),
        exc_info=None,
    )
    defaults.update(kwargs)
    return logging.LogRecord(**defaults)


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "learnhub.services.activity_service"
    assert parsed["message"] == "Logged PAGE_VIEW"
    assert "timestamp" in parsed


def test_json_formatter_includes_request_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.method = "PATCH"  # type: ignore[attr-defined]
    record.path = "/enrollments/x/step"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "PATCH"
    assert parsed["path"] == "/enrollments/x/step"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_domain_fields() -> None:
    record = _record(level=logging.WARNING)
    record.enrollment_id = "e-1"  # type: ignore[attr-defined]
    record.activity_type = "STEP_COMPLETED"  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["enrollment_id"] == "e-1"
    assert parsed["activity_type"] == "STEP_COMPLETED"
    assert "user_id" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("activity insert failed")
    except ValueError:
        record = _record(level=logging.ERROR, msg="Boom", args=(), exc_info=sys.exc_info())
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "ValueError: activity insert failed" in parsed["exception"]


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record(name="learnhub.main", msg="started", args=()))
    assert "INFO" in output
    assert "learnhub.main" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output)
