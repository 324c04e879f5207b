"""Application metrics using the Prometheus client library.

Every metric the service exports is declared here, so this file is the
inventory of what is measured.  Modules import the metric they own and
increment or observe it where the behaviour happens.

Counters only go up and are read as rates; gauges are snapshots of
current state; histograms bucket observations so Prometheus can derive
percentiles.  Prometheus scrapes GET /metrics to collect them.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

PROGRESS_UPDATES = Counter(
    "progress_updates_total",
    "Progress rows written by the progress engine",
    ["kind", "completed"],  # kind: "step" or "checklist"
)

ENROLLMENTS_PURGED = Counter(
    "enrollments_purged_total",
    "Enrollments removed by the cascade coordinator",
    ["reason"],  # "unassign" or "reconcile"
)

BEST_EFFORT_FAILURES = Counter(
    "best_effort_failures_total",
    "Secondary writes that failed and were skipped",
    ["operation"],  # "log_activity", "delete_activities", "delete_group", ...
)

MESSAGE_READS = Counter(
    "message_reads_total",
    "Mark-as-read requests by outcome",
    ["result"],  # "new" or "already_read"
)
