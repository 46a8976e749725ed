"""Prometheus metric inventory for the progression service.

Every metric the service exports is defined here; the modules that own
the behaviour import the metric and increment it at the point of action.
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
# Progression metrics
# ---------------------------------------------------------------------------

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Quiz submissions by outcome",
    ["outcome"],  # "created" or "replayed" (idempotent re-submit)
)

WEEKS_COMPLETED = Counter(
    "weeks_completed_total",
    "Weeks newly added to a student's completed set",
)

XP_AWARDED = Counter(
    "xp_awarded_total",
    "XP credited to students, by source",
    ["source"],  # quiz|login|question|focus
)

DAILY_TASKS = Counter(
    "daily_tasks_total",
    "Daily mission task completions by task and outcome",
    ["task", "outcome"],  # outcome: "awarded" or "replayed"
)

LEADERBOARD_CACHE = Counter(
    "leaderboard_cache_total",
    "Leaderboard cache lookups by result",
    ["result"],  # "hit" or "miss"
)
