"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

CAPABILITY_CALLS = Counter(
    "questionnaire_capability_calls_total",
    "Calls to external speech and language capabilities",
    ("capability", "outcome"),
)

CAPABILITY_LATENCY = Histogram(
    "questionnaire_capability_duration_seconds",
    "Latency of external speech and language capabilities",
    ("capability",),
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

PROCESSING_OUTCOMES = Counter(
    "questionnaire_processing_outcomes_total",
    "Outcomes of processed voice responses",
    ("status",),
)

TTS = "tts"
STT = "stt"
CLASSIFICATION = "classification"


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_capability(capability: str, success: bool, duration_seconds: float) -> None:
    """Record one call to TTS, STT or the classifier."""

    CAPABILITY_CALLS.labels(
        capability=capability,
        outcome="success" if success else "error",
    ).inc()
    CAPABILITY_LATENCY.labels(capability=capability).observe(max(0.0, duration_seconds))


def increment_outcome(status: str) -> None:
    PROCESSING_OUTCOMES.labels(status=status).inc()
