"""Telemetry helpers and metrics."""

from .metrics import (
    CAPABILITY_CALLS,
    CAPABILITY_LATENCY,
    CLASSIFICATION,
    ERROR_COUNTER,
    PROCESSING_OUTCOMES,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STT,
    TTS,
    increment_outcome,
    observe_capability,
    observe_request,
)

__all__ = [
    "CAPABILITY_CALLS",
    "CAPABILITY_LATENCY",
    "CLASSIFICATION",
    "ERROR_COUNTER",
    "PROCESSING_OUTCOMES",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STT",
    "TTS",
    "increment_outcome",
    "observe_capability",
    "observe_request",
]
