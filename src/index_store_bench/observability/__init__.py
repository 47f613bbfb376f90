"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from index_store_bench.observability.context import get_trace_context, set_trace_context, trace_context
from index_store_bench.observability.logging import JsonFormatter, configure_logging
from index_store_bench.observability.metrics import (
    EXPERIMENT_DURATION,
    INVARIANT_CHECKS,
    STABLE_TIME,
    TRIAL_COUNT,
    TRIAL_DURATION,
    track_latency,
    write_metrics,
)
from index_store_bench.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "EXPERIMENT_DURATION",
    "INVARIANT_CHECKS",
    "STABLE_TIME",
    "TRIAL_COUNT",
    "TRIAL_DURATION",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
    "write_metrics",
]
