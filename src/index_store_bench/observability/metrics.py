"""Prometheus metrics for benchmark runs."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import time
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile


if TYPE_CHECKING:
    from collections.abc import Generator


TRIAL_DURATION = Histogram(
    "index_bench_trial_seconds",
    "Measured write window of a single trial",
    ["experiment", "strategy"],
    buckets=(0.001, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

TRIAL_COUNT = Counter(
    "index_bench_trials_total",
    "Trials executed",
    ["experiment"],
)

STABLE_TIME = Gauge(
    "index_bench_stable_seconds",
    "Minimum elapsed time over repeated trials",
    ["experiment", "strategy"],
)

EXPERIMENT_DURATION = Histogram(
    "index_bench_experiment_seconds",
    "Wall-clock duration of a whole experiment",
    ["experiment"],
    buckets=(0.1, 1.0, 10.0, 30.0, 60.0, 300.0, 900.0, 3600.0),
)

INVARIANT_CHECKS = Counter(
    "index_bench_invariant_checks_total",
    "Consistency checks executed",
    ["check", "outcome"],
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def write_metrics(path: str | Path) -> None:
    """Write the Prometheus text exposition of all metrics to ``path``."""
    write_to_textfile(str(path), REGISTRY)
