"""Statistical Reducer: repeat a trial until the minimum elapsed time is trustworthy."""

from __future__ import annotations

from collections.abc import Callable
import gc
import logging
import time

from index_store_bench.models import Measurement, StableTime


logger = logging.getLogger(__name__)

DEFAULT_MIN_ITERATIONS = 6
DEFAULT_MIN_WALL_CLOCK_SECONDS = 30.0


def reduce_to_stable(
    trial_fn: Callable[[], Measurement],
    min_iterations: int = DEFAULT_MIN_ITERATIONS,
    min_wall_clock_seconds: float = DEFAULT_MIN_WALL_CLOCK_SECONDS,
    *,
    clock: Callable[[], float] = time.monotonic,
    collect: Callable[[], object] = gc.collect,
    on_trial: Callable[[Measurement], None] | None = None,
) -> StableTime:
    """Run ``trial_fn`` repeatedly and return the smallest elapsed time seen.

    Garbage is collected before every trial. The loop stops only once both
    ``min_iterations`` trials have run and ``min_wall_clock_seconds`` have
    passed since the first trial started (after its garbage collection).
    Only the running minimum is kept.

    Args:
        trial_fn: One complete trial; its ``elapsed_seconds`` is the sample
        min_iterations: Lower bound on trials, at least 1
        min_wall_clock_seconds: Lower bound on total time spent repeating
        clock: Monotonic time source for the wall-clock bound
        collect: Garbage collection hook invoked before each trial
        on_trial: Observer called with every individual measurement
    """
    if min_iterations < 1:
        raise ValueError("min_iterations must be at least 1")

    best: float | None = None
    iterations = 0
    start: float | None = None
    while True:
        collect()
        if start is None:
            start = clock()
        measurement = trial_fn()
        iterations += 1
        if on_trial is not None:
            on_trial(measurement)
        if best is None or measurement.elapsed_seconds < best:
            best = measurement.elapsed_seconds
        if iterations >= min_iterations and clock() - start >= min_wall_clock_seconds:
            break

    logger.debug("Stable time %.6f sec after %d iterations", best, iterations)
    return StableTime(seconds=best, iterations=iterations)
