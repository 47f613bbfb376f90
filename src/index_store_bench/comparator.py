"""Strategy Comparator: stable per-document cost of analysis strategies on a shared workload."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
import logging
import random
import time

from index_store_bench.adapter import IndexStore
from index_store_bench.models import ExperimentConfig, Measurement, StableTime
from index_store_bench.observability.metrics import STABLE_TIME, TRIAL_COUNT, TRIAL_DURATION
from index_store_bench.observability.tracing import create_span
from index_store_bench.reducer import DEFAULT_MIN_ITERATIONS, DEFAULT_MIN_WALL_CLOCK_SECONDS, reduce_to_stable
from index_store_bench.reporting import Reporter
from index_store_bench.trial import TrialOptions, run_trial


logger = logging.getLogger(__name__)

MUCH_FASTER_RATIO = 1.5


class ComparisonFlag(str, Enum):
    """Outcome of comparing two stable times."""

    FIRST_MUCH_FASTER = "first_much_faster"
    SECOND_MUCH_FASTER = "second_much_faster"
    NONE = "none"


def compare_pair(first: float, second: float, ratio: float = MUCH_FASTER_RATIO) -> ComparisonFlag:
    """Flag a strategy only when the other one is strictly more than ``ratio`` times slower."""
    if second > ratio * first:
        return ComparisonFlag.FIRST_MUCH_FASTER
    if first > ratio * second:
        return ComparisonFlag.SECOND_MUCH_FASTER
    return ComparisonFlag.NONE


@dataclass(frozen=True)
class StrategyResult:
    config: ExperimentConfig
    stable: StableTime

    @property
    def micros_per_document(self) -> float:
        return self.stable.per_document(self.config.document_count) * 1_000_000

    def describe(self) -> str:
        return f"{self.config.describe():<110s} results in {self.micros_per_document:6.1f} us/document"


@dataclass(frozen=True)
class Comparison:
    results: tuple[StrategyResult, ...]
    flag: ComparisonFlag

    def flag_message(self) -> str | None:
        if len(self.results) < 2:
            return None
        first, second = self.results[0].config.analysis_strategy, self.results[1].config.analysis_strategy
        if self.flag is ComparisonFlag.FIRST_MUCH_FASTER:
            return f" ** {first} is much faster"
        if self.flag is ComparisonFlag.SECOND_MUCH_FASTER:
            return f" == {second} is much faster"
        return None


def compare_strategies(
    point: ExperimentConfig,
    strategies: Sequence[str],
    pool: Sequence[str],
    store: IndexStore,
    rng: random.Random,
    *,
    reporter: Reporter | None = None,
    ratio: float = MUCH_FASTER_RATIO,
    min_iterations: int = DEFAULT_MIN_ITERATIONS,
    min_wall_clock_seconds: float = DEFAULT_MIN_WALL_CLOCK_SECONDS,
    options: TrialOptions | None = None,
    experiment: str = "compare",
    clock: Callable[[], float] = time.monotonic,
) -> Comparison:
    """Measure every strategy on one word pool and flag a much faster one.

    Every strategy draws its documents from the same ``pool``, with ``rng``
    carried on from one trial to the next. Only the first two strategies
    take part in the flag.
    """
    if not strategies:
        raise ValueError("At least one analysis strategy is required")
    results: list[StrategyResult] = []

    for strategy in strategies:
        config = replace(point, analysis_strategy=strategy)

        def trial(config: ExperimentConfig = config) -> Measurement:
            return run_trial(config, pool, rng, store, options).measurement

        def observe(measurement: Measurement, strategy: str = strategy) -> None:
            TRIAL_COUNT.labels(experiment=experiment).inc()
            TRIAL_DURATION.labels(experiment=experiment, strategy=strategy).observe(measurement.elapsed_seconds)

        with create_span("reduce_to_stable", attributes={"experiment": experiment, "strategy": strategy}):
            stable = reduce_to_stable(
                trial,
                min_iterations,
                min_wall_clock_seconds,
                clock=clock,
                on_trial=observe,
            )
        logger.debug("%s: %s stable after %d trials", experiment, strategy, stable.iterations)
        STABLE_TIME.labels(experiment=experiment, strategy=strategy).set(stable.seconds)
        result = StrategyResult(config=config, stable=stable)
        results.append(result)
        if reporter is not None:
            reporter.line(
                result.describe(),
                strategy=strategy,
                micros_per_document=round(result.micros_per_document, 3),
                iterations=stable.iterations,
            )

    flag = ComparisonFlag.NONE
    if len(results) >= 2:
        flag = compare_pair(results[0].stable.seconds, results[1].stable.seconds, ratio)

    comparison = Comparison(results=tuple(results), flag=flag)
    message = comparison.flag_message()
    if message is not None and reporter is not None:
        reporter.line(message, flag=flag.value)
    return comparison
