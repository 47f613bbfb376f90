"""Trial Runner: one timed write workload against a freshly opened store.

The timed window starts immediately before the first ``add_document`` and
ends when ``Writer.close()`` returns. Opening or cleaning the storage,
creating the writer, generating the word pool and measuring the resulting
size all happen outside it.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
import logging
import random
import time

from index_store_bench.adapter import FieldStorage, IndexStore, Storage, StorageKind, WriterOptions
from index_store_bench.models import ExperimentConfig, Measurement
from index_store_bench.words import concat_random_words


logger = logging.getLogger(__name__)

DEFAULT_FIELD_NAME = "fieldName"


@dataclass(frozen=True)
class CommitPolicy:
    """When a trial commits while writing.

    ``interval`` commits after document ``i`` whenever ``i > 0`` and
    ``i % n == 0``; ``each`` commits after every document; ``never`` leaves
    the single implicit commit to ``close()``.
    """

    mode: str = "never"
    interval: int = 0

    def __post_init__(self) -> None:
        if self.mode not in ("never", "interval", "each"):
            msg = f"Unknown commit mode '{self.mode}'"
            raise ValueError(msg)
        if self.mode == "interval" and self.interval < 1:
            raise ValueError("Commit interval must be positive")

    @classmethod
    def never(cls) -> CommitPolicy:
        return cls()

    @classmethod
    def every(cls, interval: int) -> CommitPolicy:
        return cls(mode="interval", interval=interval)

    @classmethod
    def each_document(cls) -> CommitPolicy:
        return cls(mode="each")

    def should_commit(self, index: int) -> bool:
        if self.mode == "each":
            return True
        if self.mode == "interval":
            return index > 0 and index % self.interval == 0
        return False


@dataclass(frozen=True)
class TrialOptions:
    """Shape of one trial.

    Args:
        storage_kind: Backing storage, opened fresh for the trial
        field_shape: Storage mode of the single field; ``None`` writes empty documents
        commit_policy: Intermediate commits during the write loop
        writer_options: Compound format, merge policy and buffering of the writer
        field_name: Name of the generated field
    """

    storage_kind: StorageKind = field(default_factory=StorageKind.in_memory)
    field_shape: FieldStorage | None = FieldStorage.INDEXED_ONLY
    commit_policy: CommitPolicy = field(default_factory=CommitPolicy.never)
    writer_options: WriterOptions = field(default_factory=WriterOptions)
    field_name: str = DEFAULT_FIELD_NAME


@dataclass(frozen=True)
class TrialResult:
    """Outcome of a trial; ``storage`` stays open for inspection."""

    measurement: Measurement
    commits: int
    storage: Storage

    @property
    def millis_per_commit(self) -> float:
        return self.measurement.millis / self.commits if self.commits else 0.0

    @property
    def commits_per_second(self) -> float:
        if self.measurement.elapsed_seconds <= 0:
            return 0.0
        return self.commits / self.measurement.elapsed_seconds


def run_trial(
    config: ExperimentConfig,
    pool: Sequence[str],
    rng: random.Random,
    store: IndexStore,
    options: TrialOptions | None = None,
) -> TrialResult:
    """Write ``config.document_count`` documents of pooled random words and measure the store."""

    def next_value() -> str:
        return concat_random_words(pool, rng, config.words_per_document)

    return run_workload(store, config.document_count, next_value, options, analysis_strategy=config.analysis_strategy)


def run_empty_documents(
    store: IndexStore,
    document_count: int,
    options: TrialOptions | None = None,
    *,
    analysis_strategy: str = "standard",
) -> TrialResult:
    """Write ``document_count`` documents without fields."""

    options = options or TrialOptions()
    if options.field_shape is not None:
        options = replace(options, field_shape=None)
    return run_workload(store, document_count, lambda: "", options, analysis_strategy=analysis_strategy)


def run_workload(
    store: IndexStore,
    document_count: int,
    next_value: Callable[[], str],
    options: TrialOptions | None = None,
    *,
    analysis_strategy: str = "standard",
) -> TrialResult:
    """Open a fresh store and time writing ``document_count`` documents built from ``next_value``."""

    options = options or TrialOptions()
    storage = store.open_storage(options.storage_kind)
    writer = store.open_writer(storage, analysis_strategy, options.writer_options)
    shape = options.field_shape
    policy = options.commit_policy
    commits = 0

    start = time.perf_counter()
    try:
        for index in range(document_count):
            if shape is None:
                writer.add_document(())
            else:
                writer.add_document(((options.field_name, next_value(), shape),))
            if policy.should_commit(index):
                writer.commit()
                commits += 1
    finally:
        writer.close()
    elapsed = time.perf_counter() - start

    measurement = Measurement(total_bytes=storage.total_size_bytes(), elapsed_seconds=elapsed)
    logger.debug("Trial wrote %d docs to %s: %s", document_count, storage, measurement)
    return TrialResult(measurement=measurement, commits=commits, storage=storage)


def run_commit_budget_trial(
    store: IndexStore,
    budget_seconds: float,
    options: TrialOptions | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> TrialResult:
    """Add one empty document and commit, repeatedly, until ``budget_seconds`` elapse."""

    options = options or TrialOptions()
    storage = store.open_storage(options.storage_kind)
    writer = store.open_writer(storage, "standard", options.writer_options)
    commits = 0

    deadline = clock() + budget_seconds
    start = time.perf_counter()
    try:
        while True:
            writer.add_document(())
            writer.commit()
            commits += 1
            if clock() > deadline:
                break
    finally:
        writer.close()
    elapsed = time.perf_counter() - start

    measurement = Measurement(total_bytes=storage.total_size_bytes(), elapsed_seconds=elapsed)
    return TrialResult(measurement=measurement, commits=commits, storage=storage)
