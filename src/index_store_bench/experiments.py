"""Named experiments driven through the index store adapter.

Each experiment is a plain function taking an ``ExperimentContext`` and
reporting one line per measured point. ``EXPERIMENTS`` maps the public
names used on the command line to those functions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
import logging
from pathlib import Path
import random

from index_store_bench.adapter import (
    FieldStorage,
    IndexStoreAdapter,
    MergePolicyKind,
    Storage,
    StorageKind,
    SumScoreCollector,
    WriterOptions,
)
from index_store_bench.comparator import compare_strategies
from index_store_bench.config import Settings
from index_store_bench.consistency import ConsistencyChecker
from index_store_bench.engine.errors import UnsupportedFieldError
from index_store_bench.errors import ConfigurationError
from index_store_bench.models import ExperimentConfig
from index_store_bench.observability.context import generate_span_id, generate_trace_id, set_trace_context
from index_store_bench.observability.metrics import EXPERIMENT_DURATION, track_latency
from index_store_bench.observability.tracing import create_span
from index_store_bench.reporting import LoggingReporter, Reporter
from index_store_bench.trial import (
    CommitPolicy,
    TrialOptions,
    TrialResult,
    run_commit_budget_trial,
    run_empty_documents,
    run_workload,
)
from index_store_bench.words import generate_word_pool, random_symbol_words, words_from_passage


logger = logging.getLogger(__name__)

SEGMENT_SIZE_DOCUMENTS = 10_000
NO_MERGE_COMMIT_DOCUMENTS = 2_000

SWEEP_DISTINCT_WORDS = (10, 1000)
SWEEP_WORD_LENGTHS = (15, 150)
SWEEP_WORDS_PER_DOCUMENT = (15, 150)
SWEEP_STRATEGIES = ("standard", "keyword")
ANALYZER_SPEED_STRATEGIES = ("standard", "english", "keyword")
# A keyword-analyzed field is a single term; keep it below the engine's term limit
MAX_SWEEP_FIELD_CHARS = 32_000

SEARCH_SUBJECTS = ("foo bar", "foobar", "hello", "hallo", "hallo world")
SEARCH_TERM = "hallo"


@dataclass
class ExperimentContext:
    """Collaborators shared by every experiment in one run."""

    adapter: IndexStoreAdapter = field(default_factory=IndexStoreAdapter)
    reporter: Reporter = field(default_factory=LoggingReporter)
    settings: Settings = field(default_factory=Settings)

    def scratch(self, suffix: str = "") -> StorageKind:
        """A clean file-backed store under the configured scratch directory."""
        return StorageKind.file_backed(Path(f"{self.settings.scratch_directory}{suffix}"))

    def storage_variants(self) -> list[tuple[str, StorageKind]]:
        return [("file system", self.scratch()), ("memory", StorageKind.in_memory())]


@dataclass(frozen=True)
class Experiment:
    name: str
    description: str
    run: Callable[[ExperimentContext], None]


class ExperimentRegistry:
    """Experiments keyed by their command-line name, in registration order."""

    def __init__(self) -> None:
        self._experiments: dict[str, Experiment] = {}

    def register(self, name: str, description: str) -> Callable[[Callable[[ExperimentContext], None]], Callable]:
        def decorator(func: Callable[[ExperimentContext], None]) -> Callable[[ExperimentContext], None]:
            if name in self._experiments:
                msg = f"Experiment '{name}' registered twice"
                raise ValueError(msg)
            self._experiments[name] = Experiment(name=name, description=description, run=func)
            return func

        return decorator

    def get(self, name: str) -> Experiment | None:
        return self._experiments.get(name)

    def names(self) -> list[str]:
        return list(self._experiments)

    def __iter__(self) -> Iterator[Experiment]:
        return iter(self._experiments.values())

    def __contains__(self, name: object) -> bool:
        return name in self._experiments

    def __len__(self) -> int:
        return len(self._experiments)


EXPERIMENTS = ExperimentRegistry()
experiment = EXPERIMENTS.register


def run_experiment(name: str, context: ExperimentContext) -> None:
    """Run one registered experiment inside its own trace and latency measurement."""

    registered = EXPERIMENTS.get(name)
    if registered is None:
        msg = f"Unknown experiment '{name}'; choose from: {', '.join(EXPERIMENTS.names())}"
        raise ConfigurationError(msg)

    set_trace_context(generate_trace_id(), generate_span_id(), experiment=name)
    logger.info("Starting experiment %s", name)
    with create_span(f"experiment.{name}", attributes={"experiment": name}):
        with track_latency(EXPERIMENT_DURATION, experiment=name):
            registered.run(context)
    logger.info("Finished experiment %s", name)


def _commit_summary(result: TrialResult) -> str:
    return (
        f"{result.measurement} and {result.commits} commits = "
        f"{result.millis_per_commit:.3f} ms/commit = {result.commits_per_second:.1f} commits/sec"
    )


@experiment("index-sizes", "Index size and write time for growing numbers of empty documents")
def index_sizes(ctx: ExperimentContext) -> None:
    variants = [
        ("file system, single file", ctx.scratch(), True),
        ("memory, single file", StorageKind.in_memory(), True),
        ("file system, multiple files", ctx.scratch(), False),
        ("memory, multiple files", StorageKind.in_memory(), False),
    ]
    for description, kind, compound in variants:
        options = TrialOptions(storage_kind=kind, writer_options=WriterOptions(use_compound_format=compound))
        ctx.reporter.line(f"Examine index size and write time for various empty documents ({description})")

        empty = run_empty_documents(ctx.adapter, 0, options).measurement
        ctx.reporter.line(f"  index with no documents: {empty}", documents=0, bytes=empty.total_bytes)
        single = run_empty_documents(ctx.adapter, 1, options).measurement
        ctx.reporter.line(f"  index with 1 empty document: {single}", documents=1, bytes=single.total_bytes)

        count = 10
        while count <= ctx.settings.max_empty_documents:
            measurement = run_empty_documents(ctx.adapter, count, options).measurement
            bytes_per_doc, seconds_per_doc = measurement.marginal_over(single, count)
            docs_per_ms = 1.0 / (seconds_per_doc * 1000.0) if seconds_per_doc > 0 else 0.0
            ctx.reporter.line(
                f"  index with {count} empty document: {measurement} = {bytes_per_doc:.5f} bytes per document "
                f"and {seconds_per_doc * 1000.0:.6f} ms/document = {docs_per_ms:.1f} documents/ms",
                documents=count,
                bytes=measurement.total_bytes,
                bytes_per_document=bytes_per_doc,
            )
            count *= 10


@experiment("segment-sizes", "Empty documents written with commits every 10^k documents")
def segment_sizes(ctx: ExperimentContext) -> None:
    to_write = min(SEGMENT_SIZE_DOCUMENTS, ctx.settings.max_empty_documents)
    for description, kind in ctx.storage_variants():
        ctx.reporter.line(f"Write {to_write} empty documents using various commit chunks ({description})")
        single_commit = run_empty_documents(ctx.adapter, to_write, TrialOptions(storage_kind=kind))
        ctx.reporter.line(f"  only one commit: {single_commit.measurement}")

        commit_every = to_write
        while commit_every >= 1:
            options = TrialOptions(storage_kind=kind, commit_policy=CommitPolicy.every(commit_every))
            result = run_empty_documents(ctx.adapter, to_write, options)
            ctx.reporter.line(
                f"  committing every {commit_every} results in {_commit_summary(result)}",
                commit_every=commit_every,
                commits=result.commits,
                bytes=result.measurement.total_bytes,
            )
            commit_every //= 10


def _commit_speed(ctx: ExperimentContext, description: str, kind: StorageKind) -> None:
    ctx.reporter.line(f"Commit after each empty document ({description})")
    result = run_commit_budget_trial(ctx.adapter, ctx.settings.commit_budget_seconds, TrialOptions(storage_kind=kind))
    ctx.reporter.line(f"  got {_commit_summary(result)}", commits=result.commits)


@experiment("commit-speed-fs", "Commits per second on file-backed storage within the commit budget")
def commit_speed_fs(ctx: ExperimentContext) -> None:
    _commit_speed(ctx, "file system", ctx.scratch())


@experiment("commit-speed-memory", "Commits per second on in-memory storage within the commit budget")
def commit_speed_memory(ctx: ExperimentContext) -> None:
    _commit_speed(ctx, "memory", StorageKind.in_memory())


@experiment("commit-speed-no-merge", "Commit after each of 2000 empty documents with merging disabled")
def commit_speed_no_merge(ctx: ExperimentContext) -> None:
    ctx.reporter.line("Commit after each empty document")
    options = TrialOptions(
        storage_kind=ctx.scratch(),
        commit_policy=CommitPolicy.each_document(),
        writer_options=WriterOptions(use_compound_format=False, merge_policy=MergePolicyKind.NONE),
    )
    result = run_empty_documents(ctx.adapter, NO_MERGE_COMMIT_DOCUMENTS, options)
    ctx.reporter.line(f"  got {_commit_summary(result)}", commits=result.commits)


@experiment("field-types", "Read back what each field storage mode keeps")
def field_types(ctx: ExperimentContext) -> None:
    ctx.reporter.line("Test what can be read back for various field types")
    storage = ctx.adapter.open_storage(ctx.scratch())
    with ctx.adapter.open_writer(storage, options=WriterOptions(use_compound_format=False)) as writer:
        for i in range(10):
            writer.add_document(
                (
                    (f"storedName{i}", f"hallo welt storedValue{i}", FieldStorage.STORED_AND_INDEXED),
                    (f"storedButNoIndexName{i}", "someValue", FieldStorage.STORED_ONLY),
                    (f"all{i}", "someValue and someOtherValue", FieldStorage.STORED_AND_INDEXED),
                    (f"notStoredName{i}", f"notStoredValue{i}", FieldStorage.INDEXED_ONLY),
                )
            )

    with ctx.adapter.open_reader(storage) as reader:
        for doc_id in range(reader.document_count()):
            pairs = reader.stored_field_pairs(doc_id)
            ctx.reporter.line(f"  document {doc_id}", doc_id=doc_id, stored_fields=len(pairs))
            for name, value in pairs:
                ctx.reporter.line(f"      {name}={value}")
    storage.close()


def _write_subjects(ctx: ExperimentContext, kind: StorageKind, storage_mode: FieldStorage) -> Storage:
    storage = ctx.adapter.open_storage(kind)
    with ctx.adapter.open_writer(storage) as writer:
        for subject in SEARCH_SUBJECTS:
            writer.add_document((("subject", subject, storage_mode),))
    return storage


def _search_subjects(ctx: ExperimentContext, kind: StorageKind, storage_mode: FieldStorage) -> None:
    storage = _write_subjects(ctx, kind, storage_mode)
    with ctx.adapter.open_reader(storage) as reader:
        for hit in reader.search("subject", SEARCH_TERM, limit=1000):
            subject = reader.fetch_stored_fields(hit.doc_id).get("subject", [None])[0]
            ctx.reporter.line(
                f"    doc={hit.doc_id} score={hit.score:.6f} which has subject '{subject}'",
                doc_id=hit.doc_id,
                score=hit.score,
            )
    storage.close()


@experiment("searcher-stored", "Term search over a stored and indexed field")
def searcher_stored(ctx: ExperimentContext) -> None:
    _search_subjects(ctx, ctx.scratch("-stored"), FieldStorage.STORED_AND_INDEXED)


@experiment("searcher-not-stored", "Term search over an indexed-only field")
def searcher_not_stored(ctx: ExperimentContext) -> None:
    _search_subjects(ctx, ctx.scratch("-not-stored"), FieldStorage.INDEXED_ONLY)


@experiment("collector", "Sum of scores collected for a term query")
def collector(ctx: ExperimentContext) -> None:
    storage = _write_subjects(ctx, ctx.scratch(), FieldStorage.INDEXED_ONLY)
    summed = SumScoreCollector()
    with ctx.adapter.open_reader(storage) as reader:
        reader.collect("subject", SEARCH_TERM, summed)
    ctx.reporter.line(f"got a total score of {summed.score}", score=summed.score, hits=summed.hits)
    storage.close()


@experiment("commit-visibility", "Documents become visible to a new reader only after a commit")
def commit_visibility(ctx: ExperimentContext) -> None:
    checker = ConsistencyChecker(ctx.adapter, ctx.scratch)
    counts = checker.check_commit_visibility()
    ctx.reporter.line(f"Document counts before and after the commit: {counts}", counts=counts)


@experiment("near-real-time-visibility", "Near-real-time readers see uncommitted documents as frozen snapshots")
def near_real_time_visibility(ctx: ExperimentContext) -> None:
    checker = ConsistencyChecker(ctx.adapter, ctx.scratch)
    counts = checker.check_near_real_time_snapshots()
    ctx.reporter.line(f"Snapshot document counts after commit: {counts}", counts=counts)


@experiment("consistency", "Every visibility check in turn, counted in the invariant metric")
def consistency(ctx: ExperimentContext) -> None:
    for result in ConsistencyChecker(ctx.adapter, ctx.scratch).run_all():
        ctx.reporter.line(f"{result.name}: passed ({result.detail})", check=result.name, passed=result.passed)


def _single_empty_document(ctx: ExperimentContext, suffix: str, compound: bool) -> None:
    storage = ctx.adapter.open_storage(ctx.scratch(suffix))
    with ctx.adapter.open_writer(storage, options=WriterOptions(use_compound_format=compound)) as writer:
        writer.add_document(())
    files = storage.list_files()
    ctx.reporter.line(f"Files written with compound={compound}: {', '.join(files)}", files=files)
    storage.close()


@experiment("force-compound", "One empty document written in the compound file layout")
def force_compound(ctx: ExperimentContext) -> None:
    _single_empty_document(ctx, "-compound", compound=True)


@experiment("force-separate", "One empty document written in the separate file layout")
def force_separate(ctx: ExperimentContext) -> None:
    _single_empty_document(ctx, "-separate", compound=False)


@experiment("analyzing-vs-storing", "Cost of each field storage mode on passage excerpts")
def analyzing_vs_storing(ctx: ExperimentContext) -> None:
    count = ctx.settings.analyzing_document_count
    for storage_mode in (
        FieldStorage.NEITHER,
        FieldStorage.INDEXED_ONLY,
        FieldStorage.STORED_ONLY,
        FieldStorage.STORED_AND_INDEXED,
    ):
        rng = random.Random(ctx.settings.seed)
        options = TrialOptions(field_shape=storage_mode)
        try:
            result = run_workload(ctx.adapter, count, lambda rng=rng: words_from_passage(rng), options)
        except UnsupportedFieldError as exc:
            ctx.reporter.line(f"Writing {count} documents using {storage_mode.value} is unsupported: {exc}")
            continue
        ctx.reporter.line(
            f"Writing {count} documents using {storage_mode.value} results in {result.measurement}",
            storage=storage_mode.value,
            bytes=result.measurement.total_bytes,
            seconds=result.measurement.elapsed_seconds,
        )


@experiment("analyzer-speed", "Indexing cost of each analyzer on two kinds of generated text")
def analyzer_speed(ctx: ExperimentContext) -> None:
    count = ctx.settings.analyzer_document_count
    generators: list[tuple[str, Callable[[random.Random], str]]] = [
        ("passage excerpts", words_from_passage),
        ("random symbol words", random_symbol_words),
    ]
    for source, generator in generators:
        for strategy in ANALYZER_SPEED_STRATEGIES:
            rng = random.Random(ctx.settings.seed)
            result = run_workload(
                ctx.adapter,
                count,
                lambda rng=rng, generator=generator: generator(rng),
                TrialOptions(field_shape=FieldStorage.INDEXED_ONLY),
                analysis_strategy=strategy,
            )
            ctx.reporter.line(
                f"Writing {count} documents of {source} using {FieldStorage.INDEXED_ONLY.value} and {strategy} "
                f"results in {result.measurement.relative_to(count)}",
                strategy=strategy,
                source=source,
            )


def sweep_fits(word_length: int, words_per_document: int) -> bool:
    """Whether a sweep point stays below the single-term size limit."""
    return word_length * words_per_document < MAX_SWEEP_FIELD_CHARS


@experiment("analyzer-sweep", "Standard vs keyword analysis across the document shape sweep")
def analyzer_sweep(ctx: ExperimentContext) -> None:
    settings = ctx.settings
    for distinct in SWEEP_DISTINCT_WORDS:
        for word_length in SWEEP_WORD_LENGTHS:
            rng = random.Random(settings.seed)
            pool = generate_word_pool(word_length, distinct, rng)
            for words_per_document in SWEEP_WORDS_PER_DOCUMENT:
                if not sweep_fits(word_length, words_per_document):
                    logger.debug("Skipping sweep point %d x %d", word_length, words_per_document)
                    continue
                point = ExperimentConfig(
                    distinct_word_count=distinct,
                    word_length=word_length,
                    document_count=settings.sweep_document_count,
                    words_per_document=words_per_document,
                    analysis_strategy=SWEEP_STRATEGIES[0],
                )
                compare_strategies(
                    point,
                    SWEEP_STRATEGIES,
                    pool,
                    ctx.adapter,
                    rng,
                    reporter=ctx.reporter,
                    ratio=settings.much_faster_ratio,
                    min_iterations=settings.min_iterations,
                    min_wall_clock_seconds=settings.min_wall_clock_seconds,
                    experiment="analyzer-sweep",
                )
