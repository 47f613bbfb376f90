"""Index Store Adapter: the only surface the harness uses to drive an index engine.

Experiments talk to ``Storage``, ``Writer`` and ``Reader`` handles obtained
from an ``IndexStore``. ``IndexStoreAdapter`` implements the protocol on top
of the bundled reference engine; another engine can be plugged in by
providing an object with the same methods.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Literal, Protocol

from index_store_bench.engine.analyzers import get_analyzer
from index_store_bench.engine.directory import Directory, FSDirectory, RamDirectory, clean_directory
from index_store_bench.engine.errors import IndexNotFoundError
from index_store_bench.engine.fields import FieldSpec, FieldStorage
from index_store_bench.engine.merge import LogMergePolicy, MergePolicy, NoMergePolicy
from index_store_bench.engine.reader import IndexReader, IndexSearcher, open_directory_reader
from index_store_bench.engine.writer import DEFAULT_MAX_BUFFERED_DOCUMENTS, IndexWriter, WriterConfig
from index_store_bench.errors import ResourceError


__all__ = [
    "FieldStorage",
    "IndexNotFoundError",
    "IndexStore",
    "IndexStoreAdapter",
    "MergePolicyKind",
    "Reader",
    "ScoredDocument",
    "Storage",
    "StorageKind",
    "SumScoreCollector",
    "Writer",
    "WriterOptions",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageKind:
    """Selects the backing storage of an index."""

    kind: Literal["memory", "file"]
    path: Path | None = None
    clean: bool = True

    @classmethod
    def in_memory(cls) -> StorageKind:
        return cls(kind="memory")

    @classmethod
    def file_backed(cls, path: str | Path, *, clean: bool = True) -> StorageKind:
        return cls(kind="file", path=Path(path), clean=clean)

    def describe(self) -> str:
        if self.kind == "memory":
            return "memory"
        return f"file system ({self.path})"


class MergePolicyKind(str, Enum):
    """Segment merge behaviour of a writer."""

    DEFAULT = "default"
    NONE = "none"

    def build(self) -> MergePolicy:
        if self is MergePolicyKind.NONE:
            return NoMergePolicy()
        return LogMergePolicy()


@dataclass(frozen=True)
class WriterOptions:
    """Options applied when opening a writer."""

    use_compound_format: bool = True
    merge_policy: MergePolicyKind = MergePolicyKind.DEFAULT
    max_buffered_documents: int = DEFAULT_MAX_BUFFERED_DOCUMENTS


@dataclass(frozen=True)
class ScoredDocument:
    """A search hit."""

    doc_id: int
    score: float


class Storage:
    """An opened storage backend holding one index."""

    def __init__(self, directory: Directory, kind: StorageKind) -> None:
        self.directory = directory
        self.kind = kind

    def total_size_bytes(self) -> int:
        """Sum of every file's length inside the storage backend."""
        return self.directory.total_size_bytes()

    def list_files(self) -> list[str]:
        return self.directory.list_all()

    def close(self) -> None:
        self.directory.close()

    def __repr__(self) -> str:
        return f"Storage({self.kind.describe()})"


class Writer:
    """The single writer of a storage backend."""

    def __init__(self, storage: Storage, index_writer: IndexWriter, analysis_strategy: str) -> None:
        self.storage = storage
        self.analysis_strategy = analysis_strategy
        self._writer = index_writer

    @property
    def index_writer(self) -> IndexWriter:
        return self._writer

    @property
    def commit_count(self) -> int:
        return self._writer.commit_count

    @property
    def segment_count(self) -> int:
        return self._writer.segment_count

    def add_document(self, fields: Iterable[FieldSpec] = ()) -> None:
        self._writer.add_document(fields)

    def commit(self) -> None:
        self._writer.commit()

    def close(self) -> None:
        self._writer.close()

    def __enter__(self) -> Writer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class Reader:
    """A point-in-time reader with term search."""

    def __init__(self, index_reader: IndexReader) -> None:
        self._reader = index_reader
        self._searcher = IndexSearcher(index_reader)

    @property
    def near_real_time(self) -> bool:
        return self._reader.near_real_time

    def document_count(self) -> int:
        return self._reader.num_docs()

    def search(self, term_field: str, term_value: str, limit: int = 10) -> list[ScoredDocument]:
        top = self._searcher.search(term_field, term_value, limit)
        return [ScoredDocument(doc_id=hit.doc, score=hit.score) for hit in top.score_docs]

    def collect(self, term_field: str, term_value: str, collector: SumScoreCollector) -> None:
        self._searcher.collect(term_field, term_value, collector)

    def fetch_stored_fields(self, doc_id: int) -> dict[str, list[str]]:
        """Stored values of a document; indexed-only fields are absent."""
        return self._reader.document(doc_id)

    def stored_field_pairs(self, doc_id: int) -> list[tuple[str, str]]:
        return self._reader.document_fields(doc_id)

    def term_count(self, term_field: str) -> int:
        """Number of distinct indexed terms in a field."""
        return len(self._reader.terms(term_field))

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> Reader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SumScoreCollector:
    """Collector summing the scores of every hit."""

    def __init__(self) -> None:
        self.score = 0.0
        self.hits = 0

    def collect(self, doc: int, score: float) -> None:
        self.score += score
        self.hits += 1


class IndexStore(Protocol):
    """Operations the harness needs from an index engine."""

    def open_storage(self, kind: StorageKind) -> Storage: ...

    def open_writer(
        self, storage: Storage, analysis_strategy: str = "standard", options: WriterOptions | None = None
    ) -> Writer: ...

    def open_reader(self, source: Storage | Writer, *, near_real_time: bool = False) -> Reader: ...


class IndexStoreAdapter:
    """``IndexStore`` backed by the reference engine."""

    def open_storage(self, kind: StorageKind) -> Storage:
        if kind.kind == "memory":
            return Storage(RamDirectory(), kind)
        if kind.path is None:
            raise ResourceError("File-backed storage requires a path")
        try:
            if kind.clean:
                clean_directory(kind.path)
        except OSError as exc:
            msg = f"Cannot clean storage directory {kind.path}: {exc}"
            raise ResourceError(msg) from exc
        logger.debug("Opened %s", kind.describe())
        return Storage(FSDirectory(kind.path), kind)

    def open_writer(
        self,
        storage: Storage,
        analysis_strategy: str = "standard",
        options: WriterOptions | None = None,
    ) -> Writer:
        options = options or WriterOptions()
        config = WriterConfig(
            analyzer=get_analyzer(analysis_strategy),
            use_compound_file=options.use_compound_format,
            merge_policy=options.merge_policy.build(),
            max_buffered_documents=options.max_buffered_documents,
        )
        try:
            index_writer = IndexWriter(storage.directory, config)
        except OSError as exc:
            msg = f"Cannot open writer on {storage.kind.describe()}: {exc}"
            raise ResourceError(msg) from exc
        return Writer(storage, index_writer, analysis_strategy)

    def open_reader(self, source: Storage | Writer, *, near_real_time: bool = False) -> Reader:
        """Open a reader over committed storage, or a near-real-time reader over a live writer.

        Raises ``IndexNotFoundError`` when ``source`` is a storage backend
        without any commit.
        """

        if isinstance(source, Writer):
            if near_real_time:
                return Reader(source.index_writer.get_reader())
            return Reader(open_directory_reader(source.storage.directory))
        return Reader(open_directory_reader(source.directory))

    def count_documents(self, storage: Storage) -> int:
        """Documents visible over ``storage``, or -1 when no index exists yet."""

        try:
            with self.open_reader(storage) as reader:
                return reader.document_count()
        except IndexNotFoundError:
            return -1
