"""IndexWriter: buffers documents, flushes segments and writes commit points."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

from index_store_bench.engine.analyzers import Analyzer, StandardAnalyzer
from index_store_bench.engine.commit import CommitPoint, latest_generation, read_latest_commit, write_commit
from index_store_bench.engine.directory import WRITE_LOCK_NAME, Directory
from index_store_bench.engine.errors import AlreadyClosedError
from index_store_bench.engine.fields import FieldSpec, to_fields
from index_store_bench.engine.merge import LogMergePolicy, MergePolicy
from index_store_bench.engine.segment import Segment, SegmentBuilder, merge_segments, read_segment, write_segment


if TYPE_CHECKING:
    from index_store_bench.engine.reader import IndexReader


logger = logging.getLogger(__name__)

DEFAULT_MAX_BUFFERED_DOCUMENTS = 10_000
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _next_counter(segments: list[_LiveSegment]) -> int:
    """One past the highest base36 suffix among ``segments`` names."""
    return max((int(live.segment.name.lstrip("_"), 36) + 1 for live in segments), default=0)


@dataclass
class WriterConfig:
    """Options for an ``IndexWriter``.

    Args:
        analyzer: Analyzer applied to tokenized fields (default: standard)
        use_compound_file: Pack each segment into one ``.cfs`` file (default: True)
        merge_policy: Policy consulted after every flush (default: log merge)
        max_buffered_documents: Flush a segment once this many documents are buffered
    """

    analyzer: Analyzer = field(default_factory=StandardAnalyzer)
    use_compound_file: bool = True
    merge_policy: MergePolicy = field(default_factory=LogMergePolicy)
    max_buffered_documents: int = DEFAULT_MAX_BUFFERED_DOCUMENTS

    def __post_init__(self) -> None:
        if self.max_buffered_documents < 1:
            raise ValueError("max_buffered_documents must be positive")


@dataclass
class _LiveSegment:
    segment: Segment
    info: dict[str, Any]


class IndexWriter:
    """Single writer for a directory.

    Opening a writer takes the directory's ``write.lock``; a second writer on
    the same directory fails with ``LockObtainFailedError`` until ``close``.
    Existing commits are appended to.
    """

    def __init__(self, directory: Directory, config: WriterConfig | None = None) -> None:
        self.directory = directory
        self.config = config or WriterConfig()
        directory.obtain_write_lock()
        self._closed = False
        self._segments: list[_LiveSegment] = []
        self._committed: CommitPoint | None = None
        self._segment_counter = 0
        self._changed = False
        self.commit_count = 0

        if latest_generation(directory) is not None:
            self._committed = read_latest_commit(directory)
            for info in self._committed.segments:
                self._segments.append(_LiveSegment(read_segment(directory, info), dict(info)))
            self._segment_counter = _next_counter(self._segments)
            logger.debug(
                "Appending to %s at generation %d (%d segments)",
                directory.describe(),
                self._committed.generation,
                len(self._segments),
            )
        self._builder = SegmentBuilder(self.config.analyzer)

    @property
    def generation(self) -> int:
        return self._committed.generation if self._committed else 0

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    @property
    def pending_documents(self) -> int:
        return self._builder.doc_count

    @property
    def max_doc(self) -> int:
        return sum(live.segment.doc_count for live in self._segments) + self._builder.doc_count

    def add_document(self, document: Iterable[FieldSpec]) -> None:
        self._ensure_open()
        self._builder.add_document(to_fields(document))
        self._changed = True
        if self._builder.doc_count >= self.config.max_buffered_documents:
            self._flush()

    def commit(self) -> CommitPoint:
        """Flush buffered documents and write a new commit point."""

        self._ensure_open()
        self._flush()
        if self._committed is not None and not self._changed:
            return self._committed

        generation = self.generation + 1
        point = write_commit(self.directory, generation, [live.info for live in self._segments])
        self._committed = point
        self._changed = False
        self.commit_count += 1
        self._delete_unreferenced_files()
        logger.debug("Committed generation %d with %d docs", generation, point.doc_count)
        return point

    def get_reader(self) -> IndexReader:
        """Return a near-real-time reader frozen at the current state.

        Buffered documents are flushed into a new, uncommitted segment so
        the reader includes them without a commit.
        """

        from index_store_bench.engine.reader import IndexReader  # noqa: PLC0415 - avoid import cycle

        self._ensure_open()
        self._flush()
        return IndexReader([live.segment for live in self._segments], near_real_time=True, generation=self.generation)

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.commit()
        finally:
            self._closed = True
            self.directory.release_write_lock()

    def __enter__(self) -> IndexWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise AlreadyClosedError("IndexWriter is closed")

    def _next_segment_name(self) -> str:
        name = f"_{_base36(self._segment_counter)}"
        self._segment_counter += 1
        return name

    def _flush(self) -> None:
        if self._builder.doc_count == 0:
            return
        segment = self._builder.build(self._next_segment_name())
        info = write_segment(self.directory, segment, compound=self.config.use_compound_file)
        self._segments.append(_LiveSegment(segment, info))
        self._builder = SegmentBuilder(self.config.analyzer)
        self._maybe_merge()

    def _maybe_merge(self) -> None:
        while True:
            window = self.config.merge_policy.find_merge([live.segment for live in self._segments])
            if window is None:
                return
            start, end = window
            doomed = self._segments[start:end]
            merged = merge_segments([live.segment for live in doomed], self._next_segment_name())
            info = write_segment(self.directory, merged, compound=self.config.use_compound_file)
            self._segments[start:end] = [_LiveSegment(merged, info)]
            self._changed = True
            committed = self._committed.referenced_files() if self._committed else set()
            for live in doomed:
                for name in live.info["files"]:
                    if name not in committed:
                        self.directory.delete_file(name)
            logger.debug("Merged %d segments into %s (%d docs)", len(doomed), merged.name, merged.doc_count)

    def _delete_unreferenced_files(self) -> None:
        keep = {WRITE_LOCK_NAME}
        if self._committed is not None:
            keep |= self._committed.referenced_files()
        for live in self._segments:
            keep.update(live.info["files"])
        for name in self.directory.list_all():
            if name not in keep:
                self.directory.delete_file(name)
