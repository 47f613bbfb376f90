"""Point-in-time readers and term search.

An ``IndexReader`` holds a fixed list of immutable segments captured when it
was opened. Later writes, flushes, merges and commits never change what an
open reader sees.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import heapq
import logging
from typing import Protocol

from index_store_bench.engine.commit import read_latest_commit
from index_store_bench.engine.directory import Directory
from index_store_bench.engine.errors import AlreadyClosedError
from index_store_bench.engine.segment import Segment, read_segment
from index_store_bench.engine.stats import bm25, calculate_idf, compute_field_length_stats


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreDoc:
    """A matching document and its score."""

    doc: int
    score: float


@dataclass(frozen=True)
class TopDocs:
    """Top-scoring hits of a query plus the total hit count."""

    total_hits: int
    score_docs: list[ScoreDoc]


class Collector(Protocol):
    """Receives every matching document of a search."""

    def collect(self, doc: int, score: float) -> None:  # pragma: no cover - interface definition
        ...


class IndexReader:
    """Read-only view over a snapshot of segments."""

    def __init__(
        self,
        segments: Sequence[Segment],
        *,
        near_real_time: bool = False,
        generation: int = 0,
    ) -> None:
        self._segments = tuple(segments)
        self.near_real_time = near_real_time
        self.generation = generation
        self._bases: list[int] = []
        base = 0
        for segment in self._segments:
            self._bases.append(base)
            base += segment.doc_count
        self._max_doc = base
        self._closed = False

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    def num_docs(self) -> int:
        self._ensure_open()
        return self._max_doc

    def document_fields(self, doc_id: int) -> list[tuple[str, str]]:
        """Return stored ``(name, value)`` pairs of a document in write order."""

        self._ensure_open()
        segment, local = self._locate(doc_id)
        return list(segment.get_document(local))

    def document(self, doc_id: int) -> dict[str, list[str]]:
        """Return stored values of a document keyed by field name."""

        stored: dict[str, list[str]] = {}
        for name, value in self.document_fields(doc_id):
            stored.setdefault(name, []).append(value)
        return stored

    def terms(self, field_name: str) -> list[str]:
        self._ensure_open()
        unique: set[str] = set()
        for segment in self._segments:
            unique.update(segment.terms(field_name))
        return sorted(unique)

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> IndexReader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise AlreadyClosedError("IndexReader is closed")

    def _locate(self, doc_id: int) -> tuple[Segment, int]:
        if doc_id < 0 or doc_id >= self._max_doc:
            msg = f"Document {doc_id} out of range (max_doc={self._max_doc})"
            raise IndexError(msg)
        for segment, base in zip(reversed(self._segments), reversed(self._bases), strict=True):
            if doc_id >= base:
                return segment, doc_id - base
        raise IndexError(doc_id)  # pragma: no cover - unreachable with valid bases


class IndexSearcher:
    """Exact term queries over an ``IndexReader`` scored with BM25."""

    def __init__(self, reader: IndexReader, *, k1: float = 1.2, b: float = 0.75) -> None:
        self.reader = reader
        self.k1 = k1
        self.b = b

    def search(self, field_name: str, term: str, limit: int = 10) -> TopDocs:
        hits = list(self._score(field_name, term))
        if limit <= 0:
            return TopDocs(total_hits=len(hits), score_docs=[])
        best = heapq.nsmallest(limit, hits, key=lambda hit: (-hit.score, hit.doc))
        return TopDocs(total_hits=len(hits), score_docs=best)

    def collect(self, field_name: str, term: str, collector: Collector) -> None:
        for hit in self._score(field_name, term):
            collector.collect(hit.doc, hit.score)

    def _score(self, field_name: str, term: str) -> list[ScoreDoc]:
        reader = self.reader
        reader._ensure_open()
        segments = reader.segments
        doc_freq = sum(len(segment.get_postings(field_name, term)) for segment in segments)
        if doc_freq == 0:
            return []
        total_docs = reader.num_docs()
        idf = calculate_idf(doc_freq, total_docs)
        stats = compute_field_length_stats(field_name, (segment.field_lengths.get(field_name, {}) for segment in segments))
        avg_length = stats.average_length

        hits: list[ScoreDoc] = []
        for segment, base in zip(segments, reader._bases, strict=True):
            lengths = segment.field_lengths.get(field_name, {})
            for posting in segment.get_postings(field_name, term):
                weight = bm25(
                    posting.frequency,
                    lengths.get(posting.doc_id, posting.frequency),
                    avg_length,
                    k1=self.k1,
                    b=self.b,
                )
                hits.append(ScoreDoc(doc=base + posting.doc_id, score=idf * weight))
        return hits


def open_directory_reader(directory: Directory) -> IndexReader:
    """Open a reader over the newest commit point of ``directory``.

    Raises ``IndexNotFoundError`` when nothing has been committed yet.
    """

    point = read_latest_commit(directory)
    segments = [read_segment(directory, info) for info in point.segments]
    logger.debug("Opened reader at generation %d over %s", point.generation, directory.describe())
    return IndexReader(segments, generation=point.generation)
