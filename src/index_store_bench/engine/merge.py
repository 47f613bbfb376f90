"""Merge policies deciding when flushed segments are combined."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from index_store_bench.engine.segment import Segment


class MergePolicy(Protocol):
    """Protocol implemented by merge policies."""

    def find_merge(self, segments: Sequence[Segment]) -> tuple[int, int] | None:  # pragma: no cover - interface
        """Return the ``[start, end)`` slice of ``segments`` to merge, if any."""
        ...


class LogMergePolicy:
    """Merges ``merge_factor`` adjacent segments of the same size level.

    A segment's level is the integer ``log_merge_factor(doc_count)``. Whenever the
    newest ``merge_factor`` segments share a level they are merged, so segment
    counts grow logarithmically with the number of flushes.
    """

    def __init__(self, merge_factor: int = 10) -> None:
        if merge_factor < 2:
            raise ValueError("merge_factor must be at least 2")
        self.merge_factor = merge_factor

    def level(self, segment: Segment) -> int:
        level = 0
        remaining = segment.doc_count
        while remaining >= self.merge_factor:
            remaining //= self.merge_factor
            level += 1
        return level

    def find_merge(self, segments: Sequence[Segment]) -> tuple[int, int] | None:
        if len(segments) < self.merge_factor:
            return None
        tail = segments[-self.merge_factor :]
        levels = {self.level(segment) for segment in tail}
        if len(levels) == 1:
            return len(segments) - self.merge_factor, len(segments)
        return None


class NoMergePolicy:
    """Never merges; every flush stays a separate segment."""

    def find_merge(self, segments: Sequence[Segment]) -> tuple[int, int] | None:
        return None
