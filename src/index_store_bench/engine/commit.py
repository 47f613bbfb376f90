"""Commit points: the ``segments_N`` files that make flushed segments durable.

A reader opened over a directory sees exactly the segments listed in the
newest commit point. Segments flushed after that commit exist as files but
stay invisible until the next commit writes ``segments_{N+1}``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import orjson

from index_store_bench.engine.directory import Directory
from index_store_bench.engine.errors import IndexNotFoundError


SEGMENTS_PREFIX = "segments_"


@dataclass(frozen=True)
class CommitPoint:
    """Parsed contents of a ``segments_N`` file."""

    generation: int
    segments: list[dict[str, Any]] = field(default_factory=list)

    @property
    def file_name(self) -> str:
        return commit_file_name(self.generation)

    @property
    def doc_count(self) -> int:
        return sum(int(info["doc_count"]) for info in self.segments)

    def referenced_files(self) -> set[str]:
        files = {self.file_name}
        for info in self.segments:
            files.update(info.get("files", []))
        return files


def commit_file_name(generation: int) -> str:
    return f"{SEGMENTS_PREFIX}{generation}"


def _generation_of(name: str) -> int | None:
    if not name.startswith(SEGMENTS_PREFIX):
        return None
    suffix = name[len(SEGMENTS_PREFIX) :]
    if not suffix.isdigit():
        return None
    return int(suffix)


def latest_generation(directory: Directory) -> int | None:
    generations = [gen for gen in (_generation_of(name) for name in directory.list_all()) if gen is not None]
    return max(generations) if generations else None


def read_latest_commit(directory: Directory) -> CommitPoint:
    """Return the newest commit point or raise ``IndexNotFoundError``."""

    generation = latest_generation(directory)
    if generation is None:
        msg = f"no segments_N file found in {directory.describe()}: files={directory.list_all()}"
        raise IndexNotFoundError(msg)
    payload = orjson.loads(directory.read_bytes(commit_file_name(generation)))
    return CommitPoint(generation=generation, segments=list(payload.get("segments", [])))


def write_commit(directory: Directory, generation: int, segment_infos: Sequence[dict[str, Any]]) -> CommitPoint:
    point = CommitPoint(generation=generation, segments=[dict(info) for info in segment_infos])
    payload = {"generation": generation, "segments": point.segments}
    directory.write_bytes(point.file_name, orjson.dumps(payload))
    return point
