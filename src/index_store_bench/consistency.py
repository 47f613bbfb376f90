"""Consistency Checker: visibility guarantees of committed and near-real-time readers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging

from index_store_bench.adapter import FieldStorage, IndexStoreAdapter, StorageKind
from index_store_bench.errors import ConfigurationError, InvariantViolation, expect
from index_store_bench.observability.metrics import INVARIANT_CHECKS


logger = logging.getLogger(__name__)

FIELD_NAME = "fieldName"


def verify_assertions_enabled() -> None:
    """Fail fast when ``assert`` statements are stripped (``python -O``)."""
    try:
        assert False  # noqa: B011, PT015
    except AssertionError:
        return
    raise ConfigurationError("Assertions are disabled; run without -O so consistency checks are enforced")


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    detail: str = ""


class ConsistencyChecker:
    """Runs visibility scenarios against an adapter and raises on any violation."""

    def __init__(
        self,
        adapter: IndexStoreAdapter,
        storage_kind_factory: Callable[[], StorageKind] = StorageKind.in_memory,
    ) -> None:
        self.adapter = adapter
        self.storage_kind_factory = storage_kind_factory

    def check_commit_visibility(self) -> list[int]:
        """A reader over storage sees nothing before the first commit and the document after it.

        Writes added after the commit stay invisible until the next one.

        Returns the observed counts, ``-1`` meaning no index was found.
        """
        storage = self.adapter.open_storage(self.storage_kind_factory())
        writer = self.adapter.open_writer(storage)
        try:
            before = self.adapter.count_documents(storage)
            expect(before == -1, f"Expected no index before the first commit, got {before} documents")

            writer.add_document(((FIELD_NAME, "value", FieldStorage.STORED_AND_INDEXED),))
            pending = self.adapter.count_documents(storage)
            expect(pending == -1, f"Uncommitted document became visible: {pending} documents")

            writer.commit()
            after = self.adapter.count_documents(storage)
            expect(after == 1, f"Expected 1 document after commit, got {after}")

            writer.add_document(((FIELD_NAME, "value", FieldStorage.STORED_AND_INDEXED),))
            unchanged = self.adapter.count_documents(storage)
            expect(unchanged == after, f"Write after the commit leaked into the committed view: {unchanged} documents")
        finally:
            writer.close()
            storage.close()
        return [before, after]

    def check_near_real_time_snapshots(self) -> list[int]:
        """Near-real-time readers freeze the documents added before they were opened.

        Returns the counts observed by the first and second reader at the end.
        """
        storage = self.adapter.open_storage(self.storage_kind_factory())
        writer = self.adapter.open_writer(storage)
        first = self.adapter.open_reader(writer, near_real_time=True)
        try:
            expect(first.document_count() == 0, f"Fresh reader sees {first.document_count()} documents")

            writer.add_document(((FIELD_NAME, "value", FieldStorage.STORED_AND_INDEXED),))
            expect(
                first.document_count() == 0,
                f"Reader opened before the write sees {first.document_count()} documents",
            )

            with self.adapter.open_reader(writer, near_real_time=True) as second:
                expect(second.document_count() == 1, f"Reopened reader sees {second.document_count()} documents")

                writer.add_document(((FIELD_NAME, "value", FieldStorage.STORED_AND_INDEXED),))
                writer.commit()
                expect(first.document_count() == 0, f"First snapshot changed to {first.document_count()} documents")
                expect(second.document_count() == 1, f"Second snapshot changed to {second.document_count()} documents")
                counts = [first.document_count(), second.document_count()]
        finally:
            first.close()
            writer.close()
            storage.close()
        return counts

    def run_all(self) -> list[CheckResult]:
        """Run every scenario; the first violation is recorded and re-raised."""
        checks: dict[str, Callable[[], list[int]]] = {
            "commit_visibility": self.check_commit_visibility,
            "near_real_time_snapshots": self.check_near_real_time_snapshots,
        }
        results: list[CheckResult] = []
        for name, check in checks.items():
            try:
                counts = check()
            except InvariantViolation as exc:
                INVARIANT_CHECKS.labels(check=name, outcome="failed").inc()
                logger.error("Consistency check %s failed: %s", name, exc)
                raise
            INVARIANT_CHECKS.labels(check=name, outcome="passed").inc()
            results.append(CheckResult(name=name, passed=True, detail=f"counts={counts}"))
            logger.info("Consistency check %s passed", name, extra={"counts": counts})
        return results
