"""Unit tests for visibility checks and the assertion self-check."""

from prometheus_client import REGISTRY
import pytest

from index_store_bench.adapter import IndexStoreAdapter, StorageKind
from index_store_bench.consistency import ConsistencyChecker, verify_assertions_enabled
from index_store_bench.errors import InvariantViolation


pytestmark = pytest.mark.unit


class AlwaysVisibleAdapter(IndexStoreAdapter):
    """Reports one document even when nothing has been committed."""

    def count_documents(self, storage):
        return 1


class LeakAfterCommitAdapter(IndexStoreAdapter):
    """Hides documents until the first commit, then reports every buffered one too."""

    def open_writer(self, storage, analysis_strategy="standard", options=None):
        self.writer = super().open_writer(storage, analysis_strategy, options)
        return self.writer

    def count_documents(self, storage):
        if self.writer.commit_count == 0:
            return -1
        return self.writer.index_writer.max_doc


class TestCommitVisibility:
    def test_file_backed_store(self, adapter, scratch_kind):
        checker = ConsistencyChecker(adapter, lambda: scratch_kind)

        assert checker.check_commit_visibility() == [-1, 1]

    def test_in_memory_store(self, adapter):
        checker = ConsistencyChecker(adapter, StorageKind.in_memory)

        assert checker.check_commit_visibility() == [-1, 1]

    def test_violation_is_raised(self, scratch_kind):
        checker = ConsistencyChecker(AlwaysVisibleAdapter(), lambda: scratch_kind)

        with pytest.raises(InvariantViolation, match="before the first commit"):
            checker.check_commit_visibility()

    def test_uncommitted_write_after_commit_is_caught(self, scratch_kind):
        checker = ConsistencyChecker(LeakAfterCommitAdapter(), lambda: scratch_kind)

        with pytest.raises(InvariantViolation, match="leaked into the committed view: 2 documents"):
            checker.check_commit_visibility()

    def test_write_after_commit_stays_invisible(self, adapter, scratch_kind):
        ConsistencyChecker(adapter, lambda: scratch_kind).check_commit_visibility()

        reopened = adapter.open_storage(StorageKind.file_backed(scratch_kind.path, clean=False))
        # close() commits the trailing write
        assert adapter.count_documents(reopened) == 2

    def test_violation_leaves_store_unlocked(self, adapter, scratch_kind):
        checker = ConsistencyChecker(AlwaysVisibleAdapter(), lambda: scratch_kind)
        with pytest.raises(InvariantViolation):
            checker.check_commit_visibility()

        assert not (scratch_kind.path / "write.lock").exists()


class TestNearRealTimeSnapshots:
    def test_snapshots_stay_frozen(self, adapter):
        checker = ConsistencyChecker(adapter)

        assert checker.check_near_real_time_snapshots() == [0, 1]

    def test_file_backed_snapshots(self, adapter, scratch_kind):
        checker = ConsistencyChecker(adapter, lambda: scratch_kind)

        assert checker.check_near_real_time_snapshots() == [0, 1]
        assert adapter.count_documents(adapter.open_storage(StorageKind.file_backed(scratch_kind.path, clean=False))) == 2


class TestRunAll:
    def test_all_checks_pass(self, adapter, scratch_kind):
        before = REGISTRY.get_sample_value(
            "index_bench_invariant_checks_total", {"check": "commit_visibility", "outcome": "passed"}
        ) or 0.0

        results = ConsistencyChecker(adapter, lambda: scratch_kind).run_all()

        assert [result.name for result in results] == ["commit_visibility", "near_real_time_snapshots"]
        assert all(result.passed for result in results)
        after = REGISTRY.get_sample_value(
            "index_bench_invariant_checks_total", {"check": "commit_visibility", "outcome": "passed"}
        )
        assert after == before + 1

    def test_failure_is_counted_and_reraised(self, scratch_kind):
        labels = {"check": "commit_visibility", "outcome": "failed"}
        before = REGISTRY.get_sample_value("index_bench_invariant_checks_total", labels) or 0.0

        with pytest.raises(InvariantViolation):
            ConsistencyChecker(AlwaysVisibleAdapter(), lambda: scratch_kind).run_all()

        assert REGISTRY.get_sample_value("index_bench_invariant_checks_total", labels) == before + 1


def test_invariant_violation_is_an_assertion_error():
    with pytest.raises(AssertionError):
        raise InvariantViolation("boom")


def test_assertions_enabled_under_pytest():
    verify_assertions_enabled()
