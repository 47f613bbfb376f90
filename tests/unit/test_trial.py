"""Unit tests for the trial runner."""

import random

import pytest

from index_store_bench.adapter import FieldStorage, MergePolicyKind, StorageKind, WriterOptions
from index_store_bench.models import ExperimentConfig
from index_store_bench.trial import (
    CommitPolicy,
    TrialOptions,
    run_commit_budget_trial,
    run_empty_documents,
    run_trial,
    run_workload,
)
from index_store_bench.words import generate_word_pool


pytestmark = pytest.mark.unit


def _config(documents=200, strategy="standard"):
    return ExperimentConfig(
        distinct_word_count=50,
        word_length=8,
        document_count=documents,
        words_per_document=12,
        analysis_strategy=strategy,
    )


class TestCommitPolicy:
    def test_never_commits(self):
        policy = CommitPolicy.never()

        assert not any(policy.should_commit(i) for i in range(100))

    def test_interval_skips_first_document(self):
        policy = CommitPolicy.every(10)

        assert [i for i in range(35) if policy.should_commit(i)] == [10, 20, 30]

    def test_interval_of_one_commits_after_every_document_but_the_first(self):
        policy = CommitPolicy.every(1)

        assert [policy.should_commit(i) for i in range(3)] == [False, True, True]

    def test_each_document_commits_always(self):
        policy = CommitPolicy.each_document()

        assert all(policy.should_commit(i) for i in range(5))

    @pytest.mark.parametrize(("mode", "interval"), [("interval", 0), ("sometimes", 1)])
    def test_rejects_invalid_policies(self, mode, interval):
        with pytest.raises(ValueError):
            CommitPolicy(mode=mode, interval=interval)


class TestRunTrial:
    def test_measures_bytes_and_time(self, adapter):
        pool = generate_word_pool(8, 50, 42)

        result = run_trial(_config(), pool, random.Random(42), adapter)

        assert result.measurement.total_bytes > 0
        assert result.measurement.elapsed_seconds > 0
        assert result.commits == 0
        with adapter.open_reader(result.storage) as reader:
            assert reader.document_count() == 200

    def test_byte_count_is_deterministic_for_same_seed(self, adapter):
        pool = generate_word_pool(8, 50, 42)

        first = run_trial(_config(), pool, random.Random(7), adapter)
        second = run_trial(_config(), pool, random.Random(7), adapter)

        assert first.measurement.total_bytes == second.measurement.total_bytes

    def test_byte_count_is_deterministic_on_clean_file_storage(self, adapter, scratch_kind):
        pool = generate_word_pool(8, 50, 42)
        options = TrialOptions(storage_kind=scratch_kind)

        first = run_trial(_config(), pool, random.Random(7), adapter, options)
        second = run_trial(_config(), pool, random.Random(7), adapter, options)

        assert first.measurement.total_bytes == second.measurement.total_bytes

    def test_interval_commits_are_counted(self, adapter):
        options = TrialOptions(commit_policy=CommitPolicy.every(10))

        result = run_empty_documents(adapter, 100, options)

        assert result.commits == 9
        assert result.millis_per_commit > 0
        assert result.commits_per_second > 0

    def test_analysis_strategy_changes_indexed_terms(self, adapter):
        pool = generate_word_pool(8, 50, 42)

        standard = run_trial(_config(50, "standard"), pool, random.Random(3), adapter)
        keyword = run_trial(_config(50, "keyword"), pool, random.Random(3), adapter)

        with adapter.open_reader(standard.storage) as reader:
            assert reader.search("fieldName", pool[0], limit=1)
            assert 1 < reader.term_count("fieldName") <= 50
        with adapter.open_reader(keyword.storage) as reader:
            # the whole value is one term, so single words never match
            assert reader.search("fieldName", pool[0]) == []
            assert reader.term_count("fieldName") == 50


class TestEmptyDocumentSizes:
    def test_one_empty_document_is_not_smaller_than_empty_index(self, adapter):
        empty = run_empty_documents(adapter, 0).measurement
        single = run_empty_documents(adapter, 1).measurement

        assert empty.total_bytes > 0
        assert single.total_bytes >= empty.total_bytes

    @pytest.mark.parametrize("compound", [True, False])
    def test_file_backed_empty_documents(self, adapter, scratch_kind, compound):
        options = TrialOptions(storage_kind=scratch_kind, writer_options=WriterOptions(use_compound_format=compound))

        result = run_empty_documents(adapter, 10, options)

        assert adapter.count_documents(result.storage) == 10
        assert result.measurement.total_bytes == sum(
            (scratch_kind.path / name).stat().st_size for name in result.storage.list_files()
        )


class TestFieldStorageModes:
    DOCUMENTS = 500

    def _run(self, adapter, storage_mode):
        pool = generate_word_pool(8, 100, 42)
        options = TrialOptions(field_shape=storage_mode)
        return run_trial(_config(self.DOCUMENTS), pool, random.Random(42), adapter, options)

    def test_storing_and_indexing_costs_add_up(self, adapter):
        baseline = run_empty_documents(adapter, self.DOCUMENTS).measurement.total_bytes
        indexed = self._run(adapter, FieldStorage.INDEXED_ONLY).measurement.total_bytes
        stored = self._run(adapter, FieldStorage.STORED_ONLY).measurement.total_bytes
        both = self._run(adapter, FieldStorage.STORED_AND_INDEXED).measurement.total_bytes

        assert both >= indexed
        assert both >= stored
        assert both - baseline >= 0.9 * ((indexed - baseline) + (stored - baseline))

    def test_indexed_only_is_searchable_but_not_retrievable(self, adapter):
        result = self._run(adapter, FieldStorage.INDEXED_ONLY)
        pool = generate_word_pool(8, 100, 42)

        with adapter.open_reader(result.storage) as reader:
            hits = reader.search("fieldName", pool[0], limit=5)
            assert hits
            assert reader.fetch_stored_fields(hits[0].doc_id) == {}

    def test_stored_only_is_retrievable_but_not_searchable(self, adapter):
        result = self._run(adapter, FieldStorage.STORED_ONLY)
        pool = generate_word_pool(8, 100, 42)

        with adapter.open_reader(result.storage) as reader:
            assert reader.search("fieldName", pool[0]) == []
            assert reader.fetch_stored_fields(0)["fieldName"][0].endswith(" ")


class TestWorkloads:
    def test_custom_value_source(self, adapter):
        values = iter(["alpha beta", "beta gamma", "gamma delta"])

        result = run_workload(adapter, 3, lambda: next(values), TrialOptions(field_shape=FieldStorage.STORED_AND_INDEXED))

        with adapter.open_reader(result.storage) as reader:
            assert sorted(hit.doc_id for hit in reader.search("fieldName", "gamma")) == [1, 2]

    def test_no_merge_each_document_commits(self, adapter, scratch_kind):
        options = TrialOptions(
            storage_kind=scratch_kind,
            commit_policy=CommitPolicy.each_document(),
            writer_options=WriterOptions(use_compound_format=False, merge_policy=MergePolicyKind.NONE),
        )

        result = run_empty_documents(adapter, 12, options)

        assert result.commits == 12
        assert sum(1 for name in result.storage.list_files() if name.endswith(".si")) == 12


class TestCommitBudgetTrial:
    def test_stops_after_budget(self, adapter):
        ticks = iter(range(100))

        result = run_commit_budget_trial(adapter, 3.0, clock=lambda: float(next(ticks)))

        # deadline is 0 + 3; the loop exits after the read that returns 4
        assert result.commits == 4
        assert adapter.count_documents(result.storage) == 4

    def test_zero_budget_still_commits_once(self, adapter):
        result = run_commit_budget_trial(adapter, 0.0, TrialOptions(storage_kind=StorageKind.in_memory()))

        assert result.commits >= 1
