"""Unit tests for analyzers, directories and scoring helpers of the reference engine."""

import pytest

from index_store_bench.engine.analyzers import (
    KeywordAnalyzer,
    MaxLengthFilter,
    StandardAnalyzer,
    available_analyzers,
    get_analyzer,
)
from index_store_bench.engine.directory import FSDirectory, RamDirectory, clean_directory
from index_store_bench.engine.errors import LockObtainFailedError
from index_store_bench.engine.stats import bm25, calculate_idf, compute_field_length_stats


pytestmark = pytest.mark.unit


class TestAnalyzers:
    def test_standard_lowercases_and_drops_stopwords(self):
        tokens = StandardAnalyzer()("The Quick fox IS here")

        assert [token.text for token in tokens] == ["quick", "fox", "here"]
        assert [token.position for token in tokens] == [0, 1, 2]

    def test_standard_drops_overlong_tokens(self):
        tokens = StandardAnalyzer(max_token_length=5)("short toolongword")

        assert [token.text for token in tokens] == ["short"]

    def test_english_stems_suffixes(self):
        tokens = get_analyzer("english")("walking jumped")

        assert [token.text for token in tokens] == ["walk", "jump"]

    def test_keyword_keeps_whole_value(self):
        tokens = KeywordAnalyzer()("Mixed Case value ")

        assert [token.text for token in tokens] == ["Mixed Case value "]
        assert KeywordAnalyzer()("") == []

    def test_lookup_is_case_insensitive(self):
        assert get_analyzer("KEYWORD").name == "keyword"
        assert get_analyzer(None).name == "standard"

    def test_unknown_analyzer(self):
        with pytest.raises(ValueError, match="Unknown analyzer"):
            get_analyzer("klingon")

    def test_available_analyzers(self):
        assert available_analyzers() == ["english", "keyword", "standard"]

    def test_max_length_must_be_positive(self):
        with pytest.raises(ValueError):
            MaxLengthFilter(0)


class TestDirectories:
    @pytest.fixture(params=["ram", "fs"])
    def directory(self, request, tmp_path):
        if request.param == "ram":
            return RamDirectory()
        return FSDirectory(tmp_path / "index")

    def test_write_read_and_delete(self, directory):
        directory.write_bytes("b", b"12345")
        directory.write_bytes("a", b"1")

        assert directory.list_all() == ["a", "b"]
        assert directory.file_length("b") == 5
        assert directory.total_size_bytes() == 6
        assert directory.read_bytes("a") == b"1"

        directory.delete_file("a")
        directory.delete_file("missing")

        assert directory.list_all() == ["b"]

    def test_write_lock_is_exclusive(self, directory):
        directory.obtain_write_lock()
        with pytest.raises(LockObtainFailedError):
            directory.obtain_write_lock()

        directory.release_write_lock()
        directory.obtain_write_lock()

    def test_missing_file_read(self, directory):
        with pytest.raises(FileNotFoundError):
            directory.read_bytes("nothing")

    def test_fs_directory_created_lazily(self, tmp_path):
        directory = FSDirectory(tmp_path / "lazy")

        assert directory.list_all() == []
        assert not (tmp_path / "lazy").exists()

        directory.write_bytes("x", b"")

        assert (tmp_path / "lazy" / "x").exists()


class TestCleanDirectory:
    def test_removes_files_and_directory(self, tmp_path):
        target = tmp_path / "index"
        target.mkdir()
        (target / "segments_1").write_bytes(b"{}")

        clean_directory(target)

        assert not target.exists()

    def test_missing_directory_is_fine(self, tmp_path):
        clean_directory(tmp_path / "never-created")

    def test_nested_directories_fail(self, tmp_path):
        target = tmp_path / "index"
        (target / "nested").mkdir(parents=True)

        with pytest.raises(OSError):
            clean_directory(target)


class TestScoring:
    def test_field_length_stats(self):
        stats = compute_field_length_stats("body", [{0: 2, 1: 4}, {0: 6}])

        assert stats.document_count == 3
        assert stats.average_length == pytest.approx(4.0)

    def test_empty_stats(self):
        assert compute_field_length_stats("body", []).average_length == 0.0

    def test_rare_terms_weigh_more(self):
        assert calculate_idf(1, 100) > calculate_idf(50, 100)
        assert calculate_idf(100, 100) > 0
        assert calculate_idf(1, 0) == 0.0

    def test_bm25_prefers_shorter_fields(self):
        assert bm25(1, 1, 2.0) > bm25(1, 3, 2.0)
        assert bm25(0, 1, 2.0) == 0.0
