"""Shared test fixtures and configuration."""

import logging
import os

import pytest

from index_store_bench.adapter import IndexStoreAdapter, StorageKind
from index_store_bench.config import Settings
from index_store_bench.experiments import ExperimentContext
from index_store_bench.reporting import RecordingReporter


# Keep every run short and deterministic regardless of the developer's shell
TEST_ENV = {
    "INDEX_BENCH_MIN_ITERATIONS": "1",
    "INDEX_BENCH_MIN_WALL_CLOCK_SECONDS": "0",
    "INDEX_BENCH_MUCH_FASTER_RATIO": "1.5",
    "INDEX_BENCH_SEED": "42",
    "INDEX_BENCH_MAX_EMPTY_DOCUMENTS": "100",
    "INDEX_BENCH_ANALYZING_DOCUMENT_COUNT": "20",
    "INDEX_BENCH_ANALYZER_DOCUMENT_COUNT": "20",
    "INDEX_BENCH_SWEEP_DOCUMENT_COUNT": "5",
    "INDEX_BENCH_COMMIT_BUDGET_SECONDS": "0",
    "INDEX_BENCH_LOG_LEVEL": "info",
    "INDEX_BENCH_JSON_LOGS": "true",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Pin harness settings and point the scratch directory into the test's tmp dir."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("INDEX_BENCH_SCRATCH_DIRECTORY", str(tmp_path / "scratch"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """configure_logging replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    engine_level = logging.getLogger("index_store_bench.engine").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("index_store_bench.engine").setLevel(engine_level)


@pytest.fixture
def adapter():
    return IndexStoreAdapter()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def context(adapter, reporter, settings):
    return ExperimentContext(adapter=adapter, reporter=reporter, settings=settings)


@pytest.fixture
def scratch_kind(tmp_path):
    """File-backed storage kind in a clean per-test directory."""
    return StorageKind.file_backed(tmp_path / "index")
