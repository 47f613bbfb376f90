"""Tests for the command line entry point."""

import runpy
from unittest.mock import patch

import pytest

from index_store_bench import cli
from index_store_bench.cli import EXIT_CONFIGURATION, EXIT_FAILURE, EXIT_OK, main
from index_store_bench.engine.errors import LockObtainFailedError
from index_store_bench.errors import ConfigurationError, InvariantViolation
from index_store_bench.experiments import EXPERIMENTS


pytestmark = pytest.mark.unit


class TestList:
    def test_lists_every_experiment(self, capsys):
        assert main(["list"]) == EXIT_OK

        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines] == EXPERIMENTS.names()

    def test_command_is_required(self):
        with pytest.raises(SystemExit) as excinfo:
            main([])

        assert excinfo.value.code == 2


class TestRun:
    def test_runs_selected_experiments_in_order(self, monkeypatch):
        seen = []
        monkeypatch.setattr(cli, "run_experiment", lambda name, context: seen.append(name))

        assert main(["run", "force-separate", "force-compound"]) == EXIT_OK
        assert seen == ["force-separate", "force-compound"]

    def test_writes_metrics_file(self, tmp_path):
        target = tmp_path / "metrics.prom"

        assert main(["run", "force-compound", "--metrics-out", str(target), "--plain-logs"]) == EXIT_OK

        assert 'index_bench_experiment_seconds_count{experiment="force-compound"}' in target.read_text()

    def test_unknown_experiment_runs_nothing(self, monkeypatch):
        seen = []
        monkeypatch.setattr(cli, "run_experiment", lambda name, context: seen.append(name))

        assert main(["run", "force-compound", "nope"]) == EXIT_CONFIGURATION
        assert seen == []

    def test_invalid_settings(self, monkeypatch, capsys):
        monkeypatch.setenv("INDEX_BENCH_MUCH_FASTER_RATIO", "0.9")

        assert main(["run", "force-compound"]) == EXIT_CONFIGURATION
        assert "invalid configuration" in capsys.readouterr().out

    def test_disabled_assertions(self, monkeypatch):
        def fail():
            raise ConfigurationError("assertions are disabled")

        monkeypatch.setattr(cli, "verify_assertions_enabled", fail)

        assert main(["run", "force-compound"]) == EXIT_CONFIGURATION

    @pytest.mark.parametrize(
        "error",
        [InvariantViolation("count mismatch"), LockObtainFailedError("locked")],
    )
    def test_failures_exit_non_zero_and_still_write_metrics(self, monkeypatch, tmp_path, error):
        def explode(name, context):
            raise error

        monkeypatch.setattr(cli, "run_experiment", explode)
        target = tmp_path / "metrics.prom"

        assert main(["run", "collector", "--metrics-out", str(target)]) == EXIT_FAILURE
        assert target.exists()


def test_module_entry_point_exits_with_main_result():
    with patch("index_store_bench.cli.main", return_value=3) as mocked, pytest.raises(SystemExit) as excinfo:
        runpy.run_module("index_store_bench", run_name="__main__")

    mocked.assert_called_once()
    assert excinfo.value.code == 3
