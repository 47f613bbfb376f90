"""Unit tests for environment-driven settings."""

from pydantic import ValidationError
import pytest

from index_store_bench.config import Settings


pytestmark = pytest.mark.unit


class TestDefaults:
    def test_defaults_without_environment(self, monkeypatch):
        for key in list(Settings.model_fields):
            monkeypatch.delenv(f"INDEX_BENCH_{key.upper()}", raising=False)

        settings = Settings()

        assert settings.min_iterations == 6
        assert settings.min_wall_clock_seconds == 30.0
        assert settings.much_faster_ratio == 1.5
        assert settings.scratch_directory == "test-directory"
        assert settings.max_empty_documents == 100_000
        assert settings.analyzing_document_count == 1_000_000
        assert settings.sweep_document_count == 10_000
        assert settings.json_logs is True


class TestEnvironmentOverrides:
    def test_values_come_from_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("INDEX_BENCH_MIN_ITERATIONS", "3")
        monkeypatch.setenv("INDEX_BENCH_SEED", "7")
        monkeypatch.setenv("INDEX_BENCH_JSON_LOGS", "false")

        settings = Settings()

        assert settings.min_iterations == 3
        assert settings.seed == 7
        assert settings.json_logs is False

    def test_dotenv_file_is_read(self, monkeypatch, tmp_path):
        monkeypatch.delenv("INDEX_BENCH_SEED")
        (tmp_path / ".env").write_text("INDEX_BENCH_SEED=99\n")

        assert Settings().seed == 99

    def test_unrelated_variables_are_ignored(self, monkeypatch):
        monkeypatch.setenv("INDEX_BENCH_SOMETHING_ELSE", "1")

        Settings()


class TestValidation:
    @pytest.mark.parametrize("ratio", ["1.0", "0.5"])
    def test_ratio_must_exceed_one(self, monkeypatch, ratio):
        monkeypatch.setenv("INDEX_BENCH_MUCH_FASTER_RATIO", ratio)

        with pytest.raises(ValidationError, match="greater than 1.0"):
            Settings()

    @pytest.mark.parametrize(
        ("variable", "value"),
        [
            ("INDEX_BENCH_MIN_ITERATIONS", "0"),
            ("INDEX_BENCH_MIN_WALL_CLOCK_SECONDS", "-1"),
            ("INDEX_BENCH_MAX_EMPTY_DOCUMENTS", "5"),
            ("INDEX_BENCH_SWEEP_DOCUMENT_COUNT", "0"),
        ],
    )
    def test_out_of_range_values(self, monkeypatch, variable, value):
        monkeypatch.setenv(variable, value)

        with pytest.raises(ValidationError):
            Settings()
