"""Centralized configuration for index-store-bench using Pydantic Settings."""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``INDEX_BENCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="INDEX_BENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Statistical reduction
    min_iterations: int = Field(default=6, ge=1, description="Minimum trials before a stable time is reported")
    min_wall_clock_seconds: float = Field(
        default=30.0, ge=0.0, description="Minimum wall-clock seconds spent repeating trials of one workload"
    )
    much_faster_ratio: float = Field(
        default=1.5, description="Ratio between two stable times above which one strategy is flagged much faster"
    )

    # Workload generation
    seed: int = Field(default=42, description="Seed for word pools and document generation")
    scratch_directory: str = Field(
        default="test-directory", description="Path used for file-backed stores; wiped before each clean run"
    )
    max_empty_documents: int = Field(
        default=100_000, ge=10, description="Largest empty-document count written by the index-size experiment"
    )
    analyzing_document_count: int = Field(
        default=1_000_000, ge=1, description="Documents written per field storage mode in analyzing-vs-storing"
    )
    analyzer_document_count: int = Field(
        default=100_000, ge=1, description="Documents written per analyzer in analyzer-speed"
    )
    sweep_document_count: int = Field(
        default=10_000, ge=1, description="Documents written per trial in the analyzer sweep"
    )
    commit_budget_seconds: float = Field(
        default=30.0, ge=0.0, description="Wall-clock budget of the time-bounded commit-speed experiments"
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    @model_validator(mode="after")
    def _check_ratio(self) -> "Settings":
        if self.much_faster_ratio <= 1.0:
            raise ValueError("INDEX_BENCH_MUCH_FASTER_RATIO must be greater than 1.0")
        return self
