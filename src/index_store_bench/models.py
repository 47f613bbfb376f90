"""Value objects describing experiment points and their measurements."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExperimentConfig:
    """One point in the experiment space.

    ``word_length`` must stay below the analyzer's maximum token length
    (255 for the standard analyzer); longer words are silently dropped by
    tokenization and the experiment no longer measures what it claims to.
    """

    distinct_word_count: int
    word_length: int
    document_count: int
    words_per_document: int
    analysis_strategy: str

    def __post_init__(self) -> None:
        if self.distinct_word_count <= 0:
            raise ValueError("distinct_word_count must be positive")
        if self.word_length <= 0:
            raise ValueError("word_length must be positive")
        if self.document_count < 0:
            raise ValueError("document_count must not be negative")
        if self.words_per_document < 0:
            raise ValueError("words_per_document must not be negative")

    @property
    def field_size(self) -> int:
        """Characters in one generated field value, separators included."""
        return self.words_per_document * (self.word_length + 1)

    def describe(self) -> str:
        return (
            "{"
            f"docs={self.document_count}, "
            f"distinctWords={self.distinct_word_count}, "
            f"wordSize={self.word_length}, "
            f"wordsPerDocument={self.words_per_document}, "
            f"fieldSize={self.field_size}, "
            f"analyser={self.analysis_strategy}"
            "}"
        )


@dataclass(frozen=True)
class Measurement:
    """Bytes written and wall-clock time of one trial."""

    total_bytes: int
    elapsed_seconds: float

    @property
    def nanos(self) -> int:
        return int(self.elapsed_seconds * 1_000_000_000)

    @property
    def millis(self) -> float:
        return self.elapsed_seconds * 1000.0

    def bytes_per_document(self, document_count: int) -> float:
        return self.total_bytes / document_count if document_count else 0.0

    def seconds_per_document(self, document_count: int) -> float:
        return self.elapsed_seconds / document_count if document_count else 0.0

    def documents_per_second(self, document_count: int) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return document_count / self.elapsed_seconds

    def marginal_over(self, baseline: Measurement, document_count: int) -> tuple[float, float]:
        """Bytes and seconds per document above ``baseline`` (which wrote one document)."""
        extra_docs = document_count - 1
        if extra_docs <= 0:
            return 0.0, 0.0
        return (
            (self.total_bytes - baseline.total_bytes) / extra_docs,
            (self.elapsed_seconds - baseline.elapsed_seconds) / extra_docs,
        )

    def relative_to(self, document_count: int) -> str:
        return (
            f"{int(self.bytes_per_document(document_count))} bytes/document and "
            f"{self.seconds_per_document(document_count) * 1_000_000:.1f} ms/1000 documents"
        )

    def __str__(self) -> str:
        return f"{self.total_bytes} bytes in {self.elapsed_seconds:.6f} sec"


@dataclass(frozen=True)
class StableTime:
    """Minimum elapsed time over a series of repeated trials."""

    seconds: float
    iterations: int

    def per_document(self, document_count: int) -> float:
        return self.seconds / document_count if document_count else 0.0
