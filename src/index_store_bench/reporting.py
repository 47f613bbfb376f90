"""Reporter sinks for human-readable experiment results."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Protocol


class Reporter(Protocol):
    """Receives one line per experiment point."""

    def line(self, message: str, **fields: Any) -> None:  # pragma: no cover - interface definition
        ...


class LoggingReporter:
    """Emits report lines through the ``index_store_bench.report`` logger.

    Structured values travel in the ``report`` extra so JSON logs keep them
    machine-readable next to the formatted message.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("index_store_bench.report")

    def line(self, message: str, **fields: Any) -> None:
        self.logger.info(message, extra={"report": fields} if fields else None)


@dataclass(frozen=True)
class ReportLine:
    message: str
    fields: dict[str, Any] = field(default_factory=dict)


class RecordingReporter:
    """Keeps every reported line in memory."""

    def __init__(self) -> None:
        self.lines: list[ReportLine] = []

    def line(self, message: str, **fields: Any) -> None:
        self.lines.append(ReportLine(message, dict(fields)))

    @property
    def messages(self) -> list[str]:
        return [entry.message for entry in self.lines]
