"""Harness-level exceptions."""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for failures raised by the benchmark harness."""


class ConfigurationError(HarnessError):
    """The runtime is configured in a way that would make results meaningless."""


class ResourceError(HarnessError):
    """A storage backend could not be opened or cleaned."""


class InvariantViolation(HarnessError, AssertionError):
    """Observed index behaviour contradicts an expected invariant.

    Subclasses ``AssertionError`` so it reads like a failed assertion, but it
    is raised explicitly and therefore survives ``python -O``.
    """


def expect(condition: bool, message: str) -> None:
    """Raise ``InvariantViolation`` with ``message`` unless ``condition`` holds."""
    if not condition:
        raise InvariantViolation(message)
