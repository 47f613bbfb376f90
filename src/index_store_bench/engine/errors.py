"""Exceptions raised by the reference index store."""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for index store failures."""


class IndexNotFoundError(EngineError):
    """Raised when a directory holds no committed index."""


class LockObtainFailedError(EngineError):
    """Raised when a second writer is opened against a locked directory."""


class UnsupportedFieldError(EngineError, ValueError):
    """Raised for field definitions the index cannot represent."""


class ImmenseTermError(EngineError, ValueError):
    """Raised when an analyzed term exceeds the maximum term length."""


class AlreadyClosedError(EngineError):
    """Raised when a closed writer or reader is used."""
