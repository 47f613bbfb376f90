"""Flat file containers backing an index.

A directory is a single-level namespace of named byte blobs. ``RamDirectory``
keeps them in a dict and disappears with the object; ``FSDirectory`` maps them
onto files under one path, which is created lazily on the first write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path

from index_store_bench.engine.errors import LockObtainFailedError


logger = logging.getLogger(__name__)

WRITE_LOCK_NAME = "write.lock"


class Directory(ABC):
    """Base class for index directories."""

    @abstractmethod
    def list_all(self) -> list[str]:
        """Return every file name, sorted."""

    @abstractmethod
    def file_length(self, name: str) -> int:
        """Return the size of a file in bytes."""

    @abstractmethod
    def read_bytes(self, name: str) -> bytes:
        """Return the full contents of a file."""

    @abstractmethod
    def write_bytes(self, name: str, data: bytes) -> None:
        """Create or replace a file atomically."""

    @abstractmethod
    def delete_file(self, name: str) -> None:
        """Remove a file; missing files are ignored."""

    @abstractmethod
    def _create_exclusive(self, name: str) -> bool:
        """Create an empty file, returning False when it already exists."""

    def file_exists(self, name: str) -> bool:
        return name in self.list_all()

    def total_size_bytes(self) -> int:
        """Sum of the lengths of every file in the directory."""
        return sum(self.file_length(name) for name in self.list_all())

    def obtain_write_lock(self) -> None:
        if not self._create_exclusive(WRITE_LOCK_NAME):
            msg = f"Lock held by another writer: {self.describe()}/{WRITE_LOCK_NAME}"
            raise LockObtainFailedError(msg)

    def release_write_lock(self) -> None:
        self.delete_file(WRITE_LOCK_NAME)

    def close(self) -> None:  # noqa: B027 - optional hook
        """Release resources held by the directory."""

    @abstractmethod
    def describe(self) -> str:
        """Human readable location of the directory."""


class RamDirectory(Directory):
    """Directory that keeps every file in memory."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    def list_all(self) -> list[str]:
        return sorted(self._files)

    def file_length(self, name: str) -> int:
        return len(self._files[name])

    def read_bytes(self, name: str) -> bytes:
        try:
            return self._files[name]
        except KeyError:
            raise FileNotFoundError(name) from None

    def write_bytes(self, name: str, data: bytes) -> None:
        self._files[name] = bytes(data)

    def delete_file(self, name: str) -> None:
        self._files.pop(name, None)

    def _create_exclusive(self, name: str) -> bool:
        if name in self._files:
            return False
        self._files[name] = b""
        return True

    def close(self) -> None:
        self._files.clear()

    def describe(self) -> str:
        return f"ram@{id(self):x}"


class FSDirectory(Directory):
    """Directory stored as plain files under ``path``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def list_all(self) -> list[str]:
        if not self.path.is_dir():
            return []
        return sorted(entry.name for entry in self.path.iterdir() if entry.is_file())

    def file_length(self, name: str) -> int:
        return (self.path / name).stat().st_size

    def read_bytes(self, name: str) -> bytes:
        return (self.path / name).read_bytes()

    def write_bytes(self, name: str, data: bytes) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        target = self.path / name
        tmp_path = target.with_name(target.name + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(target)

    def delete_file(self, name: str) -> None:
        (self.path / name).unlink(missing_ok=True)

    def _create_exclusive(self, name: str) -> bool:
        self.path.mkdir(parents=True, exist_ok=True)
        try:
            with (self.path / name).open("xb"):
                pass
        except FileExistsError:
            return False
        return True

    def describe(self) -> str:
        return str(self.path)


def clean_directory(path: str | Path) -> None:
    """Remove every file in ``path`` and then ``path`` itself.

    Only a single level is handled; nested directories make the final
    ``rmdir`` fail. A path that does not exist yet is left alone.
    """

    target = Path(path)
    if target.is_dir():
        for entry in target.iterdir():
            entry.unlink()
    if target.exists():
        target.rmdir()
        logger.debug("Removed directory %s", target)
