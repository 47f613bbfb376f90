"""
Field definitions for documents written to the index store.

Documents are schemaless: each document is an ordered list of fields, and
every field carries its own storage mode:
- STORED_ONLY: the raw value is kept for retrieval but not searchable
- INDEXED_ONLY: the value is analyzed into postings but not retrievable
- STORED_AND_INDEXED: both of the above
- NEITHER: degenerate; rejected by the writer
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from index_store_bench.engine.errors import UnsupportedFieldError


class FieldStorage(str, Enum):
    """How a field value is kept in the index."""

    STORED_ONLY = "stored-only"
    INDEXED_ONLY = "indexed-only"
    STORED_AND_INDEXED = "stored-and-indexed"
    NEITHER = "neither"

    @property
    def stored(self) -> bool:
        return self in (FieldStorage.STORED_ONLY, FieldStorage.STORED_AND_INDEXED)

    @property
    def indexed(self) -> bool:
        return self in (FieldStorage.INDEXED_ONLY, FieldStorage.STORED_AND_INDEXED)


@dataclass(frozen=True)
class DocumentField:
    """
    A single named value within a document.

    Args:
        name: Field name (e.g., "subject")
        value: Raw text value
        storage: Storage mode (default: stored and indexed)
        tokenized: Run the writer's analyzer on the value (default: True);
            untokenized values are indexed as one exact term
    """

    name: str
    value: str
    storage: FieldStorage = FieldStorage.STORED_AND_INDEXED
    tokenized: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            raise UnsupportedFieldError("Field name must not be empty")
        if self.storage is FieldStorage.NEITHER:
            msg = f"Field '{self.name}' is neither stored nor indexed"
            raise UnsupportedFieldError(msg)


FieldSpec = DocumentField | tuple[str, Any, FieldStorage]


def to_fields(document: Iterable[FieldSpec]) -> list[DocumentField]:
    """Normalize ``(name, value, storage)`` tuples into ``DocumentField`` instances."""

    fields: list[DocumentField] = []
    for entry in document:
        if isinstance(entry, DocumentField):
            fields.append(entry)
            continue
        name, value, storage = entry
        fields.append(DocumentField(name=name, value=str(value), storage=FieldStorage(storage)))
    return fields
