"""Immutable index segments.

* ``SegmentBuilder`` - accepts analyzed documents in RAM and produces an
  immutable ``Segment`` with postings, field lengths and stored fields.
* ``Segment`` - read-only view used by readers; documents are numbered
  locally from zero.
* ``write_segment`` / ``read_segment`` - persist a segment into a directory,
  either as one compound ``.cfs`` file or as separate ``.fdt``/``.pst`` files,
  always next to a ``.si`` info file.
"""

from __future__ import annotations

from array import array
from collections import defaultdict
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

import orjson

from index_store_bench.engine.analyzers import Analyzer, KeywordAnalyzer, Token
from index_store_bench.engine.directory import Directory
from index_store_bench.engine.errors import ImmenseTermError
from index_store_bench.engine.fields import DocumentField


logger = logging.getLogger(__name__)

MAX_TERM_LENGTH = 32766

INFO_SUFFIX = ".si"
COMPOUND_SUFFIX = ".cfs"
STORED_SUFFIX = ".fdt"
POSTINGS_SUFFIX = ".pst"


@dataclass(frozen=True, slots=True)
class Posting:
    """Occurrences of a term in one document.

    Frequency is derived from len(positions).
    """

    doc_id: int
    positions: array

    @property
    def frequency(self) -> int:
        return len(self.positions)

    def to_list(self) -> list[Any]:
        return [self.doc_id, list(self.positions)]

    @classmethod
    def from_list(cls, data: Sequence[Any]) -> Posting:
        doc_id, positions = data
        return cls(doc_id=int(doc_id), positions=array("I", (int(pos) for pos in positions)))


@dataclass(frozen=True, slots=True)
class Segment:
    """Immutable representation of a flushed segment."""

    name: str
    doc_count: int
    postings: dict[str, dict[str, list[Posting]]]
    stored_fields: list[list[tuple[str, str]]]
    field_lengths: dict[str, dict[int, int]] = field(default_factory=dict)

    def get_postings(self, field_name: str, term: str) -> list[Posting]:
        """Return postings for a specific term in a field."""
        return self.postings.get(field_name, {}).get(term, [])

    def get_document(self, doc_id: int) -> list[tuple[str, str]]:
        if doc_id < 0 or doc_id >= self.doc_count:
            msg = f"Document {doc_id} out of range for segment {self.name} ({self.doc_count} docs)"
            raise IndexError(msg)
        return self.stored_fields[doc_id]

    def terms(self, field_name: str) -> list[str]:
        return list(self.postings.get(field_name, {}))

    @property
    def has_stored_fields(self) -> bool:
        return any(self.stored_fields)

    @property
    def has_postings(self) -> bool:
        return any(self.postings.values())

    def stored_payload(self) -> dict[str, Any]:
        return {"d": [[list(pair) for pair in doc] for doc in self.stored_fields]}

    def postings_payload(self) -> dict[str, Any]:
        """Serialize with minimal keys: p=postings, n=field lengths."""
        return {
            "p": {
                field_name: {term: [posting.to_list() for posting in postings] for term, postings in terms.items()}
                for field_name, terms in self.postings.items()
            },
            "n": {
                field_name: [[doc_id, length] for doc_id, length in lengths.items()]
                for field_name, lengths in self.field_lengths.items()
            },
        }

    @classmethod
    def from_payloads(
        cls,
        name: str,
        doc_count: int,
        stored: Mapping[str, Any] | None,
        postings: Mapping[str, Any] | None,
    ) -> Segment:
        stored_fields: list[list[tuple[str, str]]] = [[] for _ in range(doc_count)]
        if stored:
            stored_fields = [[(str(pair[0]), str(pair[1])) for pair in doc] for doc in stored.get("d", [])]

        parsed: dict[str, dict[str, list[Posting]]] = {}
        field_lengths: dict[str, dict[int, int]] = {}
        if postings:
            for field_name, terms in postings.get("p", {}).items():
                parsed[field_name] = {term: [Posting.from_list(entry) for entry in entries] for term, entries in terms.items()}
            for field_name, pairs in postings.get("n", {}).items():
                field_lengths[field_name] = {int(doc_id): int(length) for doc_id, length in pairs}

        return cls(
            name=name,
            doc_count=doc_count,
            postings=parsed,
            stored_fields=stored_fields,
            field_lengths=field_lengths,
        )


class SegmentBuilder:
    """Buffers analyzed documents until they are flushed as a segment."""

    def __init__(self, analyzer: Analyzer) -> None:
        self.analyzer = analyzer
        self._keyword_analyzer = KeywordAnalyzer()
        self._postings: MutableMapping[str, MutableMapping[str, MutableMapping[int, list[int]]]] = defaultdict(
            lambda: defaultdict(dict)
        )
        self._field_lengths: MutableMapping[str, dict[int, int]] = defaultdict(dict)
        self._stored_fields: list[list[tuple[str, str]]] = []

    @property
    def doc_count(self) -> int:
        return len(self._stored_fields)

    def add_document(self, fields: Sequence[DocumentField]) -> int:
        """Analyze ``fields`` and return the segment-local document number."""

        doc_id = len(self._stored_fields)
        analyzed: list[tuple[str, list[Token]]] = []
        for document_field in fields:
            if document_field.storage.indexed:
                tokens = self._analyze(document_field)
                _check_term_lengths(document_field.name, tokens)
                analyzed.append((document_field.name, tokens))

        # Everything is validated before the builder is mutated.
        stored: list[tuple[str, str]] = [(f.name, f.value) for f in fields if f.storage.stored]
        for field_name, tokens in analyzed:
            if not tokens:
                continue
            lengths = self._field_lengths[field_name]
            lengths[doc_id] = lengths.get(doc_id, 0) + len(tokens)
            terms = self._postings[field_name]
            for token in tokens:
                terms[token.text].setdefault(doc_id, []).append(token.position)
        self._stored_fields.append(stored)
        return doc_id

    def build(self, name: str) -> Segment:
        postings: dict[str, dict[str, list[Posting]]] = {}
        for field_name, terms in self._postings.items():
            postings[field_name] = {
                term: [Posting(doc_id=doc_id, positions=array("I", positions)) for doc_id, positions in doc_map.items()]
                for term, doc_map in terms.items()
            }
        return Segment(
            name=name,
            doc_count=self.doc_count,
            postings=postings,
            stored_fields=list(self._stored_fields),
            field_lengths={field_name: dict(lengths) for field_name, lengths in self._field_lengths.items()},
        )

    def _analyze(self, document_field: DocumentField) -> list[Token]:
        if not document_field.value:
            return []
        if document_field.tokenized:
            return self.analyzer(document_field.value)
        return self._keyword_analyzer(document_field.value)


def _check_term_lengths(field_name: str, tokens: Sequence[Token]) -> None:
    for token in tokens:
        size = len(token.text.encode("utf-8"))
        if size > MAX_TERM_LENGTH:
            msg = (
                f"Field '{field_name}' contains an immense term of {size} bytes "
                f"(maximum {MAX_TERM_LENGTH}); prefix: {token.text[:30]!r}"
            )
            raise ImmenseTermError(msg)


def merge_segments(segments: Sequence[Segment], name: str) -> Segment:
    """Concatenate ``segments`` into one, renumbering documents in order."""

    postings: dict[str, dict[str, list[Posting]]] = defaultdict(lambda: defaultdict(list))
    field_lengths: dict[str, dict[int, int]] = defaultdict(dict)
    stored_fields: list[list[tuple[str, str]]] = []
    base = 0
    for segment in segments:
        for field_name, terms in segment.postings.items():
            merged_terms = postings[field_name]
            for term, entries in terms.items():
                merged_terms[term].extend(
                    Posting(doc_id=entry.doc_id + base, positions=entry.positions) for entry in entries
                )
        for field_name, lengths in segment.field_lengths.items():
            merged_lengths = field_lengths[field_name]
            for doc_id, length in lengths.items():
                merged_lengths[doc_id + base] = length
        stored_fields.extend(segment.stored_fields)
        base += segment.doc_count

    return Segment(
        name=name,
        doc_count=base,
        postings={field_name: dict(terms) for field_name, terms in postings.items()},
        stored_fields=stored_fields,
        field_lengths=dict(field_lengths),
    )


def _dumps(payload: Any) -> bytes:
    return orjson.dumps(payload)


def write_segment(directory: Directory, segment: Segment, *, compound: bool) -> dict[str, Any]:
    """Persist ``segment`` and return its info record for the commit point."""

    files: list[str] = []
    stored = segment.stored_payload() if segment.has_stored_fields else None
    postings = segment.postings_payload() if segment.has_postings else None

    if compound:
        if stored is not None or postings is not None:
            name = segment.name + COMPOUND_SUFFIX
            directory.write_bytes(name, _dumps({"fdt": stored, "pst": postings}))
            files.append(name)
    else:
        if stored is not None:
            name = segment.name + STORED_SUFFIX
            directory.write_bytes(name, _dumps(stored))
            files.append(name)
        if postings is not None:
            name = segment.name + POSTINGS_SUFFIX
            directory.write_bytes(name, _dumps(postings))
            files.append(name)

    info_name = segment.name + INFO_SUFFIX
    info = {
        "name": segment.name,
        "doc_count": segment.doc_count,
        "compound": compound,
        "files": [info_name, *files],
    }
    directory.write_bytes(info_name, _dumps(info))
    logger.debug("Wrote segment %s (%d docs, compound=%s)", segment.name, segment.doc_count, compound)
    return info


def read_segment(directory: Directory, info: Mapping[str, Any]) -> Segment:
    """Load a segment described by an info record."""

    name = str(info["name"])
    doc_count = int(info["doc_count"])
    files = set(info.get("files", []))
    stored: Mapping[str, Any] | None = None
    postings: Mapping[str, Any] | None = None

    if info.get("compound"):
        compound_name = name + COMPOUND_SUFFIX
        if compound_name in files:
            parts = orjson.loads(directory.read_bytes(compound_name))
            stored = parts.get("fdt")
            postings = parts.get("pst")
    else:
        if name + STORED_SUFFIX in files:
            stored = orjson.loads(directory.read_bytes(name + STORED_SUFFIX))
        if name + POSTINGS_SUFFIX in files:
            postings = orjson.loads(directory.read_bytes(name + POSTINGS_SUFFIX))

    return Segment.from_payloads(name, doc_count, stored, postings)
