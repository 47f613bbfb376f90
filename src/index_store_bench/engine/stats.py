"""Statistical helpers for BM25 scoring.

The functions here stay independent of any storage backend so readers over
any mix of segments can reuse them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import math


@dataclass(frozen=True)
class FieldLengthStats:
    """Aggregated term statistics for a field."""

    field: str
    total_terms: int
    document_count: int

    @property
    def average_length(self) -> float:
        if self.document_count == 0:
            return 0.0
        return self.total_terms / self.document_count


def compute_field_length_stats(field_name: str, lengths: Iterable[Mapping[int, int]]) -> FieldLengthStats:
    """Return aggregate stats for one field across several per-document length maps."""

    doc_count = 0
    total_terms = 0
    for mapping in lengths:
        doc_count += len(mapping)
        total_terms += sum(max(length, 0) for length in mapping.values())
    return FieldLengthStats(field=field_name, total_terms=total_terms, document_count=doc_count)


def calculate_idf(doc_freq: int, total_docs: int, *, floor: float = 1e-6) -> float:
    """Return inverse document frequency with small-sample smoothing.

    The floor keeps IDF positive so terms present in every document of a
    tiny index still score above zero.
    """

    if total_docs <= 0:
        return 0.0
    df = max(0, min(doc_freq, total_docs))
    numerator = total_docs - df + 0.5
    denominator = df + 0.5
    ratio = max(numerator / denominator, floor)
    raw_idf = math.log(ratio + floor) + 1.0
    return max(raw_idf, floor)


def bm25(tf: int, doc_length: int, avg_doc_length: float, *, k1: float = 1.2, b: float = 0.75) -> float:
    """Compute the BM25 term weight without IDF."""

    if tf <= 0:
        return 0.0
    normalized_length = doc_length / max(avg_doc_length, 1e-9)
    denominator = tf + k1 * (1 - b + b * normalized_length)
    return (tf * (k1 + 1)) / denominator
