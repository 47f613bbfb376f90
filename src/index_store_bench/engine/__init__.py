"""
Reference index store driven by the benchmark harness.

This package provides a small pure-Python segment-based index:
- analyzers: Tokenizers and filters (standard, keyword, english)
- fields: Field storage modes and document fields
- directory: In-memory and file-system directories
- segment: Immutable segments and the in-RAM segment builder
- writer: IndexWriter with commit points, merge policies and compound files
- reader: Point-in-time readers and term search (BM25)
"""
