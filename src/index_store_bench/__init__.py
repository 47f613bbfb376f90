"""index-store-bench: performance and consistency harness for a pluggable text index store."""

__version__ = "0.1.0"
