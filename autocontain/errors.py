"""
Indexing error taxonomy.

- **IoFailure**: a source file or the repository root cannot be read
- **ParseFailure**: the grammar rejects a file's content
- **StoreFailure**: an insert/query against the relational store failed
- **NotFound**: a lookup matched no row (callers recover locally)
"""

from __future__ import annotations


class IndexingError(RuntimeError):
    """Base class for failures raised while indexing a repository."""

    pass


class IoFailure(IndexingError):
    pass


class ParseFailure(IndexingError):
    pass


class StoreFailure(IndexingError):
    pass


class NotFound(LookupError):
    pass
