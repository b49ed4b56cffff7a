"""Exception types raised by the indexing and query layer."""

from __future__ import annotations


class DeskSearchError(Exception):
    """Base class for desksearch failures."""


class ExtractionFailure(DeskSearchError):
    """A file could not be parsed; the file is skipped."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot extract content from {path}: {reason}")
        self.path = path
        self.reason = reason


class IndexIOError(DeskSearchError):
    """An index store mutation or lookup failed."""

    def __init__(self, operation: str, target: str) -> None:
        super().__init__(f"Index {operation} failed for {target}")
        self.operation = operation
        self.target = target


class QueryError(DeskSearchError):
    """A search or suggestion request could not be answered."""

    def __init__(self, operation: str, query: str) -> None:
        super().__init__(f"Index {operation} failed for query {query!r}")
        self.operation = operation
        self.query = query
