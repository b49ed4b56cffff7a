"""Capability interface of the full-text index store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Tuple

from desksearch.models import IndexDocument

FacetCounts = Dict[str, List[Tuple[str, int]]]


@dataclass(slots=True)
class SearchRequest:
    query: str
    rows: int = 10
    filters: List[str] = field(default_factory=list)
    facet_fields: List[str] = field(default_factory=list)
    highlight_field: str | None = None
    highlight_snippets: int = 5
    highlight_fragment_size: int = 100
    similar_field: str | None = None
    similar_count: int = 0


@dataclass(slots=True)
class Match:
    unique_id: str
    score: float
    fields: Dict[str, str]


@dataclass(slots=True)
class SearchResponse:
    matches: List[Match] = field(default_factory=list)
    total_matches: int = 0
    max_score: float = 0.0
    highlights: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    facet_counts: FacetCounts = field(default_factory=dict)
    similar: Dict[str, List[str]] = field(default_factory=dict)


class IndexStore(Protocol):
    """Document index supporting upsert, delete, faceted query and autosuggest.

    Implementations must tolerate concurrent calls and treat deleting an
    unknown id as a no-op.
    """

    def upsert(self, document: IndexDocument) -> None: ...

    def delete(self, unique_id: str) -> None: ...

    def query(self, request: SearchRequest) -> SearchResponse: ...

    def suggest(
        self, term: str, slop: int, in_order: bool, max_count: int
    ) -> Dict[str, Dict[str, str]]: ...

    def close(self) -> None: ...
