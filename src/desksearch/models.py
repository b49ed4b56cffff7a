"""Core desksearch data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Sequence, Tuple, Union

MetadataValue = Union[str, datetime]


class SupportedLanguage(Enum):
    """Languages the extractor can recognise, with their display names."""

    en = "English"
    de = "German"
    fr = "French"
    es = "Spanish"
    it = "Italian"
    pt = "Portuguese"
    nl = "Dutch"
    unknown = "Unknown"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def display_name_for(cls, code: str) -> str:
        """Return the display name for a stored language code, or the code itself."""
        try:
            return cls[code].display_name
        except KeyError:
            return code


class UpdateCheckResult(Enum):
    UPDATED = "updated"
    UNMODIFIED = "unmodified"


@dataclass(frozen=True, slots=True)
class MetadataEntry:
    key: str
    value: MetadataValue


@dataclass(frozen=True, slots=True)
class Content:
    """Text and metadata extracted from a single file."""

    file_name: str
    text: str
    file_size: int
    last_modified: int
    language: SupportedLanguage
    metadata: Tuple[MetadataEntry, ...] = ()

    @classmethod
    def create(
        cls,
        file_name: str,
        text: str,
        file_size: int,
        last_modified: int,
        language: SupportedLanguage = SupportedLanguage.unknown,
        metadata: Sequence[Tuple[str, MetadataValue]] = (),
    ) -> "Content":
        entries = tuple(MetadataEntry(key.lower(), value) for key, value in metadata)
        return cls(file_name, text, file_size, last_modified, language, entries)


@dataclass(slots=True)
class IndexDocument:
    """Document as handed to the index store."""

    unique_id: str
    location_id: str
    content_hash: str
    file_size: int
    last_modified: int
    language: str
    content: str
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Facet:
    display_name: str
    count: int
    drilldown_url: str


@dataclass(slots=True)
class FacetDimension:
    label: str
    facets: List[Facet]


@dataclass(slots=True)
class QueryResultDocument:
    position: int
    file_name: str
    highlight_text: str
    last_modified: int
    normalized_score: int
    path: str
    preview_available: bool
    similar_file_names: List[str] = field(default_factory=list)


@dataclass(slots=True)
class QueryResult:
    duration_millis: int
    documents: List[QueryResultDocument]
    facets: List[FacetDimension]
    total_index_size: int
    backlink: str


@dataclass(frozen=True, slots=True)
class Suggestion:
    label: str
    value: str
