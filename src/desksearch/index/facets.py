"""Turn raw facet counts into drill-down dimensions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple
from urllib.parse import quote

from desksearch.index.fields import EXTENSION, LANGUAGE, attribute
from desksearch.index.store import SearchResponse
from desksearch.models import Facet, FacetDimension, SupportedLanguage

_SEPARATOR = "="


def encode_drilldown(field: str, value: str) -> str:
    return f"{field}{_SEPARATOR}{value}"


def decode_drilldown(segment: str) -> Tuple[str, str]:
    """Inverse of :func:`encode_drilldown` for an already percent-decoded segment."""
    field, separator, value = segment.partition(_SEPARATOR)
    if not separator or not field:
        raise ValueError(f"Not a drilldown segment: {segment!r}")
    return field, value


def drilldown_url(base_path: str, field: str, value: str) -> str:
    return base_path + "/" + quote(encode_drilldown(field, value), safe="")


def parse_drilldown(segments: Sequence[str]) -> Dict[str, str]:
    return dict(decode_drilldown(segment) for segment in segments if segment)


@dataclass(frozen=True, slots=True)
class FacetSpec:
    field: str
    label: str
    converter: Callable[[str], str] = str


FACETS: Tuple[FacetSpec, ...] = (
    FacetSpec(LANGUAGE, "Language", SupportedLanguage.display_name_for),
    FacetSpec(attribute("author"), "Author"),
    FacetSpec(attribute("last-modified-year"), "Last modified"),
    FacetSpec(attribute(EXTENSION), "File type"),
)


class FacetAssembler:
    def __init__(self, specs: Sequence[FacetSpec] = FACETS) -> None:
        self.specs = tuple(specs)

    @property
    def fields(self) -> List[str]:
        return [spec.field for spec in self.specs]

    def build(self, response: SearchResponse, base_path: str) -> List[FacetDimension]:
        dimensions: List[FacetDimension] = []
        for spec in self.specs:
            counts = response.facet_counts.get(spec.field)
            if counts is None:
                continue
            facets = [
                Facet(spec.converter(value.strip()), count, drilldown_url(base_path, spec.field, value))
                for value, count in counts
                if count > 0 and value.strip()
            ]
            if facets:
                dimensions.append(FacetDimension(spec.label, facets))
        return dimensions
