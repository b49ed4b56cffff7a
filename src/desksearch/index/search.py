"""Query construction, execution and result assembly."""

from __future__ import annotations

import logging
import math
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from desksearch.config import AppConfig
from desksearch.errors import QueryError
from desksearch.index.facets import FacetAssembler
from desksearch.index.fields import CONTENT, LAST_MODIFIED
from desksearch.index.querysyntax import field_clause
from desksearch.index.store import IndexStore, SearchRequest, SearchResponse
from desksearch.models import QueryResult, QueryResultDocument
from desksearch.preview import PreviewProvider

LOGGER = logging.getLogger(__name__)

NUMBER_OF_FRAGMENTS = 5
FRAGMENT_SIZE = 100
NUMBER_OF_SIMILAR_DOCUMENTS = 5
MAX_NORMALIZED_SCORE = 5
HIGHLIGHT_SEPARATOR = " ... "
MATCH_ALL = "*:*"


def normalize_score(score: float, max_score: float) -> int:
    """Map a raw score onto 0..5 relative to the best score of the result set."""
    if max_score <= 0:
        return 0
    normalized = math.floor(score / max_score * MAX_NORMALIZED_SCORE)
    return max(0, min(MAX_NORMALIZED_SCORE, normalized))


def join_highlights(spans: List[str]) -> str:
    return HIGHLIGHT_SEPARATOR.join(span.strip() for span in spans).strip()


class Searcher:
    """Runs queries against the index store and builds display-ready results.

    Matches whose file has disappeared from disk are deleted from the index
    and left out of the result.
    """

    def __init__(
        self,
        store: IndexStore,
        preview: PreviewProvider,
        config: AppConfig,
        *,
        facets: FacetAssembler | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.preview = preview
        self.config = config
        self.facets = facets or FacetAssembler()
        self.logger = logger or LOGGER

    def build_request(
        self,
        query: str,
        config: AppConfig,
        drilldown: Optional[Mapping[str, str]] = None,
    ) -> SearchRequest:
        request = SearchRequest(
            query=query,
            rows=config.number_of_search_results,
            facet_fields=self.facets.fields,
            highlight_field=CONTENT,
            highlight_snippets=NUMBER_OF_FRAGMENTS,
            highlight_fragment_size=FRAGMENT_SIZE,
        )
        for field, value in (drilldown or {}).items():
            request.filters.append(field_clause(field, value))
        if config.show_similar_documents:
            request.similar_field = CONTENT
            request.similar_count = NUMBER_OF_SIMILAR_DOCUMENTS
        return request

    def index_size(self) -> int:
        return self.store.query(SearchRequest(query=MATCH_ALL, rows=0)).total_matches

    def perform_query(
        self,
        query: str,
        backlink: str,
        base_path: str,
        config: AppConfig | None = None,
        drilldown: Optional[Mapping[str, str]] = None,
    ) -> QueryResult:
        config = config or self.config
        request = self.build_request(query, config, drilldown)

        try:
            started = time.perf_counter()
            response = self.store.query(request)
            duration = int((time.perf_counter() - started) * 1000)
            documents = self._assemble(response, config)
            total = self.index_size()
        except Exception as exc:
            raise QueryError("query", query) from exc

        return QueryResult(
            duration_millis=duration,
            documents=documents,
            facets=self.facets.build(response, base_path),
            total_index_size=total,
            backlink=backlink,
        )

    def _highlight(self, response: SearchResponse, unique_id: str) -> str:
        phrases: Dict[str, List[str]] | None = response.highlights.get(unique_id)
        spans = phrases.get(CONTENT) if phrases is not None else None
        if not spans:
            self.logger.warning("No highlighting for %s", unique_id)
            return ""
        return join_highlights(spans)

    def _assemble(self, response: SearchResponse, config: AppConfig) -> List[QueryResultDocument]:
        documents: List[QueryResultDocument] = []
        for position, match in enumerate(response.matches):
            file_name = match.unique_id
            last_modified = int(match.fields[LAST_MODIFIED])
            score = normalize_score(match.score, response.max_score)
            highlight = self._highlight(response, file_name)

            on_disk = Path(file_name)
            if not on_disk.exists():
                self.logger.info("Removing %s from the index, file no longer exists", file_name)
                self.store.delete(file_name)
                continue

            document = QueryResultDocument(
                position=position,
                file_name=file_name,
                highlight_text=highlight,
                last_modified=last_modified,
                normalized_score=score,
                path=file_name,
                preview_available=self.preview.is_preview_available(on_disk),
            )
            if config.show_similar_documents:
                document.similar_file_names.extend(response.similar.get(file_name, []))
            documents.append(document)
        return documents
