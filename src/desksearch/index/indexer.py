"""Document indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from desksearch.errors import ExtractionFailure, IndexIOError
from desksearch.index.documents import build_document
from desksearch.index.fields import LAST_MODIFIED, UNIQUE_ID
from desksearch.index.querysyntax import field_clause
from desksearch.index.store import IndexStore, SearchRequest
from desksearch.ingestion.extractor import ContentExtractor
from desksearch.models import Content, UpdateCheckResult
from desksearch.utils.files import iter_document_paths, last_modified_millis

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def increment(self, status: str, path: Path) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(path)


class Indexer:
    """Coordinates extraction, staleness checks and index mutations."""

    def __init__(
        self,
        store: IndexStore,
        extractor: ContentExtractor,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.logger = logger or LOGGER

    def _stored_last_modified(self, file_name: str) -> int | None:
        request = SearchRequest(query=field_clause(UNIQUE_ID, file_name), rows=1)
        try:
            response = self.store.query(request)
        except Exception as exc:
            raise IndexIOError("lookup", file_name) from exc
        if not response.matches:
            return None
        return int(response.matches[0].fields[LAST_MODIFIED])

    def check_if_modified(self, file_name: str, last_modified: int) -> UpdateCheckResult:
        """Decide whether ``file_name`` has to be extracted and indexed again."""
        stored = self._stored_last_modified(file_name)
        if stored is None or stored != last_modified:
            return UpdateCheckResult.UPDATED
        return UpdateCheckResult.UNMODIFIED

    def add_to_index(self, location_id: str, content: Content) -> None:
        document = build_document(location_id, content)
        try:
            self.store.upsert(document)
        except Exception as exc:
            raise IndexIOError("upsert", content.file_name) from exc

    def remove_from_index(self, file_name: str) -> None:
        try:
            self.store.delete(file_name)
        except Exception as exc:
            raise IndexIOError("delete", file_name) from exc

    def index(self, paths: Sequence[Path]) -> IndexStats:
        """Index all supported documents found under the given paths.

        Each input path is used as the location id of the documents found
        below it.
        """
        stats = IndexStats()
        for root in paths:
            location_id = str(root.absolute())
            for path in iter_document_paths([root], self.extractor.supports):
                try:
                    self.logger.info("Processing: %s", path)
                    stats.increment(self._index_single(location_id, path.absolute()), path)
                except ExtractionFailure as exc:
                    self.logger.warning("Skipping %s: %s", path, exc.reason)
                    stats.increment("failed", path)
                except IndexIOError as exc:
                    self.logger.error("Failed to index %s: %s", path, exc)
                    stats.increment("failed", path)

        if not stats.processed_files:
            self.logger.warning("No supported documents found")
        return stats

    def _index_single(self, location_id: str, path: Path) -> str:
        file_name = str(path)
        last_modified = last_modified_millis(path)
        stored = self._stored_last_modified(file_name)
        if stored == last_modified:
            return "skipped"

        content = self.extractor.extract(path, path.stat().st_size, last_modified)
        self.add_to_index(location_id, content)
        return "inserted" if stored is None else "updated"
