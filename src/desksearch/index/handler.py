"""Entry point bundling indexing, querying and suggestions over one store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from desksearch.config import AppConfig
from desksearch.embedding.encoder import EmbeddingConfig, EmbeddingModel
from desksearch.index.indexer import Indexer, IndexStats
from desksearch.index.search import Searcher
from desksearch.index.storage import SQLiteIndexStore
from desksearch.index.store import IndexStore
from desksearch.index.suggest import Suggester
from desksearch.ingestion.extractor import ContentExtractor, FileContentExtractor
from desksearch.models import Content, QueryResult, Suggestion, UpdateCheckResult
from desksearch.preview import PreviewProcessor, PreviewProvider

LOGGER = logging.getLogger(__name__)


class IndexHandler:
    """Owns the index store handle and hands it to the components sharing it.

    ``start()`` must complete before any other call and ``shutdown()`` must
    only be called once in-flight work has drained.
    """

    def __init__(
        self,
        store_factory: Callable[[], IndexStore],
        extractor: ContentExtractor,
        preview: PreviewProvider,
        config: AppConfig,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store_factory = store_factory
        self.extractor = extractor
        self.preview = preview
        self.config = config
        self.logger = logger or LOGGER
        self.store: IndexStore | None = None
        self.indexer: Indexer | None = None
        self.searcher: Searcher | None = None
        self.suggester: Suggester | None = None

    def start(self) -> "IndexHandler":
        if self.store is not None:
            return self
        self.store = self.store_factory()
        self.indexer = Indexer(self.store, self.extractor, logger=self.logger)
        self.searcher = Searcher(self.store, self.preview, self.config, logger=self.logger)
        self.suggester = Suggester(self.store, self.config)
        return self

    def shutdown(self) -> None:
        if self.store is None:
            return
        try:
            self.store.close()
        except Exception as exc:
            self.logger.error("Error while closing the index store: %s", exc)
        finally:
            self.store = self.indexer = self.searcher = self.suggester = None

    def __enter__(self) -> "IndexHandler":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _started(self) -> Tuple[Indexer, Searcher, Suggester]:
        if self.indexer is None or self.searcher is None or self.suggester is None:
            raise RuntimeError("IndexHandler has not been started")
        return self.indexer, self.searcher, self.suggester

    def add_to_index(self, location_id: str, content: Content) -> None:
        self._started()[0].add_to_index(location_id, content)

    def remove_from_index(self, file_name: str) -> None:
        self._started()[0].remove_from_index(file_name)

    def check_if_modified(self, file_name: str, last_modified: int) -> UpdateCheckResult:
        return self._started()[0].check_if_modified(file_name, last_modified)

    def perform_query(
        self,
        query: str,
        backlink: str,
        base_path: str,
        config: AppConfig | None = None,
        drilldown: Optional[Mapping[str, str]] = None,
    ) -> QueryResult:
        return self._started()[1].perform_query(query, backlink, base_path, config, drilldown)

    def find_suggestion_terms_for(self, term: str) -> List[Suggestion]:
        return self._started()[2].find_suggestion_terms_for(term)

    def index(self, paths: Sequence[Path]) -> IndexStats:
        return self._started()[0].index(paths)


def create_handler(db_path: Path, config: AppConfig, *, embed: bool = False) -> IndexHandler:
    """Handler over the SQLite store at ``db_path`` with the file extractor and previews.

    Pass ``embed=True`` when the handler will index documents. The embedding
    model is then loaded if similar documents are enabled, so that new and
    updated documents get a vector. Queries read the stored vectors and never
    need the model.
    """

    def open_store() -> IndexStore:
        embedder = None
        if embed and config.show_similar_documents:
            embedder = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
        return SQLiteIndexStore(db_path, embedder=embedder)

    return IndexHandler(open_store, FileContentExtractor(), PreviewProcessor(), config)
