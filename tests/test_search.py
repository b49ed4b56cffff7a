"""Tests for Searcher."""

from unittest.mock import Mock

import pytest

from desksearch.config import AppConfig
from desksearch.errors import QueryError
from desksearch.index.memory import InMemoryIndexStore
from desksearch.index.search import Searcher, join_highlights, normalize_score
from desksearch.index.store import Match, SearchResponse
from desksearch.models import IndexDocument


def make_document(path, content, **attributes):
    return IndexDocument(
        unique_id=str(path),
        location_id=str(path.parent),
        content_hash="hash",
        file_size=len(content),
        last_modified=1000,
        language="en",
        content=content,
        attributes=dict(attributes),
    )


@pytest.fixture
def preview():
    mock = Mock()
    mock.is_preview_available.return_value = True
    return mock


@pytest.fixture
def config(tmp_path):
    return AppConfig(db_path=tmp_path / "index.db")


@pytest.fixture
def files(tmp_path):
    """Three files on disk, indexed in an in-memory store."""
    store = InMemoryIndexStore()
    paths = {}
    for name, content, author in [
        ("a.txt", "the annual budget report", "Jane"),
        ("b.txt", "budget budget budget plan", "John Doe"),
        ("c.txt", "holiday pictures", None),
    ]:
        path = tmp_path / name
        path.write_text(content)
        attributes = {"attr_author": author} if author else {}
        store.upsert(make_document(path, content, **attributes))
        paths[name] = path
    return store, paths


class TestNormalizeScore:
    """Test score normalization."""

    def test_relative_to_max(self):
        assert [normalize_score(score, 10) for score in (10, 5, 2)] == [5, 2, 1]
        assert normalize_score(1.9, 10) == 0

    def test_zero_max_score(self):
        assert normalize_score(0, 0) == 0
        assert normalize_score(3, 0) == 0

    def test_clamped(self):
        assert normalize_score(20, 10) == 5
        assert normalize_score(-1, 10) == 0


class TestJoinHighlights:
    """Test highlight joining."""

    def test_join_and_trim(self):
        assert join_highlights([" first ", "second "]) == "first ... second"

    def test_empty(self):
        assert join_highlights([]) == ""


class TestBuildRequest:
    """Test request construction."""

    def test_defaults(self, files, preview, config):
        store, _ = files
        request = Searcher(store, preview, config).build_request("budget", config)

        assert request.rows == 50
        assert request.highlight_field == "content"
        assert request.highlight_snippets == 5
        assert request.highlight_fragment_size == 100
        assert request.facet_fields == [
            "language",
            "attr_author",
            "attr_last-modified-year",
            "attr_extension",
        ]
        assert request.filters == []
        assert request.similar_count == 0

    def test_drilldown_values_escaped(self, files, preview, config):
        store, _ = files
        request = Searcher(store, preview, config).build_request(
            "budget", config, {"attr_author": "John Doe OR x"}
        )

        assert request.filters == ["attr_author:John\\ Doe\\ OR\\ x"]

    def test_similar_enabled(self, files, preview, tmp_path):
        store, _ = files
        config = AppConfig(db_path=tmp_path / "i.db", show_similar_documents=True)

        request = Searcher(store, preview, config).build_request("budget", config)

        assert request.similar_field == "content"
        assert request.similar_count == 5


class TestPerformQuery:
    """Test query execution and result assembly."""

    def test_ranked_documents(self, files, preview, config):
        store, paths = files
        result = Searcher(store, preview, config).perform_query("budget", "/search/budget", "/search/budget")

        assert [d.file_name for d in result.documents] == [str(paths["b.txt"]), str(paths["a.txt"])]
        assert [d.normalized_score for d in result.documents] == [5, 1]
        assert [d.position for d in result.documents] == [0, 1]
        assert result.documents[1].highlight_text == "the annual <em>budget</em> report"
        assert result.documents[0].last_modified == 1000
        assert result.documents[0].preview_available is True
        assert result.total_index_size == 3
        assert result.backlink == "/search/budget"
        assert result.duration_millis >= 0

    def test_facets(self, files, preview, config):
        store, _ = files
        result = Searcher(store, preview, config).perform_query("budget", "/s", "/s")

        dimensions = {dimension.label: dimension for dimension in result.facets}
        assert set(dimensions) == {"Language", "Author"}
        language = dimensions["Language"].facets[0]
        assert (language.display_name, language.count, language.drilldown_url) == (
            "English",
            2,
            "/s/language%3Den",
        )
        authors = [(f.display_name, f.drilldown_url) for f in dimensions["Author"].facets]
        assert authors == [("Jane", "/s/attr_author%3DJane"), ("John Doe", "/s/attr_author%3DJohn%20Doe")]

    def test_drilldown_filters(self, files, preview, config):
        store, paths = files
        result = Searcher(store, preview, config).perform_query(
            "budget", "/s", "/s", drilldown={"attr_author": "John Doe"}
        )

        assert [d.file_name for d in result.documents] == [str(paths["b.txt"])]
        assert result.total_index_size == 3

    def test_missing_file_removed_from_index(self, files, preview, config):
        store, paths = files
        paths["a.txt"].unlink()
        watched = Mock(wraps=store)

        result = Searcher(watched, preview, config).perform_query("budget", "/s", "/s")

        assert [d.file_name for d in result.documents] == [str(paths["b.txt"])]
        watched.delete.assert_called_once_with(str(paths["a.txt"]))
        assert store.get(str(paths["a.txt"])) is None
        assert result.total_index_size == 2

    def test_missing_highlight_logged(self, files, preview, config, caplog):
        store, paths = files
        with caplog.at_level("WARNING"):
            result = Searcher(store, preview, config).perform_query("attr_author:Jane", "/s", "/s")

        assert result.documents[0].highlight_text == ""
        assert "No highlighting for" in caplog.text

    def test_preview_flag(self, files, preview, config):
        store, paths = files
        preview.is_preview_available.return_value = False

        result = Searcher(store, preview, config).perform_query("holiday", "/s", "/s")

        assert result.documents[0].preview_available is False
        preview.is_preview_available.assert_called_once_with(paths["c.txt"])

    def test_similar_documents_attached(self, files, preview, tmp_path):
        store, paths = files
        config = AppConfig(db_path=tmp_path / "i.db", show_similar_documents=True)

        result = Searcher(store, preview, config).perform_query("annual", "/s", "/s")

        assert result.documents[0].similar_file_names == [str(paths["b.txt"])]

    def test_similar_documents_ignored_when_disabled(self, preview, config, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("x")
        store = Mock()
        store.query.return_value = SearchResponse(
            matches=[Match(str(path), 2.0, {"lastModified": "5"})],
            total_matches=1,
            max_score=2.0,
            similar={str(path): ["/other.txt"]},
        )

        result = Searcher(store, preview, config).perform_query("x", "/s", "/s")

        assert result.documents[0].similar_file_names == []
        assert result.documents[0].normalized_score == 5

    def test_zero_max_score(self, preview, config, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("x")
        store = Mock()
        store.query.return_value = SearchResponse(
            matches=[Match(str(path), 0.0, {"lastModified": "5"})], total_matches=1, max_score=0.0
        )

        result = Searcher(store, preview, config).perform_query("x", "/s", "/s")

        assert result.documents[0].normalized_score == 0

    def test_store_failure_raises_query_error(self, preview, config):
        store = Mock()
        store.query.side_effect = RuntimeError("engine down")

        with pytest.raises(QueryError) as excinfo:
            Searcher(store, preview, config).perform_query("budget", "/s", "/s")

        assert excinfo.value.query == "budget"
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_config_override(self, files, preview, config, tmp_path):
        store, _ = files
        narrow = AppConfig(db_path=tmp_path / "i.db", number_of_search_results=1)

        result = Searcher(store, preview, config).perform_query("budget", "/s", "/s", narrow)

        assert len(result.documents) == 1
