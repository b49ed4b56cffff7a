"""Tests for Indexer."""

import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

from desksearch.errors import ExtractionFailure, IndexIOError
from desksearch.index.indexer import Indexer, IndexStats
from desksearch.index.memory import InMemoryIndexStore
from desksearch.models import Content, SupportedLanguage, UpdateCheckResult
from desksearch.utils.files import is_supported


def fake_extract(path, size, last_modified):
    return Content.create(
        str(path),
        path.read_text(),
        size,
        last_modified,
        SupportedLanguage.en,
        [("author", "Jane"), ("extension", path.suffix.lstrip("."))],
    )


@pytest.fixture
def extractor():
    mock = Mock()
    mock.supports.side_effect = is_supported
    mock.extract.side_effect = fake_extract
    return mock


@pytest.fixture
def store():
    return InMemoryIndexStore()


class TestIndexStats:
    """Test IndexStats tracking."""

    def test_init_defaults(self):
        stats = IndexStats()
        assert stats.inserted == 0
        assert stats.updated == 0
        assert stats.skipped == 0
        assert stats.failed == 0
        assert stats.processed_files == []

    @pytest.mark.parametrize("status", ["inserted", "updated", "skipped", "failed"])
    def test_increment(self, status):
        stats = IndexStats()
        path = Path("/tmp/test.pdf")

        stats.increment(status, path)

        assert getattr(stats, status) == 1
        assert path in stats.processed_files

    def test_unknown_status_counts_as_failed(self):
        stats = IndexStats()

        stats.increment("bogus", Path("/tmp/test.pdf"))

        assert stats.failed == 1


class TestCheckIfModified:
    """Test staleness decisions."""

    def test_unknown_file_is_updated(self, store, extractor):
        indexer = Indexer(store, extractor)

        assert indexer.check_if_modified("/docs/new.txt", 1000) is UpdateCheckResult.UPDATED

    def test_same_timestamp_is_unmodified(self, store, extractor):
        indexer = Indexer(store, extractor)
        indexer.add_to_index("/docs", Content.create("/docs/a.txt", "text", 4, 1000))

        assert indexer.check_if_modified("/docs/a.txt", 1000) is UpdateCheckResult.UNMODIFIED
        assert indexer.check_if_modified("/docs/a.txt", 1000) is UpdateCheckResult.UNMODIFIED
        assert indexer.check_if_modified("/docs/a.txt", 999) is UpdateCheckResult.UPDATED
        assert indexer.check_if_modified("/docs/a.txt", 2000) is UpdateCheckResult.UPDATED

    def test_reserved_characters_in_file_name(self, store, extractor):
        name = "/docs/odd name (1) [draft]: \"v2\".txt"
        indexer = Indexer(store, extractor)
        indexer.add_to_index("/docs", Content.create(name, "text", 4, 1000))

        assert indexer.check_if_modified(name, 1000) is UpdateCheckResult.UNMODIFIED
        assert indexer.check_if_modified("/docs/odd name", 1000) is UpdateCheckResult.UPDATED

    def test_lookup_failure_raises_index_error(self, extractor):
        broken = Mock()
        broken.query.side_effect = RuntimeError("disk gone")
        indexer = Indexer(broken, extractor)

        with pytest.raises(IndexIOError) as excinfo:
            indexer.check_if_modified("/docs/a.txt", 1000)

        assert excinfo.value.operation == "lookup"
        assert isinstance(excinfo.value.__cause__, RuntimeError)


class TestAddRemove:
    """Test index mutations."""

    def test_add_builds_document(self, store, extractor):
        indexer = Indexer(store, extractor)
        created = datetime(2021, 3, 4, 23, 30, tzinfo=timezone.utc)
        content = Content.create(
            "/docs/a.txt",
            "hello",
            5,
            1000,
            SupportedLanguage.de,
            [("Author", "Jane"), ("Created", created), ("empty", " ")],
        )

        indexer.add_to_index("/docs", content)

        document = store.get("/docs/a.txt")
        assert document.location_id == "/docs"
        assert document.language == "de"
        assert document.content_hash == "5d41402abc4b2a76b9719d911017c592"
        assert document.attributes == {
            "attr_author": "Jane",
            "attr_created-year": "2021",
            "attr_created-year-month": "2021/03",
            "attr_created-year-month-day": "2021/03/04",
        }

    def test_add_same_file_twice_replaces(self, store, extractor):
        indexer = Indexer(store, extractor)
        indexer.add_to_index("/docs", Content.create("/docs/a.txt", "old", 3, 1000))
        indexer.add_to_index("/docs", Content.create("/docs/a.txt", "new", 3, 2000))

        assert len(store) == 1
        assert store.get("/docs/a.txt").content == "new"

    def test_remove(self, store, extractor):
        indexer = Indexer(store, extractor)
        indexer.add_to_index("/docs", Content.create("/docs/a.txt", "text", 4, 1000))

        indexer.remove_from_index("/docs/a.txt")
        indexer.remove_from_index("/docs/a.txt")

        assert store.get("/docs/a.txt") is None

    def test_store_failures_wrapped(self, extractor):
        broken = Mock()
        broken.upsert.side_effect = RuntimeError("boom")
        broken.delete.side_effect = RuntimeError("boom")
        indexer = Indexer(broken, extractor)

        with pytest.raises(IndexIOError, match="upsert"):
            indexer.add_to_index("/docs", Content.create("/docs/a.txt", "text", 4, 1000))
        with pytest.raises(IndexIOError, match="delete"):
            indexer.remove_from_index("/docs/a.txt")


class TestIndexDirectory:
    """Test crawling and indexing directories."""

    def test_index_new_files(self, tmp_path, store, extractor):
        (tmp_path / "a.txt").write_text("first document")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.html").write_text("second document")
        (tmp_path / "ignored.bin").write_text("binary")

        stats = Indexer(store, extractor).index([tmp_path])

        assert stats.inserted == 2
        assert stats.failed == 0
        assert len(store) == 2
        document = store.get(str((tmp_path / "a.txt").absolute()))
        assert document.location_id == str(tmp_path.absolute())
        assert document.attributes["attr_extension"] == "txt"

    def test_reindex_skips_unchanged_and_updates_touched(self, tmp_path, store, extractor):
        first = tmp_path / "a.txt"
        second = tmp_path / "b.txt"
        first.write_text("first")
        second.write_text("second")
        indexer = Indexer(store, extractor)
        indexer.index([tmp_path])
        extractor.extract.reset_mock()

        second.write_text("second, edited")
        stat = second.stat()
        os.utime(second, (stat.st_atime, stat.st_mtime + 10))
        stats = indexer.index([tmp_path])

        assert stats.skipped == 1
        assert stats.updated == 1
        assert extractor.extract.call_count == 1
        assert store.get(str(second.absolute())).content == "second, edited"

    def test_extraction_failure_counted(self, tmp_path, store, extractor):
        (tmp_path / "good.txt").write_text("fine")
        (tmp_path / "bad.txt").write_text("broken")

        def extract(path, size, last_modified):
            if path.name == "bad.txt":
                raise ExtractionFailure(str(path), "corrupt")
            return fake_extract(path, size, last_modified)

        extractor.extract.side_effect = extract

        stats = Indexer(store, extractor).index([tmp_path])

        assert stats.inserted == 1
        assert stats.failed == 1
        assert len(store) == 1

    def test_no_supported_documents(self, tmp_path, store, extractor, caplog):
        (tmp_path / "image.png").write_bytes(b"\x89PNG")

        with caplog.at_level("WARNING"):
            stats = Indexer(store, extractor).index([tmp_path])

        assert stats.processed_files == []
        assert "No supported documents found" in caplog.text
