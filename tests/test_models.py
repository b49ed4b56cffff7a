"""Tests for core data models."""

from __future__ import annotations

from datetime import datetime

import pytest

from desksearch.models import (
    Content,
    MetadataEntry,
    QueryResultDocument,
    SupportedLanguage,
    Suggestion,
)


class TestSupportedLanguage:
    """Test SupportedLanguage display names."""

    def test_display_name(self) -> None:
        assert SupportedLanguage.de.display_name == "German"
        assert SupportedLanguage.unknown.display_name == "Unknown"

    def test_display_name_for_code(self) -> None:
        assert SupportedLanguage.display_name_for("fr") == "French"
        assert SupportedLanguage.display_name_for("zz") == "zz"


class TestContent:
    """Test Content.create."""

    def test_metadata_keys_lower_cased(self) -> None:
        created = datetime(2021, 3, 5)
        content = Content.create(
            "/docs/a.pdf", "text", 4, 1000, metadata=[("Author", "Jane"), ("CREATED", created)]
        )

        assert content.metadata == (
            MetadataEntry("author", "Jane"),
            MetadataEntry("created", created),
        )
        assert content.language is SupportedLanguage.unknown

    def test_content_is_immutable(self) -> None:
        content = Content.create("/docs/a.pdf", "text", 4, 1000)

        with pytest.raises(AttributeError):
            content.text = "changed"  # type: ignore[misc]


class TestResultModels:
    """Test result value objects."""

    def test_similar_file_names_default_empty(self) -> None:
        first = QueryResultDocument(0, "/a", "", 1, 5, "/a", True)
        second = QueryResultDocument(1, "/b", "", 1, 5, "/b", True)

        first.similar_file_names.append("/c")

        assert second.similar_file_names == []

    def test_suggestion_equality(self) -> None:
        assert Suggestion("a<b>b</b>", "ab") == Suggestion("a<b>b</b>", "ab")
