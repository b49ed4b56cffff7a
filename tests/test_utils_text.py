"""Tests for text utility functions."""

from __future__ import annotations

from desksearch.utils.text import chunk_text, normalize_whitespace, strip_markup, strip_rtf


class TestChunkText:
    """Test chunk_text function."""

    def test_chunk_short_text(self) -> None:
        """Should return single chunk for short text."""
        chunks = list(chunk_text("Short text", max_chars=100, overlap=10))

        assert chunks == ["Short text"]

    def test_chunk_overlap(self) -> None:
        """Should create overlapping chunks no longer than max_chars."""
        text = "0123456789" * 20
        chunks = list(chunk_text(text, max_chars=100, overlap=20))

        assert len(chunks) >= 2
        assert all(len(chunk) <= 100 for chunk in chunks)
        assert chunks[0][-20:] == chunks[1][:20]

    def test_chunk_empty_text(self) -> None:
        assert list(chunk_text("", max_chars=100, overlap=10)) == []


class TestNormalizeWhitespace:
    """Test normalize_whitespace function."""

    def test_normalize_empty_lines(self) -> None:
        """Should skip empty lines and trim the rest."""
        lines = ["  Line 1  ", "", "  ", "Line 2", "\n", "Line 3"]

        assert normalize_whitespace(lines) == "Line 1\nLine 2\nLine 3"

    def test_normalize_all_empty(self) -> None:
        assert normalize_whitespace(["", "  ", "\t"]) == ""


class TestStripMarkup:
    """Test strip_markup function."""

    def test_drops_tags_scripts_and_entities(self) -> None:
        markup = (
            "<html><head><title>T</title><style>p {color: red}</style></head>"
            "<body><p>Fish &amp; chips</p>\n<script>alert('x')</script><p>Second</p></body></html>"
        )

        text = strip_markup(markup)

        assert "Fish & chips" in text
        assert "Second" in text
        assert "alert" not in text
        assert "color" not in text
        assert "<" not in text


class TestStripRtf:
    """Test strip_rtf function."""

    def test_keeps_visible_text_only(self) -> None:
        rtf = (
            r"{\rtf1\ansi{\fonttbl\f0\fswiss Helvetica;}{\colortbl;\red255\green0\blue0;}"
            r"\f0\pard Hello World\par Second line\par}"
        )

        assert strip_rtf(rtf) == "Hello World\nSecond line"

    def test_skips_ignorable_destinations(self) -> None:
        rtf = r"{\rtf1{\*\generator Writer;}Body text}"

        assert strip_rtf(rtf) == "Body text"
