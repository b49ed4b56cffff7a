"""Content extraction for the supported document formats.

PDF files are read with PyMuPDF (fitz), Word documents with python-docx and
PowerPoint decks with python-pptx. Plain text, HTML and RTF are decoded and
cleaned up. The legacy binary Office and Outlook formats only get a best-effort
scan for text runs.
"""

from __future__ import annotations

import io
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Protocol, Tuple

import docx
import fitz  # PyMuPDF
import pptx

from desksearch.errors import ExtractionFailure
from desksearch.index.fields import EXTENSION
from desksearch.ingestion.language import guess_language
from desksearch.models import Content, MetadataValue
from desksearch.utils.files import file_extension, is_supported
from desksearch.utils.text import normalize_whitespace, strip_markup, strip_rtf

LOGGER = logging.getLogger(__name__)

# Files below this size are read into memory before parsing
IN_MEMORY_LIMIT = 4 * 1024 * 1024

Metadata = List[Tuple[str, MetadataValue]]
Reader = Callable[[Path, Optional[bytes]], Tuple[str, Metadata]]

_PDF_DATE = re.compile(r"D:(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?")
_UTF16_RUN = re.compile(rb"(?:[\x20-\x7e]\x00){4,}")
_ASCII_RUN = re.compile(rb"[\x20-\x7e\t\r\n]{8,}")


class ContentExtractor(Protocol):
    """Converts a file into text plus metadata."""

    def supports(self, file_name: str) -> bool: ...

    def extract(self, path: Path, size: int, last_modified: int) -> Content: ...


def parse_pdf_date(value: str | None) -> datetime | None:
    """Parse a PDF date string such as ``D:20210305120000+01'00'`` (time zone ignored)."""
    if not value:
        return None
    match = _PDF_DATE.match(value)
    if not match:
        return None
    year, month, day, hour, minute, second = (int(part) if part else None for part in match.groups())
    try:
        return datetime(year, month or 1, day or 1, hour or 0, minute or 0, second or 0, tzinfo=timezone.utc)
    except ValueError:
        return None


def _source(path: Path, data: Optional[bytes]) -> str | BinaryIO:
    return io.BytesIO(data) if data is not None else str(path)


def _decode(path: Path, data: Optional[bytes], encoding: str = "utf-8") -> str:
    raw = data if data is not None else path.read_bytes()
    return raw.decode(encoding, errors="replace")


def read_pdf(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    doc = fitz.open(stream=data, filetype="pdf") if data is not None else fitz.open(path)
    try:
        pages = []
        for index in range(len(doc)):
            try:
                pages.append(doc[index].get_text() or "")
            except Exception as exc:  # pragma: no cover - damaged page
                LOGGER.warning("Failed to read page %s in %s: %s", index, path, exc)
        info = doc.metadata or {}
        metadata: Metadata = [
            (key, info.get(key) or "") for key in ("title", "author", "subject", "keywords", "creator", "producer")
        ]
        created = parse_pdf_date(info.get("creationDate"))
        if created is not None:
            metadata.append(("created", created))
        metadata.append(("page-count", str(len(doc))))
        return normalize_whitespace(pages), metadata
    finally:
        doc.close()


def read_docx(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    document = docx.Document(_source(path, data))
    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    core = document.core_properties
    metadata: Metadata = [
        ("title", core.title or ""),
        ("author", core.author or ""),
        ("subject", core.subject or ""),
        ("keywords", core.keywords or ""),
    ]
    if core.created is not None:
        metadata.append(("created", core.created))
    return normalize_whitespace(parts), metadata


def read_pptx(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    presentation = pptx.Presentation(_source(path, data))
    parts = []
    for slide in presentation.slides:
        for shape in slide.shapes:
            if getattr(shape, "has_text_frame", False):
                parts.append(shape.text_frame.text)
    core = presentation.core_properties
    metadata: Metadata = [
        ("title", core.title or ""),
        ("author", core.author or ""),
        ("subject", core.subject or ""),
        ("keywords", core.keywords or ""),
    ]
    if core.created is not None:
        metadata.append(("created", core.created))
    return normalize_whitespace(parts), metadata


def read_text(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    return _decode(path, data), []


def read_html(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    markup = _decode(path, data)
    title = re.search(r"(?is)<title[^>]*>(.*?)</title>", markup)
    metadata: Metadata = [("title", strip_markup(title.group(1)))] if title else []
    return strip_markup(markup), metadata


def read_rtf(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    return strip_rtf(_decode(path, data, "latin-1")), []


def read_binary_runs(path: Path, data: Optional[bytes]) -> Tuple[str, Metadata]:
    """Collect readable UTF-16 and ASCII runs from legacy binary formats."""
    raw = data if data is not None else path.read_bytes()
    runs = [match.group(0).decode("utf-16-le") for match in _UTF16_RUN.finditer(raw)]
    runs.extend(match.group(0).decode("ascii") for match in _ASCII_RUN.finditer(raw))
    return normalize_whitespace(runs), []


READERS: Dict[str, Reader] = {
    "pdf": read_pdf,
    "docx": read_docx,
    "pptx": read_pptx,
    "txt": read_text,
    "html": read_html,
    "rtf": read_rtf,
    "doc": read_binary_runs,
    "ppt": read_binary_runs,
    "msg": read_binary_runs,
}


class FileContentExtractor:
    """Extracts text and metadata from files on disk."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or LOGGER

    def supports(self, file_name: str) -> bool:
        return is_supported(file_name)

    def extract(self, path: Path, size: int, last_modified: int) -> Content:
        """Extract content from ``path``.

        Raises:
            ExtractionFailure: if the file type is unsupported or parsing fails.
        """
        extension = file_extension(path.name)
        if extension is None or not self.supports(path.name):
            raise ExtractionFailure(str(path), "unsupported file type")
        reader = READERS[extension.lower()]

        try:
            data = path.read_bytes() if size < IN_MEMORY_LIMIT else None
            text, metadata = reader(path, data)
        except Exception as exc:
            raise ExtractionFailure(str(path), str(exc)) from exc

        metadata.append((EXTENSION, extension))
        metadata.append(
            ("last-modified", datetime.fromtimestamp(last_modified / 1000, tz=timezone.utc))
        )
        self.logger.debug("Extracted %d characters from %s", len(text), path)
        return Content.create(
            file_name=str(path),
            text=text,
            file_size=size,
            last_modified=last_modified,
            language=guess_language(text),
            metadata=metadata,
        )
