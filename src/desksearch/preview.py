"""Thumbnail previews of indexed documents."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import fitz  # PyMuPDF

# Formats PyMuPDF can render as pages
PREVIEW_EXTENSIONS = frozenset({".pdf", ".txt", ".html"})


class PreviewProvider(Protocol):
    def is_preview_available(self, path: Path) -> bool: ...


class PreviewProcessor:
    """Renders the first page of a document as a PNG image."""

    def __init__(self, *, zoom: float = 0.5) -> None:
        self.zoom = zoom

    def is_preview_available(self, path: Path) -> bool:
        return path.suffix.lower() in PREVIEW_EXTENSIONS and path.is_file()

    def render(self, path: Path) -> bytes:
        """Return PNG bytes of the first page.

        Raises:
            ValueError: if no preview can be produced for ``path``.
        """
        if not self.is_preview_available(path):
            raise ValueError(f"No preview available for {path}")
        doc = fitz.open(path)
        try:
            if len(doc) == 0:
                raise ValueError(f"{path} has no pages")
            pixmap = doc[0].get_pixmap(matrix=fitz.Matrix(self.zoom, self.zoom))
            return pixmap.tobytes("png")
        finally:
            doc.close()
