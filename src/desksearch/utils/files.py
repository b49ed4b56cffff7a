"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Callable, Iterable, Iterator

SUPPORTED_EXTENSIONS = frozenset({"txt", "msg", "pdf", "doc", "docx", "ppt", "pptx", "rtf", "html"})


def file_extension(file_name: str) -> str | None:
    """Return the text after the final dot of a file name, or None.

    A single leading dot marks a hidden file such as ``.txt``, not an extension.
    """
    position = file_name.rfind(".")
    if position <= 0:
        return None
    return file_name[position + 1 :]


def is_supported(file_name: str) -> bool:
    extension = file_extension(file_name)
    return extension is not None and extension.lower() in SUPPORTED_EXTENSIONS


def iter_document_paths(
    inputs: Iterable[Path], supports: Callable[[str], bool] = is_supported
) -> Iterator[Path]:
    """Yield supported document paths from input paths, descending into directories."""
    for item in inputs:
        if item.is_dir():
            yield from iter_document_paths(
                sorted(child for child in item.rglob("*") if child.is_file()), supports
            )
        elif item.is_file() and supports(item.name):
            yield item


def content_digest(text: str) -> str:
    """MD5 hex digest of extracted text, used to spot identical content."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def last_modified_millis(path: Path) -> int:
    return int(path.stat().st_mtime * 1000)
