"""Text helpers including simple overlapping chunking."""

from __future__ import annotations

import html
import re
from typing import Iterable, Iterator

_TAG = re.compile(r"<[^>]+>")
_RTF_CONTROL = re.compile(r"\\'[0-9a-fA-F]{2}|\\[a-zA-Z]+-?\d* ?|[{}]|\\[^a-zA-Z]")
_RTF_PARAGRAPH = re.compile(r"\\(?:par|line)\b ?")
# Groups holding fonts, colours, styles and document info rather than text
_RTF_DESTINATION = re.compile(r"\\(?:\*|fonttbl|colortbl|stylesheet|info|pict)")


def chunk_text(text: str, *, max_chars: int = 1200, overlap: int = 200) -> Iterator[str]:
    """Split text into overlapping character chunks."""
    if not text:
        return iter(())

    step = max(max_chars - overlap, 1)
    for start in range(0, len(text), step):
        yield text[start : start + max_chars]


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())


def strip_markup(markup: str) -> str:
    """Drop tags, scripts and styles from an HTML document."""
    markup = re.sub(r"(?is)<(script|style)\b.*?</\1>", " ", markup)
    text = html.unescape(_TAG.sub(" ", markup))
    return normalize_whitespace(text.splitlines())


def _skip_destinations(rtf: str) -> str:
    kept = []
    depth = 0
    skip_depth = 0
    i = 0
    while i < len(rtf):
        char = rtf[i]
        if char == "\\" and i + 1 < len(rtf) and rtf[i + 1] in "{}\\":
            if not skip_depth:
                kept.append(rtf[i : i + 2])
            i += 2
            continue
        if char == "{":
            depth += 1
            if not skip_depth and _RTF_DESTINATION.match(rtf, i + 1):
                skip_depth = depth
        elif char == "}":
            if skip_depth == depth:
                skip_depth = 0
                depth -= 1
                i += 1
                continue
            depth -= 1
        if not skip_depth:
            kept.append(char)
        i += 1
    return "".join(kept)


def strip_rtf(rtf: str) -> str:
    """Remove RTF control words and groups, keeping the visible text."""
    body = _RTF_PARAGRAPH.sub("\n", _skip_destinations(rtf))
    return normalize_whitespace(_RTF_CONTROL.sub("", body).splitlines())
