"""Matching helpers shared by the index store adapters."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Dict, Iterable, List, Sequence

from desksearch.index.fields import (
    CONTENT_HASH,
    FILE_SIZE,
    LANGUAGE,
    LAST_MODIFIED,
    LOCATION_ID,
    UNIQUE_ID,
)
from desksearch.index.querysyntax import words
from desksearch.models import IndexDocument


def document_fields(document: IndexDocument) -> Dict[str, str]:
    """Stored (non-content) fields of a document as strings."""
    fields = {
        UNIQUE_ID: document.unique_id,
        LOCATION_ID: document.location_id,
        CONTENT_HASH: document.content_hash,
        FILE_SIZE: str(document.file_size),
        LAST_MODIFIED: str(document.last_modified),
        LANGUAGE: document.language,
    }
    fields.update(document.attributes)
    return fields


def count_sequence(haystack: Sequence[str], sequence: Sequence[str]) -> int:
    size = len(sequence)
    if not size:
        return 0
    target = list(sequence)
    return sum(
        1 for index in range(len(haystack) - size + 1) if list(haystack[index : index + size]) == target
    )


def occurs_within(haystack: Sequence[str], sequence: Sequence[str], slop: int, in_order: bool) -> bool:
    """True if all words of ``sequence`` occur with at most ``slop`` other words between them."""
    if not sequence:
        return False
    if in_order:
        for start, word in enumerate(haystack):
            if word != sequence[0]:
                continue
            position, gaps = start, 0
            for wanted in sequence[1:]:
                try:
                    found = haystack.index(wanted, position + 1)
                except ValueError:
                    return False
                gaps += found - position - 1
                position = found
                if gaps > slop:
                    break
            else:
                return True
        return False

    needed = Counter(sequence)
    window = len(sequence) + max(slop, 0)
    for start in range(max(len(haystack) - len(sequence) + 1, 1)):
        present = Counter(haystack[start : start + window])
        if all(present[word] >= count for word, count in needed.items()):
            return True
    return False


def build_suggestions(
    term: str,
    candidates: Iterable[str],
    phrase_exists: Callable[[List[str]], bool],
    max_count: int,
) -> Dict[str, Dict[str, str]]:
    """Complete the last word of ``term`` and keep completions whose phrase occurs.

    Returns a positional mapping ``{"0": {"label": ..., "value": ...}, ...}``.
    """
    typed = words(term)
    if not typed or max_count <= 0:
        return {}
    head, prefix = typed[:-1], typed[-1]

    suggestions: Dict[str, Dict[str, str]] = {}
    for candidate in candidates:
        if not candidate.startswith(prefix):
            continue
        phrase = head + [candidate]
        if head and not phrase_exists(phrase):
            continue
        label = " ".join(head + [f"{prefix}<b>{candidate[len(prefix):]}</b>"])
        suggestions[str(len(suggestions))] = {"label": label, "value": " ".join(phrase)}
        if len(suggestions) >= max_count:
            break
    return suggestions


def similarity(left: Iterable[str], right: Iterable[str]) -> float:
    """Jaccard similarity of two word collections."""
    a, b = set(left), set(right)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)
