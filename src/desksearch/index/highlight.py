"""Fragment highlighter shared by the index store adapters."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from desksearch.index.querysyntax import WORD_PATTERN

PRE_TAG = "<em>"
POST_TAG = "</em>"


def find_spans(text: str, terms: Sequence[Sequence[str]]) -> List[Tuple[int, int]]:
    """Character spans of every occurrence of the given word sequences, merged and sorted."""
    tokens = [(m.start(), m.end(), m.group(0).lower()) for m in WORD_PATTERN.finditer(text)]
    lowered = [token[2] for token in tokens]
    spans: List[Tuple[int, int]] = []
    for sequence in terms:
        size = len(sequence)
        if not size:
            continue
        for index in range(len(lowered) - size + 1):
            if lowered[index : index + size] == list(sequence):
                spans.append((tokens[index][0], tokens[index + size - 1][1]))

    spans.sort()
    merged: List[Tuple[int, int]] = []
    for start, end in spans:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
        else:
            merged.append((start, end))
    return merged


def _mark(text: str, start: int, end: int, spans: Sequence[Tuple[int, int]]) -> str:
    parts = []
    cursor = start
    for span_start, span_end in spans:
        parts.append(text[cursor:span_start])
        parts.append(PRE_TAG + text[span_start:span_end] + POST_TAG)
        cursor = span_end
    parts.append(text[cursor:end])
    return " ".join("".join(parts).split())


def highlight(
    text: str,
    terms: Sequence[Sequence[str]],
    *,
    snippets: int = 5,
    fragment_size: int = 100,
) -> List[str]:
    """Return up to ``snippets`` fragments of about ``fragment_size`` characters around hits."""
    spans = find_spans(text, terms)
    fragments: List[str] = []
    index = 0
    while index < len(spans) and len(fragments) < snippets:
        first_start, first_end = spans[index]
        padding = max(fragment_size - (first_end - first_start), 0) // 2
        start = max(first_start - padding, 0)
        # do not cut a word in half at the fragment start
        while start > 0 and not text[start - 1].isspace():
            start -= 1
            if first_start - start > padding + 20:
                break
        end = max(start + fragment_size, first_end)
        while end < len(text) and not text[end].isspace() and end - first_end < fragment_size:
            end += 1

        inside = []
        while index < len(spans) and spans[index][1] <= end:
            inside.append(spans[index])
            index += 1
        fragments.append(_mark(text, start, min(end, len(text)), inside))
    return fragments
