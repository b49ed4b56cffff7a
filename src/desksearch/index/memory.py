"""In-memory index store used by tests and small throwaway indexes."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Dict, List

from desksearch.index.fields import CONTENT
from desksearch.index.highlight import highlight
from desksearch.index.matching import (
    build_suggestions,
    count_sequence,
    document_fields,
    occurs_within,
    similarity,
)
from desksearch.index.querysyntax import Clause, ParsedQuery, parse_query, words
from desksearch.index.store import Match, SearchRequest, SearchResponse
from desksearch.models import IndexDocument


class InMemoryIndexStore:
    """Keeps documents in a dict keyed by unique id."""

    def __init__(self) -> None:
        self._documents: Dict[str, IndexDocument] = {}
        self._words: Dict[str, List[str]] = {}
        self._lock = threading.RLock()
        self.closed = False

    def __len__(self) -> int:
        return len(self._documents)

    def upsert(self, document: IndexDocument) -> None:
        with self._lock:
            self._documents[document.unique_id] = document
            self._words[document.unique_id] = words(document.content)

    def delete(self, unique_id: str) -> None:
        with self._lock:
            self._documents.pop(unique_id, None)
            self._words.pop(unique_id, None)

    def get(self, unique_id: str) -> IndexDocument | None:
        with self._lock:
            return self._documents.get(unique_id)

    def close(self) -> None:
        self.closed = True

    def _clause_matches(self, clause: Clause, document: IndexDocument) -> bool:
        if clause.matches_all:
            hit = True
        elif clause.is_content:
            if clause.wildcard:
                hit = bool(document.content)
            else:
                hit = count_sequence(self._words[document.unique_id], clause.words) > 0
        else:
            value = document_fields(document).get(clause.field or "")
            hit = value is not None if clause.wildcard else value == clause.text
        return hit != clause.negated

    def _matches(self, parsed: ParsedQuery, document: IndexDocument) -> bool:
        if not parsed.groups:
            return False
        return all(
            any(self._clause_matches(clause, document) for clause in group) for group in parsed.groups
        )

    def _score(self, parsed: ParsedQuery, document: IndexDocument) -> float:
        terms = parsed.content_terms()
        if not terms:
            return 1.0
        haystack = self._words[document.unique_id]
        return float(sum(count_sequence(haystack, term) for term in terms))

    def query(self, request: SearchRequest) -> SearchResponse:
        parsed = parse_query(request.query)
        filters = [parse_query(clause) for clause in request.filters]
        with self._lock:
            documents = list(self._documents.values())
            matched = [
                document
                for document in documents
                if self._matches(parsed, document) and all(self._matches(f, document) for f in filters)
            ]
            scored = sorted(
                ((self._score(parsed, document), document) for document in matched),
                key=lambda item: (-item[0], item[1].unique_id),
            )

            response = SearchResponse(total_matches=len(scored))
            if scored:
                response.max_score = scored[0][0]

            for field in request.facet_fields:
                counts = Counter(document_fields(d).get(field) for d in matched)
                values = {document_fields(d).get(field) for d in documents}
                response.facet_counts[field] = sorted(
                    ((value, counts[value]) for value in values if value is not None),
                    key=lambda item: (-item[1], item[0]),
                )

            terms = parsed.content_terms()
            for score, document in scored[: max(request.rows, 0)]:
                response.matches.append(Match(document.unique_id, score, document_fields(document)))
                if request.highlight_field == CONTENT:
                    fragments = highlight(
                        document.content,
                        terms,
                        snippets=request.highlight_snippets,
                        fragment_size=request.highlight_fragment_size,
                    )
                    response.highlights[document.unique_id] = {CONTENT: fragments} if fragments else {}
                if request.similar_field and request.similar_count > 0:
                    response.similar[document.unique_id] = self._similar(
                        document.unique_id, request.similar_count
                    )
        return response

    def _similar(self, unique_id: str, count: int) -> List[str]:
        source = self._words[unique_id]
        ranked = sorted(
            (
                (similarity(source, other), other_id)
                for other_id, other in self._words.items()
                if other_id != unique_id
            ),
            key=lambda item: (-item[0], item[1]),
        )
        return [other_id for score, other_id in ranked[:count] if score > 0]

    def suggest(
        self, term: str, slop: int, in_order: bool, max_count: int
    ) -> Dict[str, Dict[str, str]]:
        with self._lock:
            frequency: Counter = Counter()
            for document_words in self._words.values():
                frequency.update(set(document_words))
            candidates = [word for word, _ in sorted(frequency.items(), key=lambda i: (-i[1], i[0]))]

            def phrase_exists(phrase: List[str]) -> bool:
                return any(occurs_within(w, phrase, slop, in_order) for w in self._words.values())

            return build_suggestions(term, candidates, phrase_exists, max_count)
