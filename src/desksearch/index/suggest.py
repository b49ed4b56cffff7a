"""Autosuggest on top of the index store."""

from __future__ import annotations

from typing import List

from desksearch.config import AppConfig
from desksearch.errors import QueryError
from desksearch.index.store import IndexStore
from desksearch.models import Suggestion


class Suggester:
    def __init__(self, store: IndexStore, config: AppConfig) -> None:
        self.store = store
        self.config = config

    def find_suggestion_terms_for(self, term: str) -> List[Suggestion]:
        try:
            response = self.store.suggest(
                term,
                self.config.suggestion_slop,
                self.config.suggestion_in_order,
                self.config.number_of_suggestions,
            )
            suggestions = []
            for position in range(len(response)):
                entry = response[str(position)]
                suggestions.append(Suggestion(label=entry["label"], value=entry["value"]))
        except Exception as exc:
            raise QueryError("suggest", term) from exc
        return suggestions
