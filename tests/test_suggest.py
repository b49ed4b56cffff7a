"""Tests for Suggester."""

from unittest.mock import Mock

import pytest

from desksearch.config import AppConfig
from desksearch.errors import QueryError
from desksearch.index.suggest import Suggester
from desksearch.models import Suggestion


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        db_path=tmp_path / "index.db",
        suggestion_slop=2,
        suggestion_in_order=False,
        number_of_suggestions=7,
    )


class TestSuggester:
    """Test find_suggestion_terms_for."""

    def test_positional_order_preserved(self, config):
        store = Mock()
        store.suggest.return_value = {
            "2": {"label": "c", "value": "cc"},
            "0": {"label": "a", "value": "aa"},
            "1": {"label": "b", "value": "bb"},
        }

        suggestions = Suggester(store, config).find_suggestion_terms_for("x")

        assert suggestions == [
            Suggestion("a", "aa"),
            Suggestion("b", "bb"),
            Suggestion("c", "cc"),
        ]

    def test_passes_configuration(self, config):
        store = Mock()
        store.suggest.return_value = {}

        assert Suggester(store, config).find_suggestion_terms_for("annual bu") == []
        store.suggest.assert_called_once_with("annual bu", 2, False, 7)

    def test_failure_raises_query_error(self, config):
        store = Mock()
        store.suggest.side_effect = RuntimeError("boom")

        with pytest.raises(QueryError) as excinfo:
            Suggester(store, config).find_suggestion_terms_for("bu")

        assert excinfo.value.operation == "suggest"

    def test_malformed_response_raises_query_error(self, config):
        store = Mock()
        store.suggest.return_value = {"1": {"label": "b", "value": "bb"}}

        with pytest.raises(QueryError):
            Suggester(store, config).find_suggestion_terms_for("bu")
