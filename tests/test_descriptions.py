"""
Tests for SIC description resolution.
"""

from unittest.mock import MagicMock

from sqlalchemy.exc import SQLAlchemyError

from sicsync.descriptions import resolve_descriptions


class TestResolveDescriptions:
    """Test resolve_descriptions()."""

    def test_resolves_from_store(self, code_store):
        results = resolve_descriptions(["620", "62020"], code_store)

        assert results == [
            "Computer programming, consultancy and related activities",
            "Information technology consultancy activities",
        ]

    def test_codes_joined_with_or(self):
        store = MagicMock()
        store.search_by_keywords.return_value = ["a", "b"]

        resolve_descriptions(["620", "4791", "620"], store)

        store.search_by_keywords.assert_called_once_with("620 OR 4791")

    def test_empty_codes_skip_search(self):
        store = MagicMock()

        assert resolve_descriptions([], store) == []
        store.search_by_keywords.assert_not_called()

    def test_unknown_codes(self, code_store):
        assert resolve_descriptions(["9999", "1111"], code_store) == []

    def test_store_failure_returns_empty(self):
        store = MagicMock()
        store.search_by_keywords.side_effect = SQLAlchemyError("no such table: sic_codes")

        assert resolve_descriptions(["620", "4791"], store) == []

    def test_malformed_results_ignored(self):
        store = MagicMock()
        store.search_by_keywords.return_value = None

        assert resolve_descriptions(["620", "4791"], store) == []

    def test_blank_descriptions_dropped(self):
        store = MagicMock()
        store.search_by_keywords.return_value = ["Computer programming", "", None]

        assert resolve_descriptions(["620", "4791"], store) == ["Computer programming"]
