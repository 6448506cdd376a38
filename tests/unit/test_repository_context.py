"""Tests for the repository context tracker."""

from __future__ import annotations

from componentarchive.core.repository_context import add_repository_context
from componentarchive.models.descriptor import RepositoryContext


class TestAddRepositoryContext:
    def test_appends_new(self):
        contexts = add_repository_context([], "ociRegistry", "a.example.com")
        contexts = add_repository_context(contexts, "ociRegistry", "b.example.com")
        assert [c.base_url for c in contexts] == ["a.example.com", "b.example.com"]

    def test_duplicate_by_value_not_added(self):
        contexts = add_repository_context([], "ociRegistry", "a.example.com")
        again = add_repository_context(contexts, "ociRegistry", "a.example.com")
        assert again == contexts

    def test_type_is_part_of_equality(self):
        contexts = add_repository_context([], "ociRegistry", "a.example.com")
        contexts = add_repository_context(contexts, "other", "a.example.com")
        assert len(contexts) == 2

    def test_order_preserved_and_input_untouched(self):
        original = [RepositoryContext(base_url="b"), RepositoryContext(base_url="a")]
        result = add_repository_context(original, base_url="c")
        assert [c.base_url for c in result] == ["b", "a", "c"]
        assert len(original) == 2
