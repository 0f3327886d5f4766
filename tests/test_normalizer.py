"""Tests for list normalization and the defaults policy."""

import pytest

from ledger_sync.models import TaxonomyKind
from ledger_sync.reconcile import DefaultsPolicy, normalize_string_list


class TestNormalizeStringList:
    """Tests for normalize_string_list."""

    @pytest.mark.parametrize(
        "raw",
        [None, 42, 3.5, True, False, "Food", b"bytes", object(), {1, 2}, [], {}],
    )
    def test_unusable_input_degrades_to_empty(self, raw):
        """Test that absent or scalar values give an empty list."""
        assert normalize_string_list(raw) == []

    def test_array_keeps_order(self):
        """Test ordered arrays keep their order."""
        assert normalize_string_list(["b", "a", "c"]) == ["b", "a", "c"]

    def test_array_drops_empty_and_non_strings(self):
        """Test junk elements are dropped silently."""
        raw = ["Food", "", None, 7, {"x": 1}, ["nested"], "Travel", False]
        assert normalize_string_list(raw) == ["Food", "Travel"]

    def test_keyed_object_uses_iteration_order(self):
        """Test the sparse-array encoding is read in store order."""
        assert normalize_string_list({"0": "Food", "2": "Travel"}) == ["Food", "Travel"]

    def test_keyed_object_drops_empty_strings(self):
        """Test empty values in a keyed object are dropped."""
        assert normalize_string_list({"a": "x", "b": ""}) == ["x"]

    def test_tuple_is_treated_as_sequence(self):
        assert normalize_string_list(("x", "y")) == ["x", "y"]

    def test_duplicates_pass_through(self):
        """Test duplicates are not removed by the core."""
        assert normalize_string_list(["Food", "Food"]) == ["Food", "Food"]

    @pytest.mark.parametrize(
        "raw",
        [
            ["a", 1, None, "", "b"],
            {"k": "v", "n": 0, "e": ""},
            [[], {}, "ok"],
        ],
    )
    def test_every_result_is_a_non_empty_string(self, raw):
        result = normalize_string_list(raw)
        assert all(isinstance(item, str) and item for item in result)


class TestDefaultsPolicy:
    """Tests for DefaultsPolicy."""

    def test_fallback_returns_defaults_for_empty(self, policy):
        """Test empty lists fall back to the configured defaults."""
        result = policy.fallback_if_empty([], TaxonomyKind.CATEGORIES)
        assert result == ["Groceries", "Housing", "Utilities", "Other"]

    def test_fallback_returns_a_copy(self, policy):
        """Test mutating the fallback leaves the defaults intact."""
        result = policy.fallback_if_empty([], TaxonomyKind.CATEGORIES)
        result.append("Mutated")
        result[0] = "Changed"
        assert policy.defaults_for(TaxonomyKind.CATEGORIES) == [
            "Groceries", "Housing", "Utilities", "Other"
        ]

    def test_fallback_keeps_non_empty_input(self, policy):
        values = ["Pets"]
        assert policy.fallback_if_empty(values, TaxonomyKind.SOURCE_TYPES) is values

    def test_defaults_are_not_removable(self, policy):
        for value in policy.defaults_for(TaxonomyKind.CATEGORIES):
            assert policy.is_removable(TaxonomyKind.CATEGORIES, value) is False
        for value in policy.defaults_for(TaxonomyKind.SOURCE_TYPES):
            assert policy.is_removable(TaxonomyKind.SOURCE_TYPES, value) is False

    def test_user_values_are_removable(self, policy):
        assert policy.is_removable(TaxonomyKind.CATEGORIES, "Travel") is True
        # Matching is exact and case-sensitive
        assert policy.is_removable(TaxonomyKind.CATEGORIES, "groceries") is True

    def test_removability_is_per_taxonomy(self, policy):
        """Test a default category is removable as a source type."""
        assert policy.is_removable(TaxonomyKind.SOURCE_TYPES, "Groceries") is True

    def test_entries_mark_removability(self, policy):
        entries = policy.entries(TaxonomyKind.CATEGORIES, ["Groceries", "Travel"])
        assert [(e.value, e.removable) for e in entries] == [
            ("Groceries", False),
            ("Travel", True),
        ]

    def test_input_sequences_are_copied(self):
        """Test the caller's list cannot change the defaults afterwards."""
        categories = ["A"]
        policy = DefaultsPolicy(categories, ["Cash"])
        categories.append("B")
        assert policy.defaults_for(TaxonomyKind.CATEGORIES) == ["A"]

    def test_from_settings(self, monkeypatch):
        """Test defaults are read from configuration."""
        from ledger_sync.config import SyncSettings

        monkeypatch.setenv("LEDGER_DEFAULT_CATEGORIES", "Rent, Food")
        monkeypatch.setenv("LEDGER_DEFAULT_SOURCE_TYPES", "Cash")
        policy = DefaultsPolicy.from_settings(SyncSettings())
        assert policy.defaults_for(TaxonomyKind.CATEGORIES) == ["Rent", "Food"]
        assert policy.defaults_for(TaxonomyKind.SOURCE_TYPES) == ["Cash"]
