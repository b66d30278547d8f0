"""
Unit tests for NameResolver.

Covers exact matching, numeric ID fallback, duplicate removal and the
three fuzzy suggestion tiers.
"""

import pytest

from exceptions import ContextNotInitializedError
from models.catalog import Dimension
from services.lookup_tables import ResolutionContext
from services.name_resolver import NameResolver, similarity


# ===================
# SIMILARITY
# ===================

class TestSimilarity:

    def test_identical(self):
        assert similarity("kitchen", "kitchen") == 1.0

    def test_transposition_costs_two_edits(self):
        assert similarity("ktichen", "kitchen") == pytest.approx(1 - 2 / 7)

    def test_completely_different(self):
        assert similarity("zzz", "bar") == 0.0

    def test_empty_strings(self):
        assert similarity("", "") == 1.0


# ===================
# RESOLUTION
# ===================

class TestResolve:

    def test_exact_match_case_insensitive(self, resolver):
        result = resolver.resolve("  kitchen ", Dimension.DEPARTMENTS)
        assert result.ids == [1]
        assert result.errors == []
        assert result.warnings == []

    def test_multiple_names(self, resolver):
        result = resolver.resolve("Kitchen, Bar,Front of House", Dimension.DEPARTMENTS)
        assert result.ids == [1, 2, 3]
        assert result.ok

    def test_duplicate_removed_with_warning(self, resolver):
        result = resolver.resolve("Kitchen, kitchen", Dimension.DEPARTMENTS)
        assert result.ids == [1]
        assert result.warnings == ['Duplicate entry "kitchen" removed']
        assert result.ok

    def test_numeric_id_accepted_with_warning(self, resolver):
        result = resolver.resolve("2", Dimension.DEPARTMENTS)
        assert result.ids == [2]
        assert result.warnings == ['Using numeric ID 2 for "2"']

    def test_unknown_numeric_id_is_error(self, resolver):
        result = resolver.resolve("77", Dimension.DEPARTMENTS)
        assert result.ids == []
        assert len(result.errors) == 1

    def test_close_misspelling_suggests_single_name(self, resolver):
        result = resolver.resolve("Ktichen", Dimension.DEPARTMENTS)
        assert result.ids == []
        assert result.errors == ['"Ktichen" not found. Did you mean "Kitchen"?']
        assert result.suggestions == ["Kitchen"]

    def test_weaker_match_lists_possibilities(self, resolver):
        result = resolver.resolve("Kit", Dimension.DEPARTMENTS)
        assert result.errors == ['"Kit" not found. Possible matches: Kitchen']
        assert result.suggestions == []

    def test_no_match(self, resolver):
        result = resolver.resolve("Zzz", Dimension.DEPARTMENTS)
        assert result.errors == ['"Zzz" not found in available departments']
        assert result.suggestions == []

    def test_partial_success_keeps_resolved_ids(self, resolver):
        result = resolver.resolve("Kitchen, Ktichen, Bar", Dimension.DEPARTMENTS)
        assert result.ids == [1, 2]
        assert len(result.errors) == 1

    def test_empty_input(self, resolver):
        for text in (None, "", " , ,"):
            result = resolver.resolve(text, Dimension.DEPARTMENTS)
            assert result.ids == []
            assert result.errors == []

    def test_employee_type_is_not_split(self, resolver):
        result = resolver.resolve("Full-time, Part-time", Dimension.EMPLOYEE_TYPES)
        assert result.ids == []
        assert len(result.errors) == 1

    def test_employee_type_single_value(self, resolver):
        assert resolver.resolve_ids("part time", Dimension.EMPLOYEE_TYPES) == []
        assert resolver.resolve_ids("Part-time", Dimension.EMPLOYEE_TYPES) == [21]

    def test_non_ascii_digit_is_not_an_id(self, resolver):
        result = resolver.resolve("Kitchen, ²", Dimension.DEPARTMENTS)
        assert result.ids == [1]
        assert result.errors == ['"²" not found in available departments']

    def test_list_of_names(self, resolver):
        result = resolver.resolve(["Kitchen", "Bar"], Dimension.DEPARTMENTS)
        assert result.ids == [1, 2]
        assert result.ok

    def test_list_of_ids(self, resolver):
        result = resolver.resolve([1, 3], Dimension.DEPARTMENTS)
        assert result.ids == [1, 3]
        assert result.warnings == ['Using numeric ID 1 for "1"', 'Using numeric ID 3 for "3"']

    def test_employee_type_as_list(self, resolver):
        assert resolver.resolve_ids(["Full-time"], Dimension.EMPLOYEE_TYPES) == [20]

    def test_same_input_same_result(self, resolver):
        text = "Kitchen, Ktichen, kitchen, Kit, 2, Zzz"
        first = resolver.resolve(text, Dimension.DEPARTMENTS)
        second = resolver.resolve(text, Dimension.DEPARTMENTS)
        assert first.model_dump() == second.model_dump()
        assert first.model_dump_json() == second.model_dump_json()

    def test_uninitialized_context_raises(self, test_settings):
        resolver = NameResolver(ResolutionContext(), test_settings)
        with pytest.raises(ContextNotInitializedError):
            resolver.resolve("Kitchen", Dimension.DEPARTMENTS)


class TestRankMatches:

    def test_best_first(self, resolver):
        ranked = resolver.rank_matches("Bartendr", Dimension.EMPLOYEE_GROUPS)
        assert ranked[0].name == "Bartender"
        assert ranked[0].confidence > ranked[1].confidence

    def test_best_match_empty_table(self, test_settings):
        ctx = ResolutionContext()
        ctx.initialize([], [])
        resolver = NameResolver(ctx, test_settings)
        assert resolver.best_match("anything", Dimension.DEPARTMENTS) is None
