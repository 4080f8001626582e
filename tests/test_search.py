from datetime import datetime, timedelta

import pytest

from models import Item, ItemPriority, ItemStatus
from search import (
    FilterCriteria,
    SearchConfiguration,
    SearchEngine,
    SortOption,
    fuzzy_match,
)


def make_item(now, item_id, title, description="", tags=(), priority=ItemPriority.MEDIUM,
              status=ItemStatus.PENDING, created_offset=0, updated_offset=0, due_offset=None):
    return Item(
        id=item_id,
        title=title,
        description=description,
        status=status,
        priority=priority,
        created_at=now + timedelta(days=created_offset),
        updated_at=now + timedelta(days=updated_offset),
        tags=frozenset(tags),
        due_date=None if due_offset is None else now + timedelta(days=due_offset),
    )


def ids(items):
    return [item.id for item in items]


@pytest.fixture
def engine():
    return SearchEngine()


# ===========================================================================
# Search
# ===========================================================================

class TestSearch:

    def test_substring_in_title(self, engine, items):
        security, reports = items[1], items[0]
        result = engine.search("secur", [security, reports])
        assert result == [security]

    def test_short_query_returns_items_unchanged(self, engine, items):
        result = engine.search(" a ", items)
        assert result == items
        assert result is not items

    def test_input_is_not_mutated(self, engine, items):
        before = list(items)
        engine.search("update", items)
        assert items == before

    def test_exact_title_scores_all_title_bonuses(self, engine, now):
        item = make_item(now, "1", "Backup")
        assert engine.score(item, "backup") == 18.0

    def test_exact_title_outranks_partial_tag(self, engine, now):
        tagged = make_item(now, "tag", "Quarterly review", tags=["backups"])
        exact = make_item(now, "exact", "Backup")
        assert engine.score(tagged, "backup") == 3.0
        assert ids(engine.search("backup", [tagged, exact])) == ["exact", "tag"]

    def test_scoring_components_add_up(self, engine, now):
        item = make_item(
            now, "1", "Security review",
            description="Annual security audit",
            tags=["security", "audit-security"],
        )
        # title contains + prefix (13), description (5), two tags contain (6), one exact (2)
        assert engine.score(item, "security") == 26.0

    def test_tag_matching_is_case_insensitive(self, engine, now):
        item = make_item(now, "1", "Plan", tags=["Finance"])
        assert engine.score(item, "finance") == 5.0

    def test_fuzzy_fallback(self, engine, now):
        item = make_item(now, "1", "Review Q4 Reports")
        assert engine.score(item, "rpt") == 2.0
        assert ids(engine.search("rpt", [item])) == ["1"]

    def test_fuzzy_disabled(self, now):
        engine = SearchEngine(SearchConfiguration(enable_fuzzy_matching=False))
        item = make_item(now, "1", "Review Q4 Reports")
        assert engine.search("rpt", [item]) == []

    def test_fuzzy_never_adds_to_direct_matches(self, engine, now):
        item = make_item(now, "1", "Reports", description="rpt")
        assert engine.score(item, "rpt") == 5.0

    def test_ties_keep_input_order(self, engine, now):
        first = make_item(now, "a", "Alpha plan")
        second = make_item(now, "b", "Beta plan")
        third = make_item(now, "c", "Gamma plan")
        assert ids(engine.search("plan", [first, second, third])) == ["a", "b", "c"]
        assert ids(engine.search("plan", [third, first, second])) == ["c", "a", "b"]

    def test_results_are_capped(self, now):
        engine = SearchEngine(SearchConfiguration(max_results=2))
        many = [make_item(now, str(i), f"Task {i}") for i in range(5)]
        assert ids(engine.search("task", many)) == ["0", "1"]

    def test_min_query_length_is_configurable(self, now):
        engine = SearchEngine(SearchConfiguration(min_query_length=4))
        budget = make_item(now, "1", "Budget")
        other = make_item(now, "2", "Other")
        assert ids(engine.search("bud", [budget, other])) == ["1", "2"]
        assert ids(engine.search("budg", [budget, other])) == ["1"]

    def test_query_is_trimmed_and_lowercased(self, engine, items):
        assert ids(engine.search("  SECUR  ", items)) == ["item_preview_002"]


class TestFuzzyMatch:

    @pytest.mark.parametrize("text, query, expected", [
        ("review q4 reports", "rpt", True),
        ("review q4 reports", "rvw", True),
        ("review q4 reports", "tpr", False),
        ("abc", "abcd", False),
        ("aab", "ab", True),
    ])
    def test_subsequence(self, text, query, expected):
        assert fuzzy_match(text, query) is expected


# ===========================================================================
# Filter
# ===========================================================================

class TestFilter:

    def test_empty_criteria_keeps_everything(self, engine, items):
        criteria = FilterCriteria()
        assert criteria.is_empty
        assert engine.filter(items, criteria) == items

    def test_status(self, engine, items):
        result = engine.filter(items, FilterCriteria(status=ItemStatus.IN_PROGRESS))
        assert ids(result) == ["item_preview_001", "item_preview_004"]

    def test_priority(self, engine, items):
        result = engine.filter(items, FilterCriteria(priority=ItemPriority.URGENT))
        assert ids(result) == ["item_preview_002"]

    def test_tags_intersect_case_insensitively(self, engine, items):
        result = engine.filter(items, FilterCriteria(tags=("API", "HR")))
        assert ids(result) == ["item_preview_003", "item_preview_005"]

    def test_empty_tag_list_matches_everything(self, engine, items):
        assert engine.filter(items, FilterCriteria(tags=())) == items

    def test_date_bounds_are_inclusive(self, engine, items, now):
        created = items[3].created_at  # five days ago
        result = engine.filter(items, FilterCriteria(created_after=created, created_before=created))
        assert ids(result) == ["item_preview_004"]

    def test_created_after(self, engine, items, now):
        result = engine.filter(items, FilterCriteria(created_after=now - timedelta(days=4)))
        assert ids(result) == ["item_preview_001", "item_preview_005"]

    def test_naive_bounds_are_utc(self, engine, items):
        decoded = Item.from_dict(items[3].to_dict())
        naive = decoded.created_at.replace(tzinfo=None)

        criteria = FilterCriteria(created_after=naive, created_before=naive)

        assert criteria.created_after.tzinfo is not None
        assert ids(engine.filter([decoded], criteria)) == ["item_preview_004"]

    def test_naive_item_timestamp_against_aware_bound(self, engine, now):
        naive_item = make_item(now.replace(tzinfo=None), "naive", "Legacy record")
        criteria = FilterCriteria(created_after=now - timedelta(days=1))
        assert ids(engine.filter([naive_item], criteria)) == ["naive"]

    def test_bounds_do_not_raise_for_mixed_awareness(self, engine, items):
        criteria = FilterCriteria(created_before=datetime(2030, 1, 1))
        assert len(engine.filter(items, criteria)) == len(items)

    def test_all_predicates_must_pass(self, engine, items):
        criteria = FilterCriteria(status=ItemStatus.PENDING, priority=ItemPriority.LOW)
        assert ids(engine.filter(items, criteria)) == ["item_preview_005"]


# ===========================================================================
# Sort
# ===========================================================================

class TestSort:

    @pytest.fixture
    def dated(self, now):
        return [
            make_item(now, "plus2", "b task", priority=ItemPriority.HIGH, created_offset=-1, updated_offset=-3, due_offset=2),
            make_item(now, "none", "A task", priority=ItemPriority.LOW, created_offset=-3, updated_offset=-1),
            make_item(now, "plus1", "c task", priority=ItemPriority.URGENT, created_offset=-2, updated_offset=-2, due_offset=1),
        ]

    def test_due_date_ascending_puts_missing_last(self, engine, dated):
        assert ids(engine.sort(dated, SortOption.DUE_DATE_ASCENDING)) == ["plus1", "plus2", "none"]

    def test_due_date_descending_puts_missing_last(self, engine, dated):
        assert ids(engine.sort(dated, SortOption.DUE_DATE_DESCENDING)) == ["plus2", "plus1", "none"]

    @pytest.mark.parametrize("option, expected", [
        (SortOption.CREATED_ASCENDING, ["none", "plus1", "plus2"]),
        (SortOption.CREATED_DESCENDING, ["plus2", "plus1", "none"]),
        (SortOption.UPDATED_ASCENDING, ["plus2", "plus1", "none"]),
        (SortOption.UPDATED_DESCENDING, ["none", "plus1", "plus2"]),
        (SortOption.TITLE_ASCENDING, ["none", "plus2", "plus1"]),
        (SortOption.TITLE_DESCENDING, ["plus1", "plus2", "none"]),
        (SortOption.PRIORITY_ASCENDING, ["none", "plus2", "plus1"]),
        (SortOption.PRIORITY_DESCENDING, ["plus1", "plus2", "none"]),
    ])
    def test_sort_orders(self, engine, dated, option, expected):
        assert ids(engine.sort(dated, option)) == expected

    def test_sort_is_stable(self, engine, now):
        same = [make_item(now, str(i), "Same", priority=ItemPriority.HIGH) for i in range(4)]
        assert ids(engine.sort(same, SortOption.PRIORITY_DESCENDING)) == ["0", "1", "2", "3"]
        assert ids(engine.sort(same, SortOption.TITLE_ASCENDING)) == ["0", "1", "2", "3"]

    def test_sort_does_not_mutate(self, engine, dated):
        before = ids(dated)
        engine.sort(dated, SortOption.TITLE_ASCENDING)
        assert ids(dated) == before

    def test_labels(self):
        assert SortOption.DUE_DATE_ASCENDING.label == "Due Soon"


# ===========================================================================
# Combined
# ===========================================================================

class TestSearchAndFilter:

    def test_query_skips_explicit_sort(self, engine, now):
        urgent_desc = make_item(now, "desc", "Zebra rollout", description="security patch",
                                priority=ItemPriority.URGENT)
        urgent_title = make_item(now, "title", "Security audit", priority=ItemPriority.URGENT)
        low = make_item(now, "low", "Security memo", priority=ItemPriority.LOW)

        result = engine.search_and_filter(
            "security",
            [urgent_desc, urgent_title, low],
            criteria=FilterCriteria(priority=ItemPriority.URGENT),
            sort_by=SortOption.TITLE_ASCENDING,
        )

        # Relevance order (title match first), not title order.
        assert ids(result) == ["title", "desc"]

    def test_without_query_sorts(self, engine, items):
        result = engine.search_and_filter(None, items, sort_by=SortOption.PRIORITY_DESCENDING)
        assert ids(result)[0] == "item_preview_002"
        assert ids(result)[-1] == "item_preview_005"

    def test_blank_query_keeps_input_order(self, engine, now):
        bravo = make_item(now, "b", "Bravo", created_offset=-2)
        alpha = make_item(now, "a", "Alpha", created_offset=-1)

        result = engine.search_and_filter("   ", [bravo, alpha], sort_by=SortOption.TITLE_ASCENDING)

        assert ids(result) == ["b", "a"]

    def test_empty_string_counts_as_no_query(self, engine, now):
        bravo = make_item(now, "b", "Bravo")
        alpha = make_item(now, "a", "Alpha")

        result = engine.search_and_filter("", [bravo, alpha], sort_by=SortOption.TITLE_ASCENDING)

        assert ids(result) == ["a", "b"]

    def test_filter_without_query(self, engine, items):
        result = engine.search_and_filter(
            "", items,
            criteria=FilterCriteria(status=ItemStatus.PENDING),
            sort_by=SortOption.CREATED_ASCENDING,
        )
        assert ids(result) == ["item_preview_002", "item_preview_005"]

    def test_default_sort_is_newest_first(self, engine, items):
        result = engine.search_and_filter(None, items)
        assert ids(result)[0] == "item_preview_005"
