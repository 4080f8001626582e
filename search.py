"""
search.py – Relevance search, filtering and sorting over items.

SearchEngine holds configuration only.  Every operation takes the items as
an argument, returns a new list and never mutates its input, so the engine
can be shared freely and run on a worker thread for large collections.

Relevance score of an item for a lower-cased query q:

  title contains q         +10   (+5 more if equal, +3 more if it starts with q)
  description contains q    +5
  each tag containing q     +3   (+2 more if the tag equals q)
  fuzzy title match          +2   only when nothing above matched

Items scoring zero are dropped; the rest are ranked by descending score
with ties kept in input order.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from models import Item, ItemPriority, ItemStatus

TITLE_MATCH = 10.0
TITLE_EXACT_BONUS = 5.0
TITLE_PREFIX_BONUS = 3.0
DESCRIPTION_MATCH = 5.0
TAG_MATCH = 3.0
TAG_EXACT_BONUS = 2.0
FUZZY_MATCH = 2.0


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


@dataclass(frozen=True)
class SearchConfiguration:
    min_query_length: int = 2
    max_results: int = 100
    enable_fuzzy_matching: bool = True


@dataclass(frozen=True)
class FilterCriteria:
    """
    Independent optional predicates; an item must satisfy all that are set.

    tags matches when the item shares at least one tag with the list,
    compared case-insensitively.  The date bounds are inclusive.
    Naive datetimes on either side of the comparison are taken as UTC.
    """

    status: Optional[ItemStatus] = None
    priority: Optional[ItemPriority] = None
    tags: Optional[Tuple[str, ...]] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("created_after", "created_before"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _as_utc(value))

    @property
    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.priority is None
            and not self.tags
            and self.created_after is None
            and self.created_before is None
        )

    def matches(self, item: Item) -> bool:
        if self.status is not None and item.status is not self.status:
            return False
        if self.priority is not None and item.priority is not self.priority:
            return False
        if self.tags:
            wanted = {tag.lower() for tag in self.tags}
            if wanted.isdisjoint(tag.lower() for tag in item.tags):
                return False
        created = _as_utc(item.created_at)
        if self.created_after is not None and created < self.created_after:
            return False
        if self.created_before is not None and created > self.created_before:
            return False
        return True


class SortOption(Enum):
    CREATED_DESCENDING = "Newest First"
    CREATED_ASCENDING = "Oldest First"
    UPDATED_DESCENDING = "Recently Updated"
    UPDATED_ASCENDING = "Least Recently Updated"
    TITLE_ASCENDING = "Title A-Z"
    TITLE_DESCENDING = "Title Z-A"
    PRIORITY_DESCENDING = "Highest Priority"
    PRIORITY_ASCENDING = "Lowest Priority"
    DUE_DATE_ASCENDING = "Due Soon"
    DUE_DATE_DESCENDING = "Due Later"

    @property
    def label(self) -> str:
        return self.value


def fuzzy_match(text: str, query: str) -> bool:
    """True if every character of *query* occurs in *text* in order."""
    remaining = iter(text)
    return all(char in remaining for char in query)


class SearchEngine:
    """
    Stateless search, filter and sort.

    Parameters
    ----------
    configuration : SearchConfiguration, optional
        Query threshold, result cap and fuzzy matching switch.
    """

    def __init__(self, configuration: Optional[SearchConfiguration] = None) -> None:
        self.configuration = configuration or SearchConfiguration()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: str, items: Sequence[Item]) -> List[Item]:
        """
        Rank *items* by relevance to *query*.

        Queries shorter than min_query_length after trimming return the
        items unchanged (as a new list).
        """
        needle = query.strip().lower()
        if len(needle) < self.configuration.min_query_length:
            return list(items)

        scored = [(item, self.score(item, needle)) for item in items]
        scored = [pair for pair in scored if pair[1] > 0]
        # sorted() is stable, also with reverse=True.
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [item for item, _ in scored[: self.configuration.max_results]]

    def score(self, item: Item, query: str) -> float:
        """Relevance of *item* for an already trimmed, lower-cased *query*."""
        score = 0.0
        title = item.title.lower()

        if query in title:
            score += TITLE_MATCH
            if title == query:
                score += TITLE_EXACT_BONUS
            if title.startswith(query):
                score += TITLE_PREFIX_BONUS

        if query in item.description.lower():
            score += DESCRIPTION_MATCH

        for tag in item.tags:
            tag = tag.lower()
            if query in tag:
                score += TAG_MATCH
            if tag == query:
                score += TAG_EXACT_BONUS

        if score == 0 and self.configuration.enable_fuzzy_matching and fuzzy_match(title, query):
            score += FUZZY_MATCH

        return score

    # ------------------------------------------------------------------
    # Filter and sort
    # ------------------------------------------------------------------

    def filter(self, items: Iterable[Item], criteria: FilterCriteria) -> List[Item]:
        return [item for item in items if criteria.matches(item)]

    def sort(self, items: Iterable[Item], option: SortOption) -> List[Item]:
        """
        Stable sort by *option*.

        Due-date orders put items without a due date last in both
        directions.
        """
        items = list(items)
        if option is SortOption.CREATED_ASCENDING:
            return sorted(items, key=lambda i: i.created_at)
        if option is SortOption.CREATED_DESCENDING:
            return sorted(items, key=lambda i: i.created_at, reverse=True)
        if option is SortOption.UPDATED_ASCENDING:
            return sorted(items, key=lambda i: i.updated_at)
        if option is SortOption.UPDATED_DESCENDING:
            return sorted(items, key=lambda i: i.updated_at, reverse=True)
        if option is SortOption.TITLE_ASCENDING:
            return sorted(items, key=lambda i: i.title.lower())
        if option is SortOption.TITLE_DESCENDING:
            return sorted(items, key=lambda i: i.title.lower(), reverse=True)
        if option is SortOption.PRIORITY_ASCENDING:
            return sorted(items, key=lambda i: i.priority.sort_order)
        if option is SortOption.PRIORITY_DESCENDING:
            return sorted(items, key=lambda i: i.priority.sort_order, reverse=True)

        dated = [i for i in items if i.due_date is not None]
        undated = [i for i in items if i.due_date is None]
        descending = option is SortOption.DUE_DATE_DESCENDING
        return sorted(dated, key=lambda i: i.due_date, reverse=descending) + undated

    # ------------------------------------------------------------------
    # Combined
    # ------------------------------------------------------------------

    def search_and_filter(
        self,
        query: Optional[str],
        items: Sequence[Item],
        criteria: Optional[FilterCriteria] = None,
        sort_by: SortOption = SortOption.CREATED_DESCENDING,
    ) -> List[Item]:
        """
        Search, then filter, then sort.

        Any non-empty query, even one below the search threshold or made
        of whitespace only, keeps the search order and *sort_by* is not
        applied.
        """
        has_query = bool(query)
        result = list(items)
        if has_query:
            result = self.search(query, result)
        if criteria is not None:
            result = self.filter(result, criteria)
        if not has_query:
            result = self.sort(result, sort_by)
        return result
