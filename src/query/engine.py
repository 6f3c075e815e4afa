"""
Filter-then-sort evaluation of a query over a catalog.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from catalog.models import MediaItem
from query.parser import compile_query
from query.sorting import SortSpec


class QueryEngine:
    """Evaluate query strings and sort selectors against catalog items."""

    def __init__(self, default_sort: Optional[SortSpec] = None) -> None:
        self.default_sort = default_sort

    def filter(self, items: Iterable[MediaItem], query: str) -> List[MediaItem]:
        predicate = compile_query(query)
        return [item for item in items if predicate(item)]

    def evaluate(
        self,
        items: Iterable[MediaItem],
        query: str = "",
        sort: Union[SortSpec, str, None] = None,
    ) -> List[MediaItem]:
        """Return matching items, sorted when a sort is given or defaulted."""
        matched = self.filter(items, query)
        if isinstance(sort, str):
            sort = SortSpec.parse(sort)
        sort = sort or self.default_sort
        if sort is None:
            return matched
        return sort.apply(matched)
