from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, TypeVar

from .datamodels import ALL_CATEGORIES, FilterState


class Filterable(Protocol):
    title: str
    description: Optional[str]
    category: str


F = TypeVar("F", bound=Filterable)


def matches_query(item: Filterable, query: str) -> bool:
    """Case-insensitive substring match against title or description."""
    needle = query.lower()
    if not needle:
        return True
    for text in (item.title, item.description):
        if text and needle in text.lower():
            return True
    return False


def matches_category(item: Filterable, category: str) -> bool:
    return category == ALL_CATEGORIES or item.category == category


def apply_filter(items: Iterable[F], filter_state: FilterState) -> List[F]:
    return [
        item
        for item in items
        if matches_category(item, filter_state.category)
        and matches_query(item, filter_state.query)
    ]
