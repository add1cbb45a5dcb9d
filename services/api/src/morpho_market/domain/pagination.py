"""Filtering and pagination for the dashboard tables."""

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")

ITEMS_PER_PAGE = 5
ACTIVITY_TYPE_FILTERS = ["all", "supply", "withdraw", "borrow", "repay"]


@dataclass
class Page(Generic[T]):
    items: list[T]
    page: int
    total_pages: int
    total_items: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: Sequence[T], page: int, per_page: int = ITEMS_PER_PAGE) -> Page[T]:
    """Slice out one page; out-of-range page numbers are clamped."""
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    return Page(
        items=list(items[start:start + per_page]),
        page=page,
        total_pages=total_pages,
        total_items=len(items),
    )


def filter_activities(
    activities: Sequence[T],
    type_filter: str = "all",
    address_filter: str = "",
) -> list[T]:
    """
    Filter by activity type and exact user address, newest first.

    Activities are expected oldest first (as the activities endpoint returns them).
    """
    filtered = list(activities)
    if type_filter and type_filter != "all":
        filtered = [a for a in filtered if a.type == type_filter]
    if address_filter:
        filtered = [a for a in filtered if a.user_address == address_filter]
    filtered.reverse()
    return filtered
