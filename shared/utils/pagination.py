"""Pagination and table-sort helpers used by every listing endpoint."""
import math
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One 1-indexed page of results, in the TPMA pagination shape."""
    model_config = ConfigDict(populate_by_name=True)

    items: List[T] = Field(default_factory=list)
    total_count: int = Field(0, alias="totalCount")
    total_pages: int = Field(1, alias="totalPages")
    current_page: int = Field(1, alias="currentPage")


def total_pages(total_count: int, page_size: int) -> int:
    """Number of pages for a listing; an empty listing still has one page."""
    if total_count < 0:
        raise ValueError(f"total_count must be non-negative, got {total_count}")
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return max(1, math.ceil(total_count / page_size))


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice an already filtered and sorted sequence into one page."""
    current = max(1, page)
    start = (current - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        total_count=len(items),
        total_pages=total_pages(len(items), page_size),
        current_page=current,
    )


def _field_value(record: Any, field: str) -> Any:
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def sort_records(
    records: Sequence[T],
    field: Optional[str],
    direction: str = "asc",
    getter: Callable[[Any, str], Any] = _field_value,
) -> List[T]:
    """
    Sort records by one field the way the dashboard tables do.

    Strings compare lexically, booleans and numbers numerically. Records that
    lack the field are left in their original relative order at the end.
    """
    if not field:
        return list(records)

    reverse = direction == "desc"
    present = [r for r in records if getter(r, field) is not None]
    missing = [r for r in records if getter(r, field) is None]

    def key(record):
        value = getter(record, field)
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, bool):
            return (1, int(value), "")
        if isinstance(value, (int, float)):
            return (1, value, "")
        return (2, 0, str(value))

    return sorted(present, key=key, reverse=reverse) + missing
