from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EntryType(str, Enum):
    MOVIE = "movie"
    TV_SHOW = "tv-show"


SORT_KEYS = ("createdAt", "title", "year", "rating")
SORT_ORDERS = ("asc", "desc")

DEFAULT_PAGE_SIZE = 20
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"


@dataclass(frozen=True)
class Entry:
    """One tracked movie or TV show (server-owned, cached client-side)."""

    id: str
    title: str
    type: EntryType
    director: str
    year: int
    duration: int
    user_id: str = ""
    genre: Optional[str] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    poster_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    total: int = 0
    total_pages: int = 0

    @classmethod
    def normalized(cls, *, page: int, limit: int, total: int) -> "Pagination":
        """Build pagination that satisfies ``total_pages = ceil(total / limit)``
        and ``1 <= page <= max(total_pages, 1)`` regardless of what the server sent."""
        limit = max(int(limit or 0), 1)
        total = max(int(total or 0), 0)
        total_pages = math.ceil(total / limit)
        page = min(max(int(page or 1), 1), max(total_pages, 1))
        return cls(page=page, limit=limit, total=total, total_pages=total_pages)

    @property
    def first_index(self) -> int:
        if self.total == 0:
            return 0
        return (self.page - 1) * self.limit + 1

    @property
    def last_index(self) -> int:
        return min(self.page * self.limit, self.total)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class EntryQuery:
    """Effective list query: search/filter/sort/page."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: str = ""
    type: Optional[EntryType] = None
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_KEYS:
            raise ValueError(f"unsupported sort key: {self.sort_by!r}")
        if self.sort_order not in SORT_ORDERS:
            raise ValueError(f"unsupported sort order: {self.sort_order!r}")
        if int(self.page) < 1:
            raise ValueError("page must be >= 1")
        if int(self.limit) < 1:
            raise ValueError("limit must be >= 1")

    def to_params(self) -> dict[str, Any]:
        # Empty search and "all types" are omitted from the query string.
        params: dict[str, Any] = {
            "page": int(self.page),
            "limit": int(self.limit),
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
        }
        search = (self.search or "").strip()
        if search:
            params["search"] = search
        if self.type is not None:
            params["type"] = EntryType(self.type).value
        return params


@dataclass(frozen=True)
class EntryPage:
    entries: tuple[Entry, ...] = ()
    pagination: Pagination = field(default_factory=Pagination)


@dataclass(frozen=True)
class StatsSnapshot:
    """Server-computed collection summary (not kept in sync with local edits)."""

    total_entries: int = 0
    movie_count: int = 0
    tv_show_count: int = 0
    average_rating: float = 0.0
