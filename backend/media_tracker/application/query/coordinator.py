from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Optional

from media_tracker.application.collection import CollectionStore
from media_tracker.application.query.debounce import Debouncer
from media_tracker.domain import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    SORT_KEYS,
    SORT_ORDERS,
    EntryQuery,
    EntryType,
    Pagination,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_S = 0.5


def parse_sort_option(option: str) -> tuple[str, str]:
    """Split a combined option such as ``"title-asc"`` into (sort_by, sort_order)."""
    sort_by, sep, sort_order = (option or "").rpartition("-")
    if not sep or sort_by not in SORT_KEYS or sort_order not in SORT_ORDERS:
        raise ValueError(f"unsupported sort option: {option!r}")
    return sort_by, sort_order


class QueryCoordinator:
    """Turns list UI input into fetches of the effective query.

    Search text only counts once it has been stable for the debounce
    interval; filter/sort/page changes apply at once. Changing search, filter
    or sort resets the page to 1. This is the only component that calls
    ``CollectionStore.fetch``.
    """

    def __init__(
        self,
        store: CollectionStore,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self._store = store
        self._page_size = max(int(page_size), 1)
        self._search_text = ""
        self._search = ""
        self._type: Optional[EntryType] = None
        self._sort_by = DEFAULT_SORT_BY
        self._sort_order = DEFAULT_SORT_ORDER
        self._page = 1
        self._debouncer: Debouncer[str] = Debouncer(debounce_s, self._on_search_settled)
        self._pending: set[asyncio.Task] = set()

    # --- Read side -------------------------------------------------------

    @property
    def search_text(self) -> str:
        """Raw search box content (may not be settled yet)."""
        return self._search_text

    @property
    def effective_query(self) -> EntryQuery:
        return EntryQuery(
            page=self._page,
            limit=self._page_size,
            search=self._search,
            type=self._type,
            sort_by=self._sort_by,
            sort_order=self._sort_order,
        )

    # --- Input -----------------------------------------------------------

    def start(self) -> asyncio.Task:
        return self._issue()

    def set_search_text(self, text: str) -> None:
        self._search_text = text or ""
        self._debouncer.push(self._search_text)

    async def flush_search(self) -> None:
        await self._debouncer.flush()

    def set_type_filter(self, entry_type: EntryType | str | None) -> Optional[asyncio.Task]:
        new_type = EntryType(entry_type) if entry_type else None
        if new_type == self._type:
            return None
        self._type = new_type
        self._page = 1
        return self._issue()

    def set_sort(self, sort_by: str, sort_order: Optional[str] = None) -> Optional[asyncio.Task]:
        if sort_order is None:
            sort_by, sort_order = parse_sort_option(sort_by)
        if sort_by not in SORT_KEYS:
            raise ValueError(f"unsupported sort key: {sort_by!r}")
        if sort_order not in SORT_ORDERS:
            raise ValueError(f"unsupported sort order: {sort_order!r}")
        if (sort_by, sort_order) == (self._sort_by, self._sort_order):
            return None
        self._sort_by, self._sort_order = sort_by, sort_order
        self._page = 1
        return self._issue()

    def set_page(self, page: int) -> Optional[asyncio.Task]:
        page = max(int(page), 1)
        pagination = self._current_pagination()
        if pagination is not None:
            page = min(page, max(pagination.total_pages, 1))
        if page == self._page:
            return None
        self._page = page
        return self._issue()

    def next_page(self) -> Optional[asyncio.Task]:
        return self.set_page(self._page + 1)

    def previous_page(self) -> Optional[asyncio.Task]:
        return self.set_page(self._page - 1)

    def refresh(self) -> asyncio.Task:
        return self._issue()

    async def delete_entry(self, entry_id: str) -> None:
        """Delete through the store, then reload the current page."""
        await self._store.delete(entry_id)
        self._issue()

    def reset(self) -> None:
        """Back to defaults without fetching (e.g. when the session ends)."""
        self._debouncer.cancel()
        self._search_text = self._search = ""
        self._type = None
        self._sort_by, self._sort_order = DEFAULT_SORT_BY, DEFAULT_SORT_ORDER
        self._page = 1

    async def wait_until_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- Internals -------------------------------------------------------

    async def _on_search_settled(self, text: str) -> None:
        settled = (text or "").strip()
        if settled == self._search:
            return
        self._search = settled
        self._page = 1
        self._issue()

    def _current_pagination(self) -> Optional[Pagination]:
        """Pagination of the loaded page, if it answers the current search/filter/sort.

        Right after a filter change the store still holds the previous result
        set; its page count says nothing about the new one.
        """
        state = self._store.state
        loaded = state.query
        if state.pagination is None or loaded is None:
            return None
        if replace(loaded, page=1) != replace(self.effective_query, page=1):
            return None
        return state.pagination

    def _issue(self) -> asyncio.Task:
        query = self.effective_query
        logger.debug("Issuing list fetch page=%s search=%r type=%s sort=%s-%s",
                     query.page, query.search, query.type, query.sort_by, query.sort_order)
        task = asyncio.get_running_loop().create_task(self._store.fetch(query))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task
