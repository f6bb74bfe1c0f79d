from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Mapping, Optional, TypeVar

from media_tracker.application.api_call import call_api
from media_tracker.application.collection.state import (
    CollectionAction,
    CollectionState,
    CurrentEntryCleared,
    EntriesFetched,
    EntryCreated,
    EntryDeleted,
    EntryFetched,
    EntryUpdated,
    MessageCleared,
    RequestDiscarded,
    RequestFailed,
    RequestStarted,
    Reset,
    StatsFetched,
    reduce_collection,
)
from media_tracker.application.forms import EntryDraft, normalize_entry_fields
from media_tracker.application.notifications import COLLECTION_SOURCE, NotificationChannel
from media_tracker.domain import (
    ApiError,
    Entry,
    EntryQuery,
    StatsSnapshot,
    ValidationError,
    error_message,
)
from media_tracker.ports import EntryApiPort

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CollectionStore:
    """In-memory, paginated view of the remote collection.

    List fetches are single-flight, latest-wins: each call takes a sequence
    number and only the response of the most recently *issued* fetch may touch
    ``entries``. ``reset`` starts a new epoch; any operation that resolves after
    it leaves the state alone.
    """

    def __init__(
        self,
        *,
        api: EntryApiPort,
        notifications: Optional[NotificationChannel] = None,
    ) -> None:
        self._api = api
        self._notifications = notifications
        self._state = CollectionState()
        self._epoch = 0
        self._fetch_seq = 0
        self._latest_fetch = 0
        self._latest_detail = 0
        self._latest_stats = 0
        if notifications is not None:
            notifications.register_source(COLLECTION_SOURCE, on_dismiss=lambda _src: self.clear_message())

    @property
    def state(self) -> CollectionState:
        return self._state

    @property
    def latest_fetch_seq(self) -> int:
        return self._latest_fetch

    # --- Reads -----------------------------------------------------------

    async def fetch(self, query: EntryQuery) -> bool:
        """Load one page; returns True if this response was applied."""
        epoch = self._epoch
        seq = self._next_seq()
        self._latest_fetch = seq
        self._dispatch(RequestStarted())
        try:
            page = await self._call(epoch, self._api.list_entries(query))
        except ApiError as exc:
            if not self._is_current(epoch):
                return False
            if seq != self._latest_fetch:
                logger.debug("Ignoring failure of superseded fetch seq=%s (latest=%s)", seq, self._latest_fetch)
                self._dispatch(RequestDiscarded())
                return False
            # The previous page stays visible.
            self._dispatch(RequestFailed(error_message(exc, "Failed to fetch entries")))
            return False

        if not self._is_current(epoch):
            return False
        if seq != self._latest_fetch:
            logger.info("Discarding stale list response seq=%s (latest=%s)", seq, self._latest_fetch)
            self._dispatch(RequestDiscarded())
            return False
        self._dispatch(EntriesFetched(query=query, page=page))
        return True

    async def fetch_one(self, entry_id: str) -> Optional[Entry]:
        epoch = self._epoch
        seq = self._next_seq()
        self._latest_detail = seq
        self._dispatch(RequestStarted())
        try:
            entry = await self._call(epoch, self._api.get_entry(entry_id))
        except ApiError as exc:
            if self._is_current(epoch):
                if seq == self._latest_detail:
                    self._dispatch(RequestFailed(error_message(exc, "Failed to fetch entry")))
                else:
                    self._dispatch(RequestDiscarded())
            return None
        if not self._is_current(epoch):
            return None
        if seq != self._latest_detail:
            self._dispatch(RequestDiscarded())
            return None
        self._dispatch(EntryFetched(entry))
        return entry

    async def get_statistics(self) -> Optional[StatsSnapshot]:
        epoch = self._epoch
        seq = self._next_seq()
        self._latest_stats = seq
        self._dispatch(RequestStarted())
        try:
            stats = await self._call(epoch, self._api.get_statistics())
        except ApiError as exc:
            if self._is_current(epoch):
                if seq == self._latest_stats:
                    self._dispatch(RequestFailed(error_message(exc, "Failed to fetch statistics")))
                else:
                    self._dispatch(RequestDiscarded())
            return None
        if not self._is_current(epoch):
            return None
        if seq != self._latest_stats:
            self._dispatch(RequestDiscarded())
            return None
        self._dispatch(StatsFetched(stats))
        return stats

    # --- Mutations -------------------------------------------------------

    async def create(self, fields: Mapping[str, Any] | EntryDraft) -> Entry:
        epoch = self._epoch
        self._dispatch(RequestStarted())
        try:
            payload = normalize_entry_fields(fields)
            entry = await self._call(epoch, self._api.create_entry(payload))
        except ApiError as exc:
            self._fail(epoch, exc, "Failed to create entry")
            raise
        if self._is_current(epoch):
            self._dispatch(EntryCreated(entry))
        return entry

    async def update(self, entry_id: str, fields: Mapping[str, Any] | EntryDraft) -> Entry:
        epoch = self._epoch
        self._dispatch(RequestStarted())
        try:
            payload = normalize_entry_fields(fields)
            entry = await self._call(epoch, self._api.update_entry(entry_id, payload))
        except ApiError as exc:
            self._fail(epoch, exc, "Failed to update entry")
            raise
        if self._is_current(epoch):
            self._dispatch(EntryUpdated(entry))
        return entry

    async def delete(self, entry_id: str) -> None:
        epoch = self._epoch
        self._dispatch(RequestStarted())
        try:
            await self._call(epoch, self._api.delete_entry(entry_id))
        except ApiError as exc:
            self._fail(epoch, exc, "Failed to delete entry")
            raise
        if self._is_current(epoch):
            self._dispatch(EntryDeleted(entry_id))

    # --- Local-only ------------------------------------------------------

    def clear_message(self) -> None:
        if self._state.message is not None:
            self._dispatch(MessageCleared())

    def clear_current_entry(self) -> None:
        self._dispatch(CurrentEntryCleared())

    def reset(self) -> None:
        self._epoch += 1
        self._latest_fetch = self._latest_detail = self._latest_stats = 0
        self._dispatch(Reset())

    # --- Internals -------------------------------------------------------

    async def _call(self, epoch: int, call: Awaitable[T]) -> T:
        # Every started operation settles the pending counter exactly once.
        try:
            return await call_api(call)
        except asyncio.CancelledError:
            if self._is_current(epoch):
                self._dispatch(RequestDiscarded())
            raise

    def _next_seq(self) -> int:
        self._fetch_seq += 1
        return self._fetch_seq

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def _fail(self, epoch: int, exc: ApiError, fallback: str) -> None:
        if not self._is_current(epoch):
            return
        field_errors = exc.field_errors if isinstance(exc, ValidationError) else {}
        self._dispatch(RequestFailed(error_message(exc, fallback), field_errors=field_errors))

    def _dispatch(self, action: CollectionAction) -> None:
        previous = self._state
        self._state = reduce_collection(previous, action)
        self._sync_notification(previous)

    def _sync_notification(self, previous: CollectionState) -> None:
        if self._notifications is None:
            return
        current = self._state
        if (previous.message, previous.message_type) == (current.message, current.message_type):
            return
        if current.message and current.message_type is not None:
            self._notifications.post(COLLECTION_SOURCE, current.message, current.message_type)
        else:
            self._notifications.retract(COLLECTION_SOURCE)
