"""Pure collection-view transitions: ``reduce_collection(state, action) -> state``."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Union

from media_tracker.domain import Entry, EntryPage, EntryQuery, NotificationCategory, Pagination, StatsSnapshot

ENTRY_DELETED_MESSAGE = "Entry has been deleted successfully!"


def entry_created_message(title: str) -> str:
    return f'"{title}" has been added to your collection successfully!'


def entry_updated_message(title: str) -> str:
    return f'"{title}" has been updated successfully!'


@dataclass(frozen=True)
class CollectionState:
    entries: tuple[Entry, ...] = ()
    pagination: Optional[Pagination] = None
    # Query whose response populated ``entries``.
    query: Optional[EntryQuery] = None
    current_entry: Optional[Entry] = None
    stats: Optional[StatsSnapshot] = None
    pending: int = 0
    message: Optional[str] = None
    message_type: Optional[NotificationCategory] = None
    field_errors: Mapping[str, str] = field(default_factory=dict)

    @property
    def loading(self) -> bool:
        return self.pending > 0


@dataclass(frozen=True)
class RequestStarted:
    pass


@dataclass(frozen=True)
class RequestDiscarded:
    pass


@dataclass(frozen=True)
class EntriesFetched:
    query: EntryQuery
    page: EntryPage


@dataclass(frozen=True)
class EntryFetched:
    entry: Entry


@dataclass(frozen=True)
class EntryCreated:
    entry: Entry


@dataclass(frozen=True)
class EntryUpdated:
    entry: Entry


@dataclass(frozen=True)
class EntryDeleted:
    entry_id: str


@dataclass(frozen=True)
class StatsFetched:
    stats: StatsSnapshot


@dataclass(frozen=True)
class RequestFailed:
    message: str
    field_errors: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MessageCleared:
    pass


@dataclass(frozen=True)
class CurrentEntryCleared:
    pass


@dataclass(frozen=True)
class Reset:
    pass


CollectionAction = Union[
    RequestStarted,
    RequestDiscarded,
    EntriesFetched,
    EntryFetched,
    EntryCreated,
    EntryUpdated,
    EntryDeleted,
    StatsFetched,
    RequestFailed,
    MessageCleared,
    CurrentEntryCleared,
    Reset,
]


def _settled(state: CollectionState) -> int:
    return max(state.pending - 1, 0)


def _success(message: str) -> dict:
    return {"message": message, "message_type": NotificationCategory.SUCCESS}


def reduce_collection(state: CollectionState, action: CollectionAction) -> CollectionState:
    match action:
        case RequestStarted():
            return replace(
                state,
                pending=state.pending + 1,
                message=None,
                message_type=None,
                field_errors={},
            )
        case RequestDiscarded():
            return replace(state, pending=_settled(state))
        case EntriesFetched(query=query, page=page):
            # entries, pagination and query change together.
            return replace(
                state,
                entries=tuple(page.entries),
                pagination=page.pagination,
                query=query,
                pending=_settled(state),
            )
        case EntryFetched(entry=entry):
            return replace(state, current_entry=entry, pending=_settled(state))
        case EntryCreated(entry=entry):
            return replace(
                state,
                entries=(entry,) + tuple(e for e in state.entries if e.id != entry.id),
                pending=_settled(state),
                **_success(entry_created_message(entry.title)),
            )
        case EntryUpdated(entry=entry):
            return replace(
                state,
                entries=tuple(entry if e.id == entry.id else e for e in state.entries),
                current_entry=entry,
                pending=_settled(state),
                **_success(entry_updated_message(entry.title)),
            )
        case EntryDeleted(entry_id=entry_id):
            current = state.current_entry
            return replace(
                state,
                entries=tuple(e for e in state.entries if e.id != entry_id),
                current_entry=None if current is not None and current.id == entry_id else current,
                pending=_settled(state),
                **_success(ENTRY_DELETED_MESSAGE),
            )
        case StatsFetched(stats=stats):
            return replace(state, stats=stats, pending=_settled(state))
        case RequestFailed(message=message, field_errors=field_errors):
            return replace(
                state,
                pending=_settled(state),
                message=message,
                message_type=NotificationCategory.ERROR,
                field_errors=dict(field_errors),
            )
        case MessageCleared():
            return replace(state, message=None, message_type=None)
        case CurrentEntryCleared():
            return replace(state, current_entry=None)
        case Reset():
            return CollectionState()
        case _:
            return state
