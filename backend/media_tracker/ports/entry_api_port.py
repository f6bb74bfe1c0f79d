from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol

from media_tracker.domain import Entry, EntryPage, EntryQuery, StatsSnapshot, User

# Receives the bearer token the rejected request carried (None if it had none).
UnauthorizedHandler = Callable[[Optional[str]], None]


class EntryApiPort(Protocol):
    """Typed gateway to the backend (auth + collection endpoints).

    Every method raises a subclass of ``media_tracker.domain.ApiError`` on
    failure; a 401 additionally invokes the registered unauthorized handler.
    """

    def set_unauthorized_handler(self, handler: Optional[UnauthorizedHandler]) -> None:
        ...

    async def login(self, *, email: str, password: str) -> tuple[User, str]:
        ...

    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> tuple[User, str]:
        ...

    async def fetch_self(self, token: str) -> User:
        ...

    async def logout(self, token: Optional[str] = None) -> None:
        ...

    async def list_entries(self, query: EntryQuery) -> EntryPage:
        ...

    async def get_entry(self, entry_id: str) -> Entry:
        ...

    async def create_entry(self, fields: Mapping[str, Any]) -> Entry:
        ...

    async def update_entry(self, entry_id: str, fields: Mapping[str, Any]) -> Entry:
        ...

    async def delete_entry(self, entry_id: str) -> None:
        ...

    async def get_statistics(self) -> StatsSnapshot:
        ...

    async def close(self) -> None:
        ...
