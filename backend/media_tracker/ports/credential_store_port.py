from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from media_tracker.domain import User


@dataclass(frozen=True)
class StoredCredentials:
    token: str
    user: User


class CredentialStorePort(Protocol):
    """Durable cache of the last authenticated session.

    Exactly two keys (token, user) written together and cleared together.
    Writers: SessionStore only. Reader: the API client, once per request.
    """

    def load(self) -> Optional[StoredCredentials]:
        ...

    def token(self) -> Optional[str]:
        ...

    def save(self, token: str, user: User) -> None:
        ...

    def clear(self) -> None:
        ...
