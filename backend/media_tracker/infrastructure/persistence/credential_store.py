from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from media_tracker.domain import CredentialStoreError, TransportError, User
from media_tracker.infrastructure.api.payloads import parse_user, user_to_wire
from media_tracker.ports import CredentialStorePort, StoredCredentials

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class InMemoryCredentialStore(CredentialStorePort):
    def __init__(self, initial: Optional[StoredCredentials] = None) -> None:
        self._value: Optional[StoredCredentials] = initial

    def load(self) -> Optional[StoredCredentials]:
        return self._value

    def token(self) -> Optional[str]:
        return self._value.token if self._value is not None else None

    def save(self, token: str, user: User) -> None:
        self._value = StoredCredentials(token=token, user=user)

    def clear(self) -> None:
        self._value = None


class JsonFileCredentialStore(CredentialStorePort):
    """Two-key JSON document (``token``, ``user``) persisted across restarts.

    The decoded value is cached in memory after the first read; ``clear`` drops
    the cache before touching the file so no later request can read the old
    token.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._cache: Optional[StoredCredentials] = None
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[StoredCredentials]:
        if self._loaded:
            return self._cache
        self._cache = self._read()
        self._loaded = True
        return self._cache

    def token(self) -> Optional[str]:
        try:
            creds = self.load()
        except CredentialStoreError:
            return None
        return creds.token if creds is not None else None

    def save(self, token: str, user: User) -> None:
        if not token:
            raise ValueError("token is required")
        document = {TOKEN_KEY: token, USER_KEY: user_to_wire(user)}
        self._cache = StoredCredentials(token=token, user=user)
        self._loaded = True
        self._write(document)

    def clear(self) -> None:
        self._cache = None
        self._loaded = True
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove credential file %s: %s", self._path, exc)

    def _read(self) -> Optional[StoredCredentials]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CredentialStoreError(f"Cannot read {self._path}: {exc}") from exc

        try:
            document: Any = json.loads(raw)
        except ValueError as exc:
            raise CredentialStoreError(f"Corrupt credential file {self._path}") from exc
        if not isinstance(document, dict):
            raise CredentialStoreError(f"Corrupt credential file {self._path}")

        token = document.get(TOKEN_KEY)
        user_raw = document.get(USER_KEY)
        # Both keys or nothing.
        if not token or not user_raw:
            return None
        try:
            user = parse_user(user_raw)
        except TransportError as exc:
            raise CredentialStoreError(f"Corrupt user record in {self._path}") from exc
        return StoredCredentials(token=str(token), user=user)

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".credentials-", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
        try:
            os.chmod(self._path, 0o600)
        except OSError:
            pass


def create_credential_store(kind: str, path: Path | str) -> CredentialStorePort:
    kind = (kind or "").strip().lower()
    match kind:
        case "file" | "":
            return JsonFileCredentialStore(path)
        case "memory" | "in-memory" | "in_memory":
            return InMemoryCredentialStore()
        case _:
            raise ValueError(
                f"Unsupported MEDIA_TRACKER_CREDENTIAL_STORE: {kind!r}. Supported values: 'file', 'memory'"
            )
