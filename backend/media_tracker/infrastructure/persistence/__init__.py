from __future__ import annotations

from media_tracker.infrastructure.persistence.credential_store import (
    InMemoryCredentialStore,
    JsonFileCredentialStore,
    create_credential_store,
)

__all__ = ["InMemoryCredentialStore", "JsonFileCredentialStore", "create_credential_store"]
