from media_tracker.ports.credential_store_port import CredentialStorePort, StoredCredentials
from media_tracker.ports.entry_api_port import EntryApiPort, UnauthorizedHandler

__all__ = [
    "CredentialStorePort",
    "StoredCredentials",
    "EntryApiPort",
    "UnauthorizedHandler",
]
