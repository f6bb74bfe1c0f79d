import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# A project-level .env wins over stale shell exports during development.
load_dotenv(override=True)


def _get_env_int(key: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} expects an integer, got {raw!r}") from exc


def _get_env_float(key: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} expects a number, got {raw!r}") from exc


def _get_env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_str(key: str, default: str) -> str:
    raw = os.getenv(key)
    return default if raw is None or raw.strip() == "" else raw.strip()


# ===== Backend API =====

API_BASE_URL = _get_env_str("MEDIA_TRACKER_API_BASE_URL", "http://localhost:5001/api")
API_TIMEOUT_S = _get_env_float("MEDIA_TRACKER_API_TIMEOUT_S", 10.0) or 10.0

# ===== Durable session cache =====

CREDENTIAL_STORE = _get_env_str("MEDIA_TRACKER_CREDENTIAL_STORE", "file").lower()
CREDENTIALS_PATH = Path(
    _get_env_str("MEDIA_TRACKER_CREDENTIALS_PATH", str(Path.home() / ".media_tracker" / "credentials.json"))
).expanduser()

# ===== Collection view =====

PAGE_SIZE = _get_env_int("MEDIA_TRACKER_PAGE_SIZE", 20) or 20
SEARCH_DEBOUNCE_S = _get_env_float("MEDIA_TRACKER_SEARCH_DEBOUNCE_S", 0.5)
if SEARCH_DEBOUNCE_S is None or SEARCH_DEBOUNCE_S < 0:
    SEARCH_DEBOUNCE_S = 0.5

# ===== Notifications =====

NOTIFICATION_TTL_S = _get_env_float("MEDIA_TRACKER_NOTIFICATION_TTL_S", 5.0) or 5.0

# ===== Logging =====

LOG_LEVEL = _get_env_str("MEDIA_TRACKER_LOG_LEVEL", "INFO").upper()
LOG_HTTP_BODIES = _get_env_bool("MEDIA_TRACKER_LOG_HTTP_BODIES", False)


@dataclass(frozen=True)
class ClientSettings:
    """Snapshot of the runtime configuration.

    Components take explicit values from this object so tests can build them
    without touching the process environment.
    """

    api_base_url: str = API_BASE_URL
    api_timeout_s: float = API_TIMEOUT_S
    credential_store: str = CREDENTIAL_STORE
    credentials_path: Path = CREDENTIALS_PATH
    page_size: int = PAGE_SIZE
    search_debounce_s: float = SEARCH_DEBOUNCE_S
    notification_ttl_s: float = NOTIFICATION_TTL_S
    log_level: str = LOG_LEVEL
    log_http_bodies: bool = LOG_HTTP_BODIES


def get_settings() -> ClientSettings:
    return ClientSettings()
