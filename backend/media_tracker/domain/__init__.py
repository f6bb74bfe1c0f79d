from media_tracker.domain.entry import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    SORT_KEYS,
    SORT_ORDERS,
    Entry,
    EntryPage,
    EntryQuery,
    EntryType,
    Pagination,
    StatsSnapshot,
)
from media_tracker.domain.errors import (
    ApiError,
    AuthError,
    CredentialStoreError,
    GenericApiError,
    MediaTrackerError,
    NotFoundError,
    TransportError,
    ValidationError,
    error_message,
)
from media_tracker.domain.notification import Notification, NotificationCategory
from media_tracker.domain.user import User

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_SORT_BY",
    "DEFAULT_SORT_ORDER",
    "SORT_KEYS",
    "SORT_ORDERS",
    "Entry",
    "EntryPage",
    "EntryQuery",
    "EntryType",
    "Pagination",
    "StatsSnapshot",
    "ApiError",
    "AuthError",
    "CredentialStoreError",
    "GenericApiError",
    "MediaTrackerError",
    "NotFoundError",
    "TransportError",
    "ValidationError",
    "error_message",
    "Notification",
    "NotificationCategory",
    "User",
]
