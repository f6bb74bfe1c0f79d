from __future__ import annotations

from media_tracker.application.notifications.channel import (
    APP_SOURCE,
    COLLECTION_SOURCE,
    SESSION_SOURCE,
    NotificationChannel,
)

__all__ = ["APP_SOURCE", "COLLECTION_SOURCE", "SESSION_SOURCE", "NotificationChannel"]
