from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationCategory(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def expires(self) -> bool:
        # error/warning stay until dismissed.
        return self in (NotificationCategory.SUCCESS, NotificationCategory.INFO)


@dataclass(frozen=True)
class Notification:
    id: str
    message: str
    category: NotificationCategory
    created_at: datetime
    source: str = "app"
