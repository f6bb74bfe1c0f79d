from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from media_tracker.domain import Notification, NotificationCategory

logger = logging.getLogger(__name__)

SESSION_SOURCE = "session"
COLLECTION_SOURCE = "collection"
APP_SOURCE = "app"

# Lower value wins when several sources hold a message.
_DEFAULT_PRIORITIES = {SESSION_SOURCE: 0, COLLECTION_SOURCE: 10, APP_SOURCE: 100}

DismissCallback = Callable[[str], None]


@dataclass
class _Slot:
    priority: int
    on_dismiss: Optional[DismissCallback] = None
    notification: Optional[Notification] = None
    timer: Optional[asyncio.TimerHandle] = None


class NotificationChannel:
    """One visible message per source, "last operation's outcome" semantics.

    Success/info messages expire after ``ttl_s``; the expiry timer is bound to
    the id of the notification it was created for and is cancelled when that
    notification is superseded or dismissed. Expiry or dismissal clears only
    the producing source and calls back into it so the owning store can drop
    its own copy of the message.
    """

    def __init__(self, *, ttl_s: float = 5.0) -> None:
        self._ttl_s = float(ttl_s)
        self._slots: dict[str, _Slot] = {}
        for name, priority in _DEFAULT_PRIORITIES.items():
            self._slots[name] = _Slot(priority=priority)

    def register_source(
        self,
        name: str,
        *,
        priority: Optional[int] = None,
        on_dismiss: Optional[DismissCallback] = None,
    ) -> None:
        slot = self._slots.get(name)
        if slot is None:
            slot = _Slot(priority=priority if priority is not None else 50)
            self._slots[name] = slot
        elif priority is not None:
            slot.priority = priority
        slot.on_dismiss = on_dismiss

    # --- Producers --------------------------------------------------------

    def post(self, source: str, message: str, category: NotificationCategory | str) -> Notification:
        slot = self._slot(source)
        self._cancel_timer(slot)
        notification = Notification(
            id=uuid.uuid4().hex,
            message=message,
            category=NotificationCategory(category),
            created_at=datetime.now(timezone.utc),
            source=source,
        )
        slot.notification = notification
        if notification.category.expires:
            slot.timer = self._schedule_expiry(source, notification.id)
        return notification

    def retract(self, source: str) -> None:
        """Clear a source's slot on behalf of its producer (no callback)."""
        slot = self._slots.get(source)
        if slot is None:
            return
        self._cancel_timer(slot)
        slot.notification = None

    def show_success(self, message: str) -> Notification:
        return self.post(APP_SOURCE, message, NotificationCategory.SUCCESS)

    def show_error(self, message: str) -> Notification:
        return self.post(APP_SOURCE, message, NotificationCategory.ERROR)

    def show_warning(self, message: str) -> Notification:
        return self.post(APP_SOURCE, message, NotificationCategory.WARNING)

    def show_info(self, message: str) -> Notification:
        return self.post(APP_SOURCE, message, NotificationCategory.INFO)

    # --- Consumers --------------------------------------------------------

    def current(self) -> Optional[Notification]:
        active = [s for s in self._slots.values() if s.notification is not None]
        if not active:
            return None
        best = min(active, key=lambda s: s.priority)
        return best.notification

    def get(self, source: str) -> Optional[Notification]:
        slot = self._slots.get(source)
        return slot.notification if slot is not None else None

    def visible(self) -> list[Notification]:
        items = [s.notification for s in self._slots.values() if s.notification is not None]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def dismiss(self, source: str) -> bool:
        slot = self._slots.get(source)
        if slot is None or slot.notification is None:
            return False
        self._clear(source, slot)
        return True

    def dismiss_id(self, notification_id: str) -> bool:
        for source, slot in self._slots.items():
            if slot.notification is not None and slot.notification.id == notification_id:
                self._clear(source, slot)
                return True
        return False

    def clear_all(self) -> None:
        for source, slot in list(self._slots.items()):
            if slot.notification is not None:
                self._clear(source, slot)

    def close(self) -> None:
        for slot in self._slots.values():
            self._cancel_timer(slot)

    # --- Internals --------------------------------------------------------

    def _slot(self, source: str) -> _Slot:
        slot = self._slots.get(source)
        if slot is None:
            slot = _Slot(priority=50)
            self._slots[source] = slot
        return slot

    def _clear(self, source: str, slot: _Slot) -> None:
        self._cancel_timer(slot)
        slot.notification = None
        if slot.on_dismiss is not None:
            slot.on_dismiss(source)

    def _schedule_expiry(self, source: str, notification_id: str) -> Optional[asyncio.TimerHandle]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; notification %s will not auto-expire", notification_id)
            return None
        return loop.call_later(self._ttl_s, self._expire, source, notification_id)

    def _expire(self, source: str, notification_id: str) -> None:
        slot = self._slots.get(source)
        if slot is None or slot.notification is None or slot.notification.id != notification_id:
            return
        slot.timer = None
        self._clear(source, slot)

    @staticmethod
    def _cancel_timer(slot: _Slot) -> None:
        if slot.timer is not None:
            slot.timer.cancel()
            slot.timer = None
