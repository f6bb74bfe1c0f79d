"""Construction and teardown of the client's process-wide components.

Consumers receive the stores by constructor/parameter passing; the
module-level registry only exists so an embedding application can reach the
one container it created at startup.
"""

from __future__ import annotations

import logging
from typing import Optional

from media_tracker.application.collection import CollectionStore
from media_tracker.application.notifications import NotificationChannel
from media_tracker.application.query import QueryCoordinator
from media_tracker.application.session import SessionState, SessionStatus, SessionStore
from media_tracker.config import ClientSettings, get_settings
from media_tracker.infrastructure.api import HttpApiClient
from media_tracker.infrastructure.persistence import create_credential_store
from media_tracker.ports import CredentialStorePort, EntryApiPort

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stream handler on the root logger."""
    level_name = (level or get_settings().log_level or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    for handler in list(root.handlers):
        if getattr(handler, "_media_tracker", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler._media_tracker = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class AppContainer:
    """Owns one instance of every store and wires them together."""

    def __init__(
        self,
        *,
        settings: Optional[ClientSettings] = None,
        api: Optional[EntryApiPort] = None,
        credentials: Optional[CredentialStorePort] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.credentials = credentials or create_credential_store(
            self.settings.credential_store, self.settings.credentials_path
        )
        self.api: EntryApiPort = api or HttpApiClient(
            base_url=self.settings.api_base_url,
            credentials=self.credentials,
            timeout_s=self.settings.api_timeout_s,
            log_bodies=self.settings.log_http_bodies,
        )
        self.notifications = NotificationChannel(ttl_s=self.settings.notification_ttl_s)
        self.session = SessionStore(api=self.api, credentials=self.credentials, notifications=self.notifications)
        self.collection = CollectionStore(api=self.api, notifications=self.notifications)
        self.coordinator = QueryCoordinator(
            self.collection,
            page_size=self.settings.page_size,
            debounce_s=self.settings.search_debounce_s,
        )
        self.api.set_unauthorized_handler(self.session.handle_unauthorized)
        self._unsubscribe = self.session.add_listener(self._on_session_change)

    async def initialize(self) -> SessionState:
        """Resolve the session; nothing else may call the API before this returns."""
        state = await self.session.startup()
        logger.info("Session resolved: %s", state.status.value)
        return state

    def _on_session_change(self, state: SessionState) -> None:
        if state.status is SessionStatus.UNAUTHENTICATED:
            # Results of requests still in flight must not land in the next session.
            self.coordinator.reset()
            self.collection.reset()

    async def close(self) -> None:
        self._unsubscribe()
        self.coordinator.reset()
        await self.coordinator.wait_until_idle()
        await self.session.wait_background()
        self.notifications.close()
        self.api.set_unauthorized_handler(None)
        await self.api.close()


_container: Optional[AppContainer] = None


def init_container(container: Optional[AppContainer] = None, **kwargs) -> AppContainer:
    global _container
    if _container is not None:
        raise RuntimeError("AppContainer already initialized")
    _container = container or AppContainer(**kwargs)
    return _container


def get_container() -> AppContainer:
    if _container is None:
        raise RuntimeError("AppContainer not initialized; call init_container() first")
    return _container


def has_container() -> bool:
    return _container is not None


async def shutdown_container() -> None:
    global _container
    container, _container = _container, None
    if container is not None:
        await container.close()
