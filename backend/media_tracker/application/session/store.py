from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from media_tracker.application.api_call import call_api
from media_tracker.application.notifications import SESSION_SOURCE, NotificationChannel
from media_tracker.application.session.state import (
    AUTH_CHECK_FAILED_MESSAGE,
    LOGIN_SUCCESS_MESSAGE,
    LOGOUT_MESSAGE,
    REGISTER_SUCCESS_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    AuthFailed,
    AuthStarted,
    AuthSucceeded,
    LoggedOut,
    MessageCleared,
    SessionAction,
    SessionState,
    SessionStatus,
    UserUpdated,
    reduce_session,
)
from media_tracker.domain import ApiError, CredentialStoreError, User, error_message
from media_tracker.ports import CredentialStorePort, EntryApiPort

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]


class SessionStore:
    """Owns the authentication lifecycle and the durable session cache.

    Every transition goes through ``reduce_session``. Async operations record
    the auth generation they started in and drop their result if a newer
    transition (logout, 401, another login) happened meanwhile.
    """

    def __init__(
        self,
        *,
        api: EntryApiPort,
        credentials: CredentialStorePort,
        notifications: Optional[NotificationChannel] = None,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._notifications = notifications
        self._state = SessionState()
        self._generation = 0
        self._listeners: list[SessionListener] = []
        self._background: set[asyncio.Task] = set()
        if notifications is not None:
            notifications.register_source(SESSION_SOURCE, on_dismiss=lambda _src: self.clear_message())

    @property
    def state(self) -> SessionState:
        return self._state

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` after every status change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # --- Startup / re-check ----------------------------------------------

    async def startup(self) -> SessionState:
        """Resolve the session from the durable cache, re-validated by the server."""
        return await self.check_auth()

    async def check_auth(self) -> SessionState:
        generation = self._begin()
        try:
            stored = self._credentials.load()
        except CredentialStoreError as exc:
            logger.warning("Discarding unreadable session cache: %s", exc)
            self._credentials.clear()
            self._dispatch(AuthFailed(AUTH_CHECK_FAILED_MESSAGE))
            return self._state

        if stored is None:
            self._dispatch(AuthFailed(None))
            return self._state

        try:
            user = await call_api(self._api.fetch_self(stored.token))
        except ApiError as exc:
            if generation != self._generation:
                return self._state
            logger.info("Stored session rejected by server (%s); purging", type(exc).__name__)
            self._credentials.clear()
            self._dispatch(AuthFailed(SESSION_EXPIRED_MESSAGE))
            return self._state

        if generation != self._generation:
            logger.debug("Discarding stale session check result")
            return self._state
        # Trust the server's copy of the user, not the cached one.
        self._credentials.save(stored.token, user)
        self._dispatch(AuthSucceeded(user=user, token=stored.token))
        return self._state

    # --- Login / register ------------------------------------------------

    async def login(self, *, email: str, password: str) -> User:
        generation = self._begin()
        try:
            user, token = await call_api(self._api.login(email=email, password=password))
        except ApiError as exc:
            if generation == self._generation:
                self._fail_authentication(error_message(exc, "Login failed"))
            raise
        return self._authenticated(generation, user, token, LOGIN_SUCCESS_MESSAGE)

    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        generation = self._begin()
        try:
            user, token = await call_api(
                self._api.register(
                    email=email,
                    password=password,
                    first_name=first_name,
                    last_name=last_name,
                )
            )
        except ApiError as exc:
            if generation == self._generation:
                self._fail_authentication(error_message(exc, "Registration failed"))
            raise
        return self._authenticated(generation, user, token, REGISTER_SUCCESS_MESSAGE)

    def _fail_authentication(self, message: str) -> None:
        # A failed (re-)login leaves no credential behind for the API client to send.
        self._credentials.clear()
        self._dispatch(AuthFailed(message))

    def _authenticated(self, generation: int, user: User, token: str, message: str) -> User:
        if generation != self._generation:
            logger.debug("Ignoring authentication result superseded by a newer transition")
            return user
        self._credentials.save(token, user)
        self._dispatch(AuthSucceeded(user=user, token=token, message=message))
        return user

    # --- Logout / invalidation -------------------------------------------

    def logout(self) -> None:
        """End the session now; the server is told best-effort in the background."""
        token = self._state.token or self._credentials.token()
        self._generation += 1
        self._credentials.clear()
        self._dispatch(LoggedOut(LOGOUT_MESSAGE))
        if token:
            self._spawn(self._server_logout(token))

    def handle_unauthorized(self, token_used: Optional[str] = None) -> bool:
        """React to a 401 seen by the API client.

        Acts once per authenticated session: later 401s (concurrent calls,
        requests carrying an older token) are ignored.
        """
        if self._state.status is not SessionStatus.AUTHENTICATED:
            return False
        if token_used is not None and token_used != self._state.token:
            logger.debug("Ignoring 401 for a request made with a previous token")
            return False
        logger.info("Session invalidated by server (401)")
        self._generation += 1
        self._credentials.clear()
        self._dispatch(AuthFailed(SESSION_EXPIRED_MESSAGE))
        return True

    async def _server_logout(self, token: str) -> None:
        try:
            await call_api(self._api.logout(token))
        except ApiError as exc:
            logger.debug("Server logout failed (ignored): %s", exc)

    def _spawn(self, coro) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.debug("No running loop; skipping server logout")
            return
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # --- Local-only ------------------------------------------------------

    def set_user(self, user: User) -> None:
        if not self._state.is_authenticated or self._state.token is None:
            return
        self._credentials.save(self._state.token, user)
        self._dispatch(UserUpdated(user))

    def clear_message(self) -> None:
        if self._state.message is not None:
            self._dispatch(MessageCleared())

    # --- Internals -------------------------------------------------------

    def _begin(self) -> int:
        self._generation += 1
        self._dispatch(AuthStarted())
        return self._generation

    def _dispatch(self, action: SessionAction) -> None:
        previous = self._state
        self._state = reduce_session(previous, action)
        self._sync_notification(previous)
        if previous.status is not self._state.status:
            for listener in list(self._listeners):
                listener(self._state)

    def _sync_notification(self, previous: SessionState) -> None:
        if self._notifications is None:
            return
        current = self._state
        if (previous.message, previous.message_type) == (current.message, current.message_type):
            return
        if current.message and current.message_type is not None:
            self._notifications.post(SESSION_SOURCE, current.message, current.message_type)
        else:
            self._notifications.retract(SESSION_SOURCE)
