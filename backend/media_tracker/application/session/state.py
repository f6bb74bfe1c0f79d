"""Pure session state transitions: ``reduce_session(state, action) -> state``."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from media_tracker.domain import NotificationCategory, User

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
AUTH_CHECK_FAILED_MESSAGE = "Authentication check failed."
LOGIN_SUCCESS_MESSAGE = "Login successful! Welcome back."
REGISTER_SUCCESS_MESSAGE = "Account created successfully! Welcome to the platform."
LOGOUT_MESSAGE = "You have been logged out successfully."


class SessionStatus(str, Enum):
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class SessionState:
    status: SessionStatus = SessionStatus.RESOLVING
    user: Optional[User] = None
    token: Optional[str] = None
    message: Optional[str] = None
    message_type: Optional[NotificationCategory] = None

    @property
    def is_loading(self) -> bool:
        return self.status is SessionStatus.RESOLVING

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED


@dataclass(frozen=True)
class AuthStarted:
    pass


@dataclass(frozen=True)
class AuthSucceeded:
    user: User
    token: str
    message: Optional[str] = None


@dataclass(frozen=True)
class AuthFailed:
    message: Optional[str] = None


@dataclass(frozen=True)
class LoggedOut:
    message: Optional[str] = LOGOUT_MESSAGE


@dataclass(frozen=True)
class UserUpdated:
    user: User


@dataclass(frozen=True)
class MessageCleared:
    pass


SessionAction = Union[AuthStarted, AuthSucceeded, AuthFailed, LoggedOut, UserUpdated, MessageCleared]


def _with_message(message: Optional[str], category: NotificationCategory) -> dict:
    if not message:
        return {"message": None, "message_type": None}
    return {"message": message, "message_type": category}


def reduce_session(state: SessionState, action: SessionAction) -> SessionState:
    match action:
        case AuthStarted():
            return replace(state, status=SessionStatus.RESOLVING, message=None, message_type=None)
        case AuthSucceeded(user=user, token=token, message=message):
            return SessionState(
                status=SessionStatus.AUTHENTICATED,
                user=user,
                token=token,
                **_with_message(message, NotificationCategory.SUCCESS),
            )
        case AuthFailed(message=message):
            return SessionState(
                status=SessionStatus.UNAUTHENTICATED,
                **_with_message(message, NotificationCategory.ERROR),
            )
        case LoggedOut(message=message):
            return SessionState(
                status=SessionStatus.UNAUTHENTICATED,
                **_with_message(message, NotificationCategory.SUCCESS),
            )
        case UserUpdated(user=user):
            if state.status is not SessionStatus.AUTHENTICATED:
                return state
            return replace(state, user=user)
        case MessageCleared():
            return replace(state, message=None, message_type=None)
        case _:
            return state
