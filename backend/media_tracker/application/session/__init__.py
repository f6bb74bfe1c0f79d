from __future__ import annotations

from media_tracker.application.session.state import SessionState, SessionStatus, reduce_session
from media_tracker.application.session.store import SessionStore

__all__ = ["SessionState", "SessionStatus", "SessionStore", "reduce_session"]
