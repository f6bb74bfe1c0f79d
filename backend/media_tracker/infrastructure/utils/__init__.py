from __future__ import annotations

from media_tracker.infrastructure.utils.event_logger import EventLogger
from media_tracker.infrastructure.utils.log_format import format_kv, redact

__all__ = ["EventLogger", "format_kv", "redact"]
