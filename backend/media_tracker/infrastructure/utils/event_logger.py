from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from media_tracker.infrastructure.utils.log_format import format_kv


class EventLogger:
    """
    Emit single-line structured logs for one logical operation (e.g. one API call).

    Keeps a sequence counter and elapsed time so the request/response pair of a
    call can be followed in a busy log.
    """

    def __init__(
        self,
        logger: logging.Logger,
        prefix: str,
        *,
        base_fields: Optional[Dict[str, Any]] = None,
        started_at: Optional[float] = None,
    ) -> None:
        self._logger = logger
        self._prefix = prefix
        self._base_fields: Dict[str, Any] = dict(base_fields or {})
        self._started_at = started_at if started_at is not None else time.monotonic()
        self._seq = 0

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started_at) * 1000)

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, **fields)

    def _log(self, level: int, event: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._seq += 1
        payload: Dict[str, Any] = {"seq": self._seq, "event": event, "elapsed_ms": self.elapsed_ms}
        payload.update(self._base_fields)
        payload.update({k: v for k, v in fields.items() if v is not None})
        self._logger.log(level, "%s %s", self._prefix, format_kv(**payload), stacklevel=3)
