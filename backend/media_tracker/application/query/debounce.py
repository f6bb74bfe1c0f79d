from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Emit a value only after it has been stable for ``delay_s`` seconds.

    Each ``push`` restarts the quiet interval; the callback receives the last
    pushed value. Once the callback has started it is not cancelled by a later
    push.
    """

    def __init__(self, delay_s: float, callback: Callable[[T], Awaitable[None]]) -> None:
        self._delay_s = max(float(delay_s), 0.0)
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._value: Optional[T] = None
        self._has_value = False

    @property
    def pending(self) -> bool:
        return self._has_value

    def push(self, value: T) -> None:
        self._cancel_timer()
        self._value = value
        self._has_value = True
        self._task = asyncio.get_running_loop().create_task(self._wait_then_emit())

    async def flush(self) -> None:
        """Emit the pending value now, skipping the rest of the interval."""
        if not self._has_value:
            return
        self._cancel_timer()
        await self._emit()

    def cancel(self) -> None:
        self._cancel_timer()
        self._value = None
        self._has_value = False

    async def _wait_then_emit(self) -> None:
        try:
            await asyncio.sleep(self._delay_s)
        except asyncio.CancelledError:
            return
        self._task = None
        await self._emit()

    async def _emit(self) -> None:
        value = self._value
        self._value = None
        self._has_value = False
        await self._callback(value)  # type: ignore[arg-type]

    def _cancel_timer(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
