from __future__ import annotations

import logging
from typing import Awaitable, TypeVar

from media_tracker.domain import ApiError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_api(call: Awaitable[T]) -> T:
    """Await a port call so that only ``ApiError`` subclasses come out of it.

    Anything else (a decoding bug in an adapter, an unexpected library
    exception) is logged with its traceback and re-raised as a
    ``TransportError`` with no message, so stores show their fallback text.
    """
    try:
        return await call
    except ApiError:
        raise
    except Exception as exc:
        logger.exception("Unexpected failure from API call")
        raise TransportError("", payload=repr(exc)) from exc
