from __future__ import annotations

from media_tracker.application.query.coordinator import QueryCoordinator, parse_sort_option
from media_tracker.application.query.debounce import Debouncer

__all__ = ["Debouncer", "QueryCoordinator", "parse_sort_option"]
