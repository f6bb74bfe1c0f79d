from __future__ import annotations

from media_tracker.application.collection.state import CollectionState, reduce_collection
from media_tracker.application.collection.store import CollectionStore

__all__ = ["CollectionState", "CollectionStore", "reduce_collection"]
