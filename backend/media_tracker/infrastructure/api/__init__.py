from __future__ import annotations

from media_tracker.infrastructure.api.http_api_client import ROUTES, HttpApiClient

__all__ = ["ROUTES", "HttpApiClient"]
