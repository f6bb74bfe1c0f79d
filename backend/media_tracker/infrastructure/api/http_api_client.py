from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote, urljoin

import aiohttp

from media_tracker.domain import (
    ApiError,
    AuthError,
    Entry,
    EntryPage,
    EntryQuery,
    GenericApiError,
    NotFoundError,
    StatsSnapshot,
    TransportError,
    User,
    ValidationError,
)
from media_tracker.infrastructure.api import payloads
from media_tracker.infrastructure.utils import EventLogger
from media_tracker.ports import CredentialStorePort, EntryApiPort, UnauthorizedHandler

logger = logging.getLogger(__name__)

ROUTES = {
    "login": "/auth/login",
    "register": "/auth/register",
    "me": "/auth/me",
    "logout": "/auth/logout",
    "entries": "/entries",
    "entry": "/entries/{entry_id}",
    "stats": "/entries/stats/summary",
}


def _join(base: str, path: str) -> str:
    base = (base or "").rstrip("/") + "/"
    path = (path or "").lstrip("/")
    return urljoin(base, path)


class HttpApiClient(EntryApiPort):
    """aiohttp gateway to the media tracker backend.

    Attaches the bearer credential read from the credential store on every
    authenticated call, unwraps ``{data: ...}`` envelopes and maps failures
    onto the ``ApiError`` taxonomy. Any 401 is reported to the unauthorized
    handler before the ``AuthError`` is raised, whichever call received it.
    """

    def __init__(
        self,
        *,
        base_url: str,
        credentials: CredentialStorePort,
        timeout_s: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
        log_bodies: bool = False,
    ) -> None:
        self._base_url = (base_url or "").strip()
        self._credentials = credentials
        self._timeout_s = float(timeout_s or 10.0)
        self._session = session
        self._owns_session = session is None
        self._log_bodies = log_bodies
        self._unauthorized_handler: Optional[UnauthorizedHandler] = None
        self._lock = asyncio.Lock()

    def set_unauthorized_handler(self, handler: Optional[UnauthorizedHandler]) -> None:
        self._unauthorized_handler = handler

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session

        async with self._lock:
            if self._session is not None and not self._session.closed:
                return self._session
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
            return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _bearer(self, *, auth: bool, token: Optional[str]) -> Optional[str]:
        if not auth:
            return None
        # Read once per request so a purge on logout is seen by the next call.
        return token if token is not None else self._credentials.token()

    @staticmethod
    def _headers(bearer: Optional[str]) -> dict[str, str]:
        headers = {"content-type": "application/json", "accept": "application/json"}
        if bearer:
            headers["authorization"] = f"Bearer {bearer}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        auth: bool = True,
        token: Optional[str] = None,
    ) -> Any:
        url = _join(self._base_url, path)
        events = EventLogger(logger, "[api]", base_fields={"method": method, "path": path})
        events.debug("request", params=dict(params) if params else None, body=body if self._log_bodies else None)

        bearer = self._bearer(auth=auth, token=token)
        session = await self._get_session()
        try:
            async with session.request(
                method,
                url,
                json=dict(body) if body is not None else None,
                params=dict(params) if params else None,
                headers=self._headers(bearer),
            ) as resp:
                status = resp.status
                raw = await resp.read()
        except asyncio.TimeoutError as exc:
            events.warning("timeout", timeout_s=self._timeout_s)
            raise TransportError(f"Request timed out after {self._timeout_s:g}s") from exc
        except aiohttp.ClientError as exc:
            events.warning("transport_error", error=str(exc))
            raise TransportError(str(exc) or "Network Error") from exc

        data: Any = None
        if raw:
            # UnicodeDecodeError is a ValueError: undecodable bytes count as malformed.
            try:
                data = json.loads(raw.decode("utf-8"))
            except ValueError as exc:
                text = raw.decode("utf-8", errors="replace")
                if 200 <= status < 300:
                    events.warning("malformed_body", status=status)
                    raise TransportError("Malformed response body", status=status, payload=text[:200]) from exc
                data = text

        events.debug("response", status=status)
        if 200 <= status < 300:
            return data
        raise self._classify(status, data, events, bearer=bearer)

    def _classify(self, status: int, data: Any, events: EventLogger, *, bearer: Optional[str] = None) -> ApiError:
        message = payloads.server_message(data)
        if status == 401:
            events.info("unauthorized")
            handler = self._unauthorized_handler
            if handler is not None:
                handler(bearer)
            return AuthError(message or "Not authenticated", status=status, payload=data)
        if status == 404:
            return NotFoundError(message or "Not found", status=status, payload=data)
        field_errors = payloads.parse_field_errors(data)
        if status in (400, 422) and field_errors:
            return ValidationError(message or "Validation failed", field_errors=field_errors, status=status, payload=data)
        events.info("api_error", status=status, message=message)
        return GenericApiError(message or f"Request failed with status {status}", status=status, payload=data)

    # --- Auth -------------------------------------------------------------

    async def login(self, *, email: str, password: str) -> tuple[User, str]:
        data = await self._request(
            "POST", ROUTES["login"], body={"email": email, "password": password}, auth=False
        )
        return payloads.parse_auth(data)

    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> tuple[User, str]:
        body = {"email": email, "password": password, "firstName": first_name, "lastName": last_name}
        data = await self._request("POST", ROUTES["register"], body=body, auth=False)
        return payloads.parse_auth(data)

    async def fetch_self(self, token: str) -> User:
        data = await self._request("GET", ROUTES["me"], token=token)
        return payloads.parse_self(data)

    async def logout(self, token: Optional[str] = None) -> None:
        await self._request("POST", ROUTES["logout"], token=token)

    # --- Entries ----------------------------------------------------------

    async def list_entries(self, query: EntryQuery) -> EntryPage:
        data = await self._request("GET", ROUTES["entries"], params=query.to_params())
        return payloads.parse_entry_page(data, requested_page=query.page, requested_limit=query.limit)

    async def get_entry(self, entry_id: str) -> Entry:
        data = await self._request("GET", self._entry_path(entry_id))
        return payloads.parse_entry_body(data)

    async def create_entry(self, fields: Mapping[str, Any]) -> Entry:
        data = await self._request("POST", ROUTES["entries"], body=fields)
        return payloads.parse_entry_body(data)

    async def update_entry(self, entry_id: str, fields: Mapping[str, Any]) -> Entry:
        data = await self._request("PUT", self._entry_path(entry_id), body=fields)
        return payloads.parse_entry_body(data)

    async def delete_entry(self, entry_id: str) -> None:
        await self._request("DELETE", self._entry_path(entry_id))

    async def get_statistics(self) -> StatsSnapshot:
        data = await self._request("GET", ROUTES["stats"])
        return payloads.parse_stats(data)

    @staticmethod
    def _entry_path(entry_id: str) -> str:
        if not str(entry_id or "").strip():
            raise ValueError("entry id is required")
        return ROUTES["entry"].format(entry_id=quote(str(entry_id), safe=""))
