"""Tolerant parsing of backend envelopes into domain objects.

Success bodies may wrap the payload under ``data`` or return it bare; both
shapes are accepted everywhere.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from media_tracker.domain import (
    Entry,
    EntryPage,
    EntryType,
    Pagination,
    StatsSnapshot,
    TransportError,
    User,
)


def unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body and body["data"] is not None:
        return body["data"]
    return body


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _optional_str(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw)
    return text if text.strip() else None


def _optional_float(raw: Any) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _int(raw: Any, default: int = 0) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def parse_user(raw: Any) -> User:
    if not isinstance(raw, Mapping):
        raise TransportError("Malformed user payload", payload=raw)
    uid = raw.get("id") or raw.get("_id")
    email = raw.get("email")
    if not uid or not email:
        raise TransportError("User payload is missing id or email", payload=raw)
    return User(
        id=str(uid),
        email=str(email),
        first_name=str(raw.get("firstName") or ""),
        last_name=str(raw.get("lastName") or ""),
        created_at=_parse_datetime(raw.get("createdAt")),
        updated_at=_parse_datetime(raw.get("updatedAt")),
    )


def user_to_wire(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


def parse_auth(body: Any) -> tuple[User, str]:
    payload = unwrap(body)
    if not isinstance(payload, Mapping):
        raise TransportError("Malformed authentication response", payload=body)
    token = payload.get("token")
    if not isinstance(token, str) or not token:
        raise TransportError("Authentication response carries no token", payload=body)
    return parse_user(payload.get("user")), token


def parse_self(body: Any) -> User:
    payload = unwrap(body)
    if isinstance(payload, Mapping) and isinstance(payload.get("user"), Mapping):
        return parse_user(payload["user"])
    return parse_user(payload)


def parse_entry(raw: Any) -> Entry:
    if not isinstance(raw, Mapping):
        raise TransportError("Malformed entry payload", payload=raw)
    eid = raw.get("id") or raw.get("_id")
    if not eid:
        raise TransportError("Entry payload has no id", payload=raw)
    try:
        entry_type = EntryType(str(raw.get("type") or EntryType.MOVIE.value))
    except ValueError as exc:
        raise TransportError(f"Unknown entry type {raw.get('type')!r}", payload=raw) from exc
    return Entry(
        id=str(eid),
        title=str(raw.get("title") or ""),
        type=entry_type,
        director=str(raw.get("director") or ""),
        year=_int(raw.get("year")),
        duration=_int(raw.get("duration")),
        user_id=str(raw.get("userId") or ""),
        genre=_optional_str(raw.get("genre")),
        rating=_optional_float(raw.get("rating")),
        description=_optional_str(raw.get("description")),
        poster_url=_optional_str(raw.get("posterUrl")),
        created_at=_parse_datetime(raw.get("createdAt")),
        updated_at=_parse_datetime(raw.get("updatedAt")),
    )


def parse_entry_body(body: Any) -> Entry:
    payload = unwrap(body)
    if isinstance(payload, Mapping) and isinstance(payload.get("entry"), Mapping):
        payload = payload["entry"]
    return parse_entry(payload)


def parse_entry_page(body: Any, *, requested_page: int, requested_limit: int) -> EntryPage:
    # List responses carry ``data`` (the page) next to ``pagination``; a bare
    # list is also accepted.
    if isinstance(body, list):
        items, meta = body, {}
    elif isinstance(body, Mapping):
        items = body.get("data")
        if isinstance(items, Mapping):
            meta = items.get("pagination") or body.get("pagination") or {}
            items = items.get("entries") or items.get("items") or []
        else:
            meta = body.get("pagination") or {}
    else:
        raise TransportError("Malformed list response", payload=body)
    if not isinstance(items, list):
        raise TransportError("List response has no entry array", payload=body)
    if not isinstance(meta, Mapping):
        meta = {}

    entries = tuple(parse_entry(item) for item in items)
    pagination = Pagination.normalized(
        page=_int(meta.get("page"), requested_page),
        limit=_int(meta.get("limit"), requested_limit),
        total=_int(meta.get("total"), len(entries)),
    )
    return EntryPage(entries=entries, pagination=pagination)


def parse_stats(body: Any) -> StatsSnapshot:
    payload = unwrap(body)
    if not isinstance(payload, Mapping):
        raise TransportError("Malformed statistics response", payload=body)
    return StatsSnapshot(
        total_entries=_int(payload.get("totalEntries")),
        movie_count=_int(payload.get("movieCount")),
        tv_show_count=_int(payload.get("tvShowCount")),
        average_rating=_optional_float(payload.get("averageRating")) or 0.0,
    )


def parse_field_errors(body: Any) -> dict[str, str]:
    if not isinstance(body, Mapping):
        return {}
    raw = body.get("errors")
    out: dict[str, str] = {}
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            field = item.get("field") or item.get("path") or item.get("param")
            message = item.get("message") or item.get("msg")
            if field and message and str(field) not in out:
                out[str(field)] = str(message)
    elif isinstance(raw, Mapping):
        for field, message in raw.items():
            if message:
                out[str(field)] = str(message[0] if isinstance(message, list) and message else message)
    return out


def server_message(body: Any) -> str:
    if isinstance(body, Mapping):
        message = body.get("message") or body.get("error")
        if isinstance(message, str):
            return message
    if isinstance(body, str):
        return body[:200]
    return ""
