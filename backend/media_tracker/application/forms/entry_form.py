"""Entry form model: lenient parsing of raw input, form rules, wire payloads."""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Mapping, Optional

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from media_tracker.domain import Entry, EntryType, ValidationError

TITLE_MAX = 255
DIRECTOR_MAX = 255
GENRE_MAX = 100
MIN_YEAR = 1800
FUTURE_YEARS = 10
DEFAULT_DURATION = 90
TYPE_ERROR_MESSAGE = "Type must be movie or tv-show"

NUMERIC_FIELDS = ("year", "duration", "rating")
OPTIONAL_TEXT_FIELDS = ("genre", "description", "posterUrl")
WIRE_FIELDS = ("title", "type", "director", "year", "duration", "rating") + OPTIONAL_TEXT_FIELDS

_SNAKE_TO_WIRE = {"poster_url": "posterUrl"}
_URL_ADAPTER = TypeAdapter(AnyUrl)


def coerce_number(value: Any) -> float:
    """Numeric input as the form sees it: anything unparseable becomes 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _as_int(value: Any) -> int:
    return int(coerce_number(value))


def is_valid_url(value: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True


class EntryDraft(BaseModel):
    """What the entry form holds while it is being edited.

    Parsing never fails on bad numbers (they become 0); the form rules in
    ``validate_entry_draft`` decide what may be submitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    type: EntryType = EntryType.MOVIE
    director: str = ""
    year: int = Field(default_factory=lambda: date.today().year)
    duration: int = DEFAULT_DURATION
    genre: str = ""
    rating: float = 0
    description: str = ""
    poster_url: str = Field(default="", alias="posterUrl")

    @field_validator("year", "duration", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int:
        return _as_int(value)

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float:
        return float(coerce_number(value))

    @field_validator("title", "director", "genre", "description", "poster_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


def validate_entry_draft(draft: EntryDraft, *, today: Optional[date] = None) -> dict[str, str]:
    """Return ``{field: message}``; empty when the draft may be submitted."""
    max_year = (today or date.today()).year + FUTURE_YEARS
    errors: dict[str, str] = {}

    if not draft.title.strip():
        errors["title"] = "Title is required"
    elif len(draft.title) > TITLE_MAX:
        errors["title"] = f"Title is too long (max {TITLE_MAX} characters)"

    if not draft.director.strip():
        errors["director"] = "Director is required"
    elif len(draft.director) > DIRECTOR_MAX:
        errors["director"] = f"Director name is too long (max {DIRECTOR_MAX} characters)"

    if draft.year < MIN_YEAR or draft.year > max_year:
        errors["year"] = f"Please enter a valid year ({MIN_YEAR} - {max_year})"

    if draft.duration <= 0:
        errors["duration"] = "Duration must be greater than 0"

    if draft.rating < 0 or draft.rating > 10:
        errors["rating"] = "Rating must be between 0 and 10"

    if draft.genre and len(draft.genre) > GENRE_MAX:
        errors["genre"] = f"Genre is too long (max {GENRE_MAX} characters)"

    if draft.poster_url and not is_valid_url(draft.poster_url):
        errors["posterUrl"] = "Please enter a valid URL"

    return errors


def build_entry_payload(draft: EntryDraft) -> dict[str, Any]:
    """Wire body for create/update from a validated draft."""
    payload: dict[str, Any] = {
        "title": draft.title.strip(),
        "type": draft.type.value,
        "director": draft.director.strip(),
        "year": int(draft.year),
        "duration": int(draft.duration),
    }
    # A zero rating means "not rated".
    if draft.rating:
        payload["rating"] = float(draft.rating)
    for key, value in (("genre", draft.genre), ("description", draft.description), ("posterUrl", draft.poster_url)):
        text = (value or "").strip()
        if text:
            payload[key] = text
    return payload


def draft_from_entry(entry: Optional[Entry]) -> EntryDraft:
    if entry is None:
        return EntryDraft()
    return EntryDraft(
        title=entry.title or "",
        type=entry.type,
        director=entry.director or "",
        year=entry.year or date.today().year,
        duration=entry.duration or DEFAULT_DURATION,
        genre=entry.genre or "",
        rating=entry.rating or 0,
        description=entry.description or "",
        poster_url=entry.poster_url or "",
    )


def _entry_type(value: Any) -> EntryType:
    try:
        return EntryType(value)
    except ValueError as exc:
        raise ValidationError(
            TYPE_ERROR_MESSAGE,
            field_errors={"type": TYPE_ERROR_MESSAGE},
            status=None,
        ) from exc


def normalize_entry_fields(fields: Mapping[str, Any] | EntryDraft) -> dict[str, Any]:
    """Normalize a (possibly partial) field set for the wire.

    Keys may be snake_case or camelCase. Numbers are always sent as numbers
    (unparseable input becomes 0, a zero rating is left out); optional text is
    trimmed and left out when empty; unknown keys are dropped. An unknown
    ``type`` raises ``ValidationError`` keyed on ``type``.
    """
    if isinstance(fields, EntryDraft):
        return build_entry_payload(fields)

    out: dict[str, Any] = {}
    for raw_key, value in fields.items():
        key = _SNAKE_TO_WIRE.get(raw_key, raw_key)
        if key not in WIRE_FIELDS:
            continue
        if key in ("year", "duration"):
            out[key] = _as_int(value)
        elif key == "rating":
            # Same rule as build_entry_payload: 0 means "not rated".
            rating = float(coerce_number(value))
            if rating:
                out[key] = rating
        elif key == "type":
            out[key] = _entry_type(value).value
        elif key in OPTIONAL_TEXT_FIELDS:
            text = "" if value is None else str(value).strip()
            if text:
                out[key] = text
        else:
            out[key] = "" if value is None else str(value).strip()
    return out
