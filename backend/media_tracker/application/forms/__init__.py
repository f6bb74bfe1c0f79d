from __future__ import annotations

from media_tracker.application.forms.entry_form import (
    EntryDraft,
    build_entry_payload,
    coerce_number,
    draft_from_entry,
    is_valid_url,
    normalize_entry_fields,
    validate_entry_draft,
)

__all__ = [
    "EntryDraft",
    "build_entry_payload",
    "coerce_number",
    "draft_from_entry",
    "is_valid_url",
    "normalize_entry_fields",
    "validate_entry_draft",
]
