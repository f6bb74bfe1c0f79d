from __future__ import annotations

import json
from typing import Any

REDACTED = "***"
_SENSITIVE_KEYS = frozenset({"token", "password", "authorization", "access_token"})


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (str, list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return json.dumps(str(value), ensure_ascii=False)


def redact(value: Any) -> Any:
    """Mask credential-bearing keys in (possibly nested) dict payloads."""
    if isinstance(value, dict):
        return {
            k: (REDACTED if str(k).lower() in _SENSITIVE_KEYS and v else redact(v))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


def format_kv(**fields: Any) -> str:
    """
    Render a compact single-line key=value log string.

    Example:
      seq=2 event="response" method="GET" path="/entries" status=200
    """
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        if key.lower() in _SENSITIVE_KEYS:
            value = REDACTED
        parts.append(f"{key}={_format_value(redact(value))}")
    return " ".join(parts)
