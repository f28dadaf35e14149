"""Tolerant field accessors for Kubernetes JSON objects.

Every accessor walks a key path and returns either the value, if it is
present and of the expected type, or a documented default.  None of them
raise: a missing, null or wrongly-typed field is treated as absent.

    >>> get_str({"status": {"phase": "Bound"}}, "status", "phase")
    'Bound'
    >>> get_int({"status": {"readyReplicas": "x"}}, "status", "readyReplicas")
    0
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

_MISSING = object()


def _walk(obj: Any, keys: tuple[str, ...]) -> Any:
    node = obj
    for key in keys:
        if not isinstance(node, dict):
            return _MISSING
        node = node.get(key, _MISSING)
        if node is _MISSING:
            return _MISSING
    return node


def get_str(obj: Any, *keys: str, default: str = "") -> str:
    """String at *keys*; *default* (empty string) when absent or not a string."""
    value = _walk(obj, keys)
    return value if isinstance(value, str) else default


def get_optional_int(obj: Any, *keys: str) -> int | None:
    """Integer at *keys*, or None when absent.

    Floats with an integral value are accepted (JSON decoders may produce
    them); booleans are not.
    """
    value = _walk(obj, keys)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def get_int(obj: Any, *keys: str, default: int = 0) -> int:
    """Integer at *keys*; *default* (zero) when absent."""
    value = get_optional_int(obj, *keys)
    return default if value is None else value


def get_bool(obj: Any, *keys: str, default: bool = False) -> bool:
    value = _walk(obj, keys)
    return value if isinstance(value, bool) else default


def get_map(obj: Any, *keys: str) -> dict[str, Any]:
    """Mapping at *keys*; empty dict when absent."""
    value = _walk(obj, keys)
    return value if isinstance(value, dict) else {}


def get_list(obj: Any, *keys: str) -> list[Any]:
    """List at *keys*; empty list when absent."""
    value = _walk(obj, keys)
    return value if isinstance(value, list) else []


def get_maps(obj: Any, *keys: str) -> list[dict[str, Any]]:
    """The mapping entries of the list at *keys*; other entries are skipped."""
    return [item for item in get_list(obj, *keys) if isinstance(item, dict)]


def get_str_map(obj: Any, *keys: str) -> dict[str, str]:
    """String-to-string mapping at *keys* (labels, annotations); non-string values dropped."""
    return {k: v for k, v in get_map(obj, *keys).items() if isinstance(k, str) and isinstance(v, str)}


def get_datetime(obj: Any, *keys: str) -> datetime | None:
    """RFC 3339 timestamp at *keys* as an aware UTC datetime, or None.

    Naive timestamps are taken to be UTC.
    """
    value = _walk(obj, keys)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
