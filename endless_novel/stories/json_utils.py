from __future__ import annotations

from typing import Any

import orjson


class MalformedSourceError(ValueError):
    """A stored story collection exists but cannot be decoded."""


def load_record_list(text: str | None, *, source: str) -> list[dict[str, Any]] | None:
    """Decode a stored JSON array of objects.

    Returns None when nothing is stored under the key. Entries that are not
    JSON objects are dropped; anything else that is not a JSON array raises
    MalformedSourceError.
    """
    if text is None:
        return None
    if not text.strip():
        raise MalformedSourceError(f"{source}: empty payload")

    try:
        payload = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise MalformedSourceError(f"{source}: invalid JSON ({exc})") from exc

    if not isinstance(payload, list):
        raise MalformedSourceError(f"{source}: expected JSON array, got {type(payload).__name__}")
    return [item for item in payload if isinstance(item, dict)]


def dump_record_list(records: list[dict[str, Any]]) -> str:
    return orjson.dumps(records).decode("utf-8")
