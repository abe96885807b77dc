"""Rendering rules shared by every cached view."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from leaddesk.cache.query import QueryState


class RenderMode(str, enum.Enum):
    SPINNER = "spinner"
    RETRY = "retry"
    CONTENT = "content"
    EMPTY = "empty"


def render_mode(state: QueryState) -> RenderMode:
    """Pick what a view shows for `state`.

    Cached data always wins: an error next to stale data is rendered as a
    non-blocking indicator (see `stale_error`), never as the retry screen.
    """

    if state.data is not None:
        return RenderMode.CONTENT
    if state.loading:
        return RenderMode.SPINNER
    if state.error is not None:
        return RenderMode.RETRY
    return RenderMode.EMPTY


def stale_error(state: QueryState) -> Optional[str]:
    """Message for a failed background revalidation, if one happened."""

    if state.data is not None and state.error is not None:
        return str(state.error)
    return None


def payload_list(data: Any, field: str) -> list[dict]:
    """`data[field]` when it is a list of objects, else an empty list."""

    if not isinstance(data, dict):
        return []
    items = data.get(field)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["RenderMode", "parse_datetime", "payload_list", "render_mode", "stale_error"]
