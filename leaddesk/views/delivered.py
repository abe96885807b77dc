"""Delivered page: delivered projects with date filters."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from leaddesk.cache import keys
from leaddesk.cache.query import QueryState
from leaddesk.views.base import RenderMode, parse_datetime, payload_list, render_mode, stale_error

ENDPOINTS = (keys.PROJECTS_DELIVERED,)


class DateFilter(str, enum.Enum):
    ALL = "all"
    DATE = "date"
    MONTH = "month"
    YEAR = "year"
    RANGE = "range"


@dataclass(frozen=True)
class DeliveredFilter:
    kind: DateFilter = DateFilter.ALL
    day: Optional[date] = None
    month: Optional[tuple[int, int]] = None  # (year, month)
    year: Optional[int] = None
    start: Optional[date] = None
    end: Optional[date] = None  # inclusive


@dataclass(frozen=True)
class DeliveredView:
    mode: RenderMode
    rows: list[dict]
    total: int
    refreshing: bool = False
    stale_error: Optional[str] = None


def project_date(project: dict) -> Optional[datetime]:
    return parse_datetime(project.get("startDate")) or parse_datetime(project.get("deadline"))


def _matches(project: dict, flt: DeliveredFilter) -> bool:
    if flt.kind is DateFilter.ALL:
        return True
    # A filter with its value unset shows everything.
    when = project_date(project)
    if flt.kind is DateFilter.DATE:
        return flt.day is None or (when is not None and when.date() == flt.day)
    if flt.kind is DateFilter.MONTH:
        return flt.month is None or (when is not None and (when.year, when.month) == flt.month)
    if flt.kind is DateFilter.YEAR:
        return flt.year is None or (when is not None and when.year == flt.year)
    if flt.start is None or flt.end is None:
        return True
    return when is not None and flt.start <= when.date() <= flt.end


def filter_delivered(projects: Iterable[dict], flt: DeliveredFilter = DeliveredFilter()) -> list[dict]:
    return [p for p in projects if _matches(p, flt)]


def build(state: QueryState, flt: DeliveredFilter = DeliveredFilter()) -> DeliveredView:
    projects = payload_list(state.data, "projects")
    return DeliveredView(
        mode=render_mode(state),
        rows=filter_delivered(projects, flt),
        total=len(projects),
        refreshing=state.refreshing,
        stale_error=stale_error(state),
    )


__all__ = ["DateFilter", "DeliveredFilter", "DeliveredView", "ENDPOINTS", "build", "filter_delivered"]
