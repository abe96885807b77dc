"""Dashboard page: project pipeline metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from leaddesk.cache import keys
from leaddesk.cache.query import QueryState
from leaddesk.views.base import RenderMode, parse_datetime, payload_list, render_mode, stale_error

ENDPOINTS = (keys.PROJECTS,)

ACTIVE_STATUSES = frozenset({"in design", "concept shared", "under correction", "in progress"})
FINISHED_STATUSES = frozenset({"completed", "cancelled"})
DUE_SOON = timedelta(days=7)
RECENT_LIMIT = 6


@dataclass(frozen=True)
class ProjectMetrics:
    total: int = 0
    active: int = 0
    delivered: int = 0
    revenue: float = 0.0
    outstanding: float = 0.0
    overdue: int = 0
    due_soon: int = 0
    recent: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardView:
    mode: RenderMode
    metrics: ProjectMetrics
    refreshing: bool = False
    stale_error: Optional[str] = None


def _status(project: dict) -> str:
    return str(project.get("status") or "").strip().lower()


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _received(project: dict) -> float:
    for name in ("amountReceived", "paidAmount"):
        value = _number(project.get(name))
        if value is not None:
            return value
    return 0.0


def project_metrics(projects: Iterable[dict], *, now: Optional[datetime] = None) -> ProjectMetrics:
    projects = list(projects)
    now = now or datetime.now(timezone.utc)

    active = delivered = overdue = due_soon = 0
    revenue = outstanding = 0.0
    for project in projects:
        status = _status(project)
        value = _number(project.get("projectValue"))

        if status in ACTIVE_STATUSES:
            active += 1
        if status == "delivered":
            delivered += 1
            if value is not None:
                revenue += value
        if value is not None:
            outstanding += max(0.0, value - _received(project))

        if status in FINISHED_STATUSES:
            continue
        deadline = parse_datetime(project.get("deadline"))
        if deadline is None:
            continue
        if deadline < now:
            overdue += 1
        elif deadline - now <= DUE_SOON:
            due_soon += 1

    epoch = datetime.fromtimestamp(0, tz=timezone.utc)
    recent = sorted(
        projects,
        key=lambda p: parse_datetime(p.get("createdAt")) or epoch,
        reverse=True,
    )[:RECENT_LIMIT]

    return ProjectMetrics(
        total=len(projects),
        active=active,
        delivered=delivered,
        revenue=revenue,
        outstanding=outstanding,
        overdue=overdue,
        due_soon=due_soon,
        recent=recent,
    )


def build(state: QueryState, *, now: Optional[datetime] = None) -> DashboardView:
    return DashboardView(
        mode=render_mode(state),
        metrics=project_metrics(payload_list(state.data, "projects"), now=now),
        refreshing=state.refreshing,
        stale_error=stale_error(state),
    )


__all__ = ["ENDPOINTS", "DashboardView", "ProjectMetrics", "build", "project_metrics"]
