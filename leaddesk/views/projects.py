"""Projects page: filterable project table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from leaddesk.cache import keys
from leaddesk.cache.query import QueryState
from leaddesk.views.base import RenderMode, payload_list, render_mode, stale_error

ENDPOINTS = (keys.PROJECTS,)

COLUMNS: tuple[tuple[str, str], ...] = (
    ("projectId", "PROJECT ID"),
    ("clientName", "CLIENT"),
    ("projectType", "TYPE"),
    ("assignedTo", "ASSIGNED TO"),
    ("status", "STATUS"),
    ("startDate", "START DATE"),
    ("deadline", "DEADLINE"),
)
AMOUNT_COLUMN = ("projectValue", "AMOUNT")

STATUS_ORDER = (
    "Planned",
    "In Design",
    "Concept Shared",
    "Under Correction",
    "In Progress",
    "Client Pending",
    "On Hold",
    "Delivered",
    "Completed",
    "Closed",
    "Cancelled",
)


@dataclass(frozen=True)
class ProjectsView:
    mode: RenderMode
    columns: tuple[tuple[str, str], ...]
    rows: list[dict]
    assignees: list[str]
    statuses: list[str]
    refreshing: bool = False
    stale_error: Optional[str] = None


def columns_for(*, is_admin: bool) -> tuple[tuple[str, str], ...]:
    return COLUMNS + (AMOUNT_COLUMN,) if is_admin else COLUMNS


def assignee_name(project: dict) -> str:
    assigned = project.get("assignedTo")
    if isinstance(assigned, dict):
        return str(assigned.get("name") or "")
    return ""


def status_options(projects: Iterable[dict]) -> list[str]:
    """Known statuses in pipeline order, then unknown ones alphabetically.

    "Planned" is always offered so new projects can be filtered for.
    """

    seen = {str(p.get("status")) for p in projects if p.get("status")}
    canonical = {s.lower(): s for s in STATUS_ORDER}
    normalized = {canonical.get(s.lower(), s) for s in seen} | {"Planned"}
    ordered = [s for s in STATUS_ORDER if s in normalized]
    extra = sorted(s for s in normalized if s not in STATUS_ORDER)
    return ordered + extra


def filter_projects(projects: Iterable[dict], *, assigned_to: str = "", status: str = "") -> list[dict]:
    return [
        p
        for p in projects
        if (not assigned_to or assignee_name(p) == assigned_to)
        and (not status or p.get("status") == status)
    ]


def build(
    state: QueryState,
    *,
    is_admin: bool = False,
    assigned_to: str = "",
    status: str = "",
) -> ProjectsView:
    projects = payload_list(state.data, "projects")
    return ProjectsView(
        mode=render_mode(state),
        columns=columns_for(is_admin=is_admin),
        rows=filter_projects(projects, assigned_to=assigned_to, status=status),
        assignees=sorted({name for name in map(assignee_name, projects) if name}),
        statuses=status_options(projects),
        refreshing=state.refreshing,
        stale_error=stale_error(state),
    )


__all__ = [
    "COLUMNS",
    "ENDPOINTS",
    "ProjectsView",
    "build",
    "columns_for",
    "filter_projects",
    "status_options",
]
