"""Admin page: user statistics and the user list."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

from leaddesk.cache import keys
from leaddesk.cache.query import CachedQuery
from leaddesk.views.base import RenderMode, payload_list

ENDPOINTS = (keys.AUTH_STATS, keys.AUTH_USERS)

DEFAULT_ERROR = "Failed to load admin data. Please try again."


@dataclass(frozen=True)
class AdminView:
    mode: RenderMode
    stats: dict = field(default_factory=dict)
    users: list[dict] = field(default_factory=list)
    error: Optional[str] = None
    refreshing: bool = False


class AdminPage:
    """Binds the two admin queries; stats are read before users."""

    def __init__(self, stats: CachedQuery, users: CachedQuery) -> None:
        self.stats = stats
        self.users = users

    def mount(self) -> AdminView:
        self.stats.mount()
        self.users.mount()
        return self.view()

    def unmount(self) -> None:
        self.stats.unmount()
        self.users.unmount()

    async def refetch_all(self) -> list[Any]:
        return await asyncio.gather(self.stats.refetch(), self.users.refetch())

    async def wait_idle(self) -> None:
        await asyncio.gather(self.stats.wait_idle(), self.users.wait_idle())

    def view(self) -> AdminView:
        stats_state, users_state = self.stats.state, self.users.state

        stats = {}
        if isinstance(stats_state.data, dict) and isinstance(stats_state.data.get("stats"), dict):
            stats = dict(stats_state.data["stats"])

        first_error = stats_state.error or users_state.error
        error = (str(first_error) or DEFAULT_ERROR) if first_error is not None else None

        have_data = stats_state.data is not None or users_state.data is not None
        if stats_state.loading or users_state.loading:
            mode = RenderMode.CONTENT if have_data else RenderMode.SPINNER
        elif have_data:
            mode = RenderMode.CONTENT
        elif error is not None:
            mode = RenderMode.RETRY
        else:
            mode = RenderMode.EMPTY

        return AdminView(
            mode=mode,
            stats=stats,
            users=payload_list(users_state.data, "users"),
            error=error,
            refreshing=stats_state.refreshing or users_state.refreshing,
        )


__all__ = ["AdminPage", "AdminView", "ENDPOINTS"]
