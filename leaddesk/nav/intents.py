"""Navigation intent source.

Pointer-enter and focus on a menu item are strong hints that the user is
about to open that view. Each intent starts two independent warm-ups:
the view module import (route preload) and the view's backend reads
(data prefetch). Both are advisory; nothing here ever raises to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from leaddesk.cache.prefetch import Prefetcher
from leaddesk.core.tasks import TaskRegistry, registry_or_default
from leaddesk.routes.preload import RoutePreloader
from leaddesk.routes.table import NavItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Preloads:
    """Tasks started for one intent (None where nothing was started)."""

    route: Optional[asyncio.Task] = None
    data: Optional[asyncio.Task] = None


class NavigationIntents:
    def __init__(
        self,
        table: Mapping[str, NavItem],
        *,
        preloader: RoutePreloader,
        prefetcher: Prefetcher,
        is_admin: bool = False,
        tasks: Optional[TaskRegistry] = None,
    ) -> None:
        self._table = dict(table)
        self._tasks = registry_or_default(tasks)
        self._preloader = preloader
        self._prefetcher = prefetcher
        self.is_admin = is_admin

    def visible_items(self) -> list[NavItem]:
        return [item for item in self._table.values() if self.is_admin or not item.admin_only]

    def pointer_enter(self, key: str) -> Preloads:
        return self._intent(key, source="pointer_enter")

    def focus(self, key: str) -> Preloads:
        return self._intent(key, source="focus")

    def _intent(self, key: str, *, source: str) -> Preloads:
        item = self._table.get(key)
        if item is None or (item.admin_only and not self.is_admin):
            return Preloads()
        try:
            route = self._preloader.preload(item.key)
            data = self._prefetch(item)
        except Exception:
            logger.debug("nav.intent_failed", exc_info=True, extra={"key": key, "source": source})
            return Preloads()
        return Preloads(route=route, data=data)

    def _prefetch(self, item: NavItem) -> Optional[asyncio.Task]:
        if not item.endpoints:
            return None
        # The first prefetch is issued synchronously so its in-flight marker
        # is in the store before this intent returns.
        first = self._prefetcher.prefetch(item.endpoints[0])
        rest = item.endpoints[1:]
        if not rest:
            return first
        return self._tasks.spawn(self._prefetch_rest(first, rest), name=f"prefetch_chain:{item.key}")

    async def _prefetch_rest(self, first: Optional[asyncio.Task], rest: tuple[str, ...]) -> None:
        # One request at a time, in table order.
        if first is not None:
            await first
        for endpoint in rest:
            task = self._prefetcher.prefetch(endpoint)
            if task is not None:
                await task


__all__ = ["NavigationIntents", "Preloads"]
