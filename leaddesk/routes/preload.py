"""Lazily imported view modules and their ahead-of-time preloading.

View modules are imported on first navigation. Hovering or focusing a menu
item calls `RoutePreloader.preload` so the import happens (off the event
loop thread) before the click. The interpreter's module cache makes
repeated loads free; a failed preload is logged and forgotten, and the view
is imported again, for real, at navigation time.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
import sys
from types import ModuleType
from typing import Callable, Mapping, Optional

from leaddesk.core.tasks import TaskRegistry, registry_or_default

logger = logging.getLogger(__name__)

Importer = Callable[[str], ModuleType]


class LazyView:
    """A view module that is imported on demand."""

    def __init__(self, name: str, module_path: str, *, importer: Importer = importlib.import_module) -> None:
        self.name = name
        self.module_path = module_path
        self._importer = importer

    @property
    def loaded(self) -> bool:
        return self.module_path in sys.modules

    async def load(self) -> ModuleType:
        module = sys.modules.get(self.module_path)
        if module is not None:
            return module
        return await asyncio.to_thread(self._importer, self.module_path)

    def __repr__(self) -> str:
        return f"LazyView({self.name!r}, {self.module_path!r})"


class RoutePreloader:
    def __init__(self, views: Mapping[str, LazyView], *, tasks: Optional[TaskRegistry] = None) -> None:
        self._views = dict(views)
        self._tasks = registry_or_default(tasks)

    def view(self, key: str) -> Optional[LazyView]:
        return self._views.get(key)

    def preload(self, key: str) -> Optional[asyncio.Task]:
        """Start importing the view for `key` in the background.

        Unknown keys are ignored. The returned task never raises.
        """

        view = self._views.get(key)
        if view is None:
            return None
        return self._tasks.spawn(self._preload(view), name=f"preload:{key}")

    async def load(self, key: str) -> ModuleType:
        """Navigation-time load; import errors propagate to the caller."""

        view = self._views.get(key)
        if view is None:
            raise KeyError(key)
        return await view.load()

    async def _preload(self, view: LazyView) -> Optional[ModuleType]:
        try:
            return await view.load()
        except Exception:
            logger.debug(
                "routes.preload_failed",
                exc_info=True,
                extra={"view": view.name, "module": view.module_path},
            )
            return None


__all__ = ["Importer", "LazyView", "RoutePreloader"]
