"""Background task helpers.

The event loop only keeps weak references to tasks, so fire-and-forget work
(prefetches, background revalidation, route preloads) must be anchored
somewhere or it can be garbage collected mid-flight. A `TaskRegistry`
anchors the tasks it spawns until they finish and logs anything they raise.

Each `DashboardApp` owns a registry and hands it to the components it
builds, so shutting one app down only waits on that app's work. Components
built standalone (tests, scripts) fall back to `default_registry`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskRegistry:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, T], *, name: str) -> asyncio.Task[T]:
        """Schedule `coro` on the running loop and keep it alive until done."""

        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def pending_count(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for spawned tasks to finish; cancel whatever is left after `timeout`."""

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        # Tasks may spawn follow-up tasks while we wait, so re-scan until quiet.
        while True:
            tasks = self._live(loop)
            remaining = deadline - loop.time()
            if not tasks or remaining <= 0:
                break
            await asyncio.wait(tasks, timeout=remaining)

        pending = self._live(loop)
        if not pending:
            return
        logger.warning("tasks.drain_timeout", extra={"pending": len(pending)})
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _live(self, loop: asyncio.AbstractEventLoop) -> list[asyncio.Task]:
        return [t for t in self._tasks if t.get_loop() is loop and not t.done()]

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "tasks.background_failed",
                exc_info=exc,
                extra={"task_name": task.get_name()},
            )


default_registry = TaskRegistry()


def registry_or_default(registry: Optional[TaskRegistry]) -> TaskRegistry:
    return registry if registry is not None else default_registry


def install_exception_handler() -> None:
    """Log exceptions that escape tasks not created through a registry."""

    def handle_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exception = context.get("exception")
        message = context.get("message", "Unhandled exception in async task")
        if exception is not None:
            logger.error("Asyncio exception handler caught: %s", message, exc_info=exception)
        else:
            logger.error("Asyncio exception handler caught: %s (context: %s)", message, context)

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running loop to install exception handler yet")
        return
    loop.set_exception_handler(handle_exception)


__all__ = [
    "TaskRegistry",
    "default_registry",
    "install_exception_handler",
    "registry_or_default",
]
