"""Speculative cache warm-up.

Navigation intent (hover/focus on a menu item) calls `Prefetcher.prefetch`
for the endpoints the next view will read. By the time the view mounts its
cached query, the entry is usually already populated and renders without a
spinner.

Rules:
- At most one in-flight prefetch per key. The in-flight task is recorded in
  the store before `prefetch()` returns, so a second call in the same tick
  sees it and gets the same task back.
- No token means nothing to prefetch; the store is left untouched.
- Failures are logged at DEBUG and dropped. A later foreground read simply
  performs its own fetch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from functools import partial
from typing import Any, Optional

from leaddesk.cache.keys import build_key
from leaddesk.cache.store import CacheEntry, CacheStore
from leaddesk.client.api_client import ApiClient
from leaddesk.client.errors import ApiError
from leaddesk.core.credentials import TokenStore
from leaddesk.core.metrics import record_fetch
from leaddesk.core.result import Result
from leaddesk.core.tasks import TaskRegistry, registry_or_default

logger = logging.getLogger(__name__)

PrefetchTask = asyncio.Task  # resolves to Result[Any, ApiError]


class Prefetcher:
    def __init__(
        self,
        store: CacheStore,
        client: ApiClient,
        credentials: TokenStore,
        *,
        tasks: Optional[TaskRegistry] = None,
    ) -> None:
        self._store = store
        self._client = client
        self._credentials = credentials
        self._tasks = registry_or_default(tasks)

    def prefetch(self, endpoint: Optional[str]) -> Optional[PrefetchTask]:
        """Start (or join) a background fetch for `endpoint`.

        Returns:
            The in-flight task, or None when there is nothing to do (empty
            endpoint or no token). Awaiting the task never raises except
            for cancellation.
        """

        key = build_key(endpoint)
        if not key:
            return None

        existing = self._store.get(key)
        if existing is not None and existing.in_flight:
            record_fetch(path="prefetch", outcome="joined")
            return existing.pending

        token = self._credentials.get_token()
        if not token:
            record_fetch(path="prefetch", outcome="skipped")
            return None

        task = self._tasks.spawn(self._run(key, token), name=f"prefetch:{key}")
        task.add_done_callback(partial(self._settle, key))
        self._store.set(key, replace(existing or CacheEntry(), pending=task))
        return task

    def in_flight(self, endpoint: Optional[str]) -> Optional[PrefetchTask]:
        entry = self._store.get(build_key(endpoint))
        if entry is None or not entry.in_flight:
            return None
        return entry.pending

    def cancel(self, endpoint: Optional[str]) -> bool:
        """Abort an in-flight prefetch. Returns True if one was cancelled."""

        task = self.in_flight(endpoint)
        if task is None:
            return False
        return task.cancel()

    async def _run(self, key: str, token: str) -> Result[Any, ApiError]:
        result = await self._client.get_json(key, token=token)
        if result.is_failure():
            record_fetch(path="prefetch", outcome="error")
            logger.debug("cache.prefetch_failed", extra={"key": key, "error": str(result.error)})
            return result

        current = self._store.get(key) or CacheEntry()
        self._store.set(key, replace(current, data=result.value, fetched_at=self._store.now()))
        record_fetch(path="prefetch", outcome="success")
        return result

    def _settle(self, key: str, task: asyncio.Task) -> None:
        # Runs for success, failure and cancellation alike; only clears the
        # marker if no newer prefetch replaced it.
        if task.cancelled():
            record_fetch(path="prefetch", outcome="cancelled")
        entry = self._store.get(key)
        if entry is not None and entry.pending is task:
            self._store.set(key, replace(entry, pending=None))


__all__ = ["PrefetchTask", "Prefetcher"]
