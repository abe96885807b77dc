"""Cached reads bound to a consumer's lifecycle.

A `CachedQuery` is what a view holds for one endpoint. It renders from the
shared `CacheStore` immediately when it can and keeps the store fresh:

- data cached and fresh      -> READY, no request
- data cached but stale      -> READY + refreshing, background revalidation
- nothing cached             -> LOADING, foreground fetch
- no endpoint                -> EMPTY, no request (conditional queries)

Failures never raise out of the query: they land in `state.error`. A failed
background revalidation keeps the stale data on screen.
When fetches overlap, the most recently started one wins: older responses
are dropped instead of overwriting newer data.

Each `mount()` opens a `MountScope`; `unmount()` releases it. Fetches started
under a scope still run to completion after release and still write the
shared store (other consumers benefit), but they no longer touch this
consumer's state.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from leaddesk.cache.keys import build_key
from leaddesk.cache.store import CacheEntry, CacheStore
from leaddesk.client.api_client import ApiClient
from leaddesk.client.errors import ApiError
from leaddesk.core.credentials import TokenStore
from leaddesk.core.metrics import FetchPath, record_cache_read, record_fetch
from leaddesk.core.result import Result
from leaddesk.core.tasks import TaskRegistry, registry_or_default

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0


class QueryStatus(str, enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    REFRESHING = "refreshing"
    ERRORED = "errored"


@dataclass(frozen=True)
class QueryState:
    data: Any = None
    error: Optional[ApiError] = None
    loading: bool = False
    refreshing: bool = False

    @property
    def status(self) -> QueryStatus:
        if self.loading:
            return QueryStatus.LOADING
        if self.data is not None:
            return QueryStatus.REFRESHING if self.refreshing else QueryStatus.READY
        if self.error is not None:
            return QueryStatus.ERRORED
        return QueryStatus.EMPTY


class MountScope:
    """Liveness handle for one mount of a query."""

    __slots__ = ("_alive",)

    def __init__(self) -> None:
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def release(self) -> None:
        self._alive = False


StateListener = Callable[[QueryState], None]


class CachedQuery:
    def __init__(
        self,
        endpoint: Optional[str],
        *,
        store: CacheStore,
        client: ApiClient,
        credentials: TokenStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        tasks: Optional[TaskRegistry] = None,
    ) -> None:
        self._endpoint = endpoint or None
        self._key = build_key(endpoint)
        self._store = store
        self._client = client
        self._credentials = credentials
        self._ttl_seconds = float(ttl_seconds)
        self._listeners: list[StateListener] = []
        self._registry = registry_or_default(tasks)
        self._inflight: set[asyncio.Task] = set()
        # Bumped by every fetch start; only the newest fetch may publish.
        self._generation = 0
        # Live before the first mount, so a refetch issued right after
        # construction still lands in state.
        self._scope = MountScope()
        self._mounted = False

        entry = store.get(self._key)
        cached = entry.data if entry is not None else None
        self._state = QueryState(data=cached, loading=cached is None)

    @property
    def endpoint(self) -> Optional[str]:
        return self._endpoint

    @property
    def key(self) -> str:
        return self._key

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def mounted(self) -> bool:
        return self._mounted

    # Aliases so views can read a query like the state it exposes.
    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def error(self) -> Optional[ApiError]:
        return self._state.error

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def refreshing(self) -> bool:
        return self._state.refreshing

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> QueryState:
        """Attach to the store and start whatever fetch the cache needs.

        Must be called from a running event loop. The returned state already
        reflects the transition (`refreshing`/`loading` set), before any
        network I/O happens.
        """

        if not self._scope.alive:
            self._scope = MountScope()
        self._mounted = True
        scope = self._scope

        if not self._endpoint:
            self._apply(scope, data=None, error=None, loading=False, refreshing=False)
            return self._state

        entry = self._store.get(self._key)
        if entry is not None and entry.has_data:
            self._apply(scope, data=entry.data, loading=False)
            if entry.is_stale(self._store.now(), self._ttl_seconds):
                record_cache_read(state="hit", freshness="stale")
                self._start(scope, background=True, join=True)
            else:
                record_cache_read(state="hit", freshness="fresh")
            return self._state

        record_cache_read(state="miss", freshness="fresh")
        self._start(scope, background=False, join=True)
        return self._state

    def unmount(self) -> None:
        """Stop delivering state updates; in-flight fetches keep running."""

        self._mounted = False
        self._scope.release()

    async def __aenter__(self) -> CachedQuery:
        self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.unmount()
        return False

    async def refetch(self) -> Any:
        """Foreground fetch regardless of cache freshness (user retry).

        Returns:
            The fetched payload, or None on failure / no token / no endpoint.
        """

        task = self._start(self._scope, background=False, join=False)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def wait_idle(self) -> None:
        """Wait until every fetch started by this query has finished."""

        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ------------------------------------------------------------------
    # fetching
    # ------------------------------------------------------------------

    def _start(self, scope: MountScope, *, background: bool, join: bool) -> Optional[asyncio.Task]:
        """Synchronous half of a fetch: token check and state flags."""

        if not self._endpoint:
            return None

        path: FetchPath = "background" if background else "foreground"
        token = self._credentials.get_token()
        if not token:
            record_fetch(path=path, outcome="skipped")
            if not background:
                self._apply(scope, loading=False)
            return None

        if background:
            self._apply(scope, refreshing=True, error=None)
        else:
            # A foreground fetch supersedes any revalidation still in flight.
            self._apply(scope, loading=True, refreshing=False, error=None)

        self._generation += 1
        task = self._registry.spawn(
            self._complete(scope, token, self._generation, path=path, join=join),
            name=f"query:{path}:{self._key}",
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _complete(self, scope: MountScope, token: str, generation: int, *, path: FetchPath, join: bool) -> Any:
        result = await self._load(token, generation, path=path, join=join)
        payload = result.value if result.is_success() else None

        if generation != self._generation:
            logger.debug("cache.query_result_superseded", extra={"key": self._key, "path": path})
            return payload

        if result.is_success():
            self._apply(scope, data=payload, loading=False, refreshing=False)
            return payload

        logger.debug(
            "cache.query_fetch_failed",
            extra={"key": self._key, "path": path, "error": str(result.error)},
        )
        # Stale data (if any) stays in place next to the error.
        self._apply(scope, error=result.error, loading=False, refreshing=False)
        return None

    async def _load(self, token: str, generation: int, *, path: FetchPath, join: bool) -> Result[Any, ApiError]:
        if join:
            entry = self._store.get(self._key)
            pending = entry.pending if entry is not None and entry.in_flight else None
            if pending is not None:
                record_fetch(path=path, outcome="joined")
                try:
                    # The prefetch writes the store itself on success.
                    return await asyncio.shield(pending)
                except asyncio.CancelledError:
                    if not pending.cancelled():
                        raise
                    # Prefetch was aborted; fall through to our own request.

        result = await self._client.get_json(self._key, token=token)
        if result.is_failure():
            record_fetch(path=path, outcome="error")
        elif generation != self._generation:
            # A newer fetch from this query owns the store entry now.
            record_fetch(path=path, outcome="superseded")
        else:
            current = self._store.get(self._key) or CacheEntry()
            self._store.set(
                self._key,
                replace(current, data=result.value, fetched_at=self._store.now()),
            )
            record_fetch(path=path, outcome="success")
        return result

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    def _apply(self, scope: MountScope, **changes: Any) -> None:
        if not scope.alive:
            return
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("cache.query_listener_failed", extra={"key": self._key})


__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CachedQuery",
    "MountScope",
    "QueryState",
    "QueryStatus",
]
