"""Composition root for the console's data layer.

`DashboardApp` owns the single cache store of the process and hands it to
every cached query, the prefetcher and the navigation intent source. Tests
build their own instance instead of sharing module-level state.
"""

from __future__ import annotations

import logging
import time
from types import ModuleType
from typing import TYPE_CHECKING, Callable, Optional

from leaddesk.cache import keys
from leaddesk.cache.policy import ADMIN_POLICY
from leaddesk.cache.prefetch import Prefetcher
from leaddesk.cache.query import CachedQuery
from leaddesk.cache.store import CacheStore
from leaddesk.client.api_client import ApiClient
from leaddesk.core.credentials import FileTokenStore, TokenStore
from leaddesk.core.events import (
    EventBus,
    LeadAssigned,
    LeadDeleted,
    LeadsImported,
    LeadStatusUpdated,
    invalidate_on,
)
from leaddesk.core.logging import configure_logging
from leaddesk.core.settings import Settings, get_settings
from leaddesk.core.tasks import TaskRegistry, install_exception_handler
from leaddesk.nav.intents import NavigationIntents
from leaddesk.routes.preload import RoutePreloader
from leaddesk.routes.table import NAV_ITEMS, NavItem, lazy_views, nav_table

if TYPE_CHECKING:
    from leaddesk.views.activity import ActivityFeed
    from leaddesk.views.admin import AdminPage

logger = logging.getLogger(__name__)

# Lead mutations make the leads list and its counters stale.
LEAD_INVALIDATIONS = {
    LeadDeleted: (keys.LEADS, keys.LEADS_STATS),
    LeadStatusUpdated: (keys.LEADS, keys.LEADS_STATS),
    LeadAssigned: (keys.LEADS,),
    LeadsImported: (keys.LEADS, keys.LEADS_STATS),
}


class DashboardApp:
    def __init__(
        self,
        *,
        settings: Settings,
        store: CacheStore,
        client: ApiClient,
        credentials: TokenStore,
        events: EventBus,
        nav_items: tuple[NavItem, ...] = NAV_ITEMS,
        owns_client: bool = True,
    ) -> None:
        self.settings = settings
        self.store = store
        self.client = client
        self.credentials = credentials
        self.events = events
        self.nav_items = nav_items
        self.tasks = TaskRegistry()
        self.prefetcher = Prefetcher(store, client, credentials, tasks=self.tasks)
        self.preloader = RoutePreloader(lazy_views(nav_items), tasks=self.tasks)
        self._feeds: list[ActivityFeed] = []
        self._owns_client = owns_client
        # Endpoints read by admin-policy views use the admin TTL from settings.
        self._admin_endpoints = frozenset(
            endpoint for item in nav_items if item.policy == ADMIN_POLICY for endpoint in item.endpoints
        )
        self._unsubscribe_invalidation = invalidate_on(events, store, LEAD_INVALIDATIONS)

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        *,
        credentials: Optional[TokenStore] = None,
        client: Optional[ApiClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> DashboardApp:
        settings = settings or get_settings()
        configure_logging(settings)
        owns_client = client is None
        if client is None:
            client = ApiClient(settings.api_base_url, timeout=settings.api_timeout_seconds)
        if credentials is None:
            credentials = FileTokenStore(settings.auth_token_file)
        logger.info(
            "app.created",
            extra={"api_base_url": settings.api_base_url, "environment": settings.environment},
        )
        return cls(
            settings=settings,
            store=CacheStore(clock=clock),
            client=client,
            credentials=credentials,
            events=EventBus(),
            owns_client=owns_client,
        )

    def ttl_for(self, endpoint: Optional[str]) -> float:
        if endpoint in self._admin_endpoints:
            return self.settings.admin_cache_ttl_seconds
        return self.settings.cache_ttl_seconds

    def query(self, endpoint: Optional[str], *, ttl_seconds: Optional[float] = None) -> CachedQuery:
        """Build a cached query bound to this app's store and credentials."""

        return CachedQuery(
            endpoint,
            store=self.store,
            client=self.client,
            credentials=self.credentials,
            ttl_seconds=self.ttl_for(endpoint) if ttl_seconds is None else ttl_seconds,
            tasks=self.tasks,
        )

    def navigation(self, *, is_admin: bool = False) -> NavigationIntents:
        return NavigationIntents(
            nav_table(self.nav_items),
            preloader=self.preloader,
            prefetcher=self.prefetcher,
            is_admin=is_admin,
            tasks=self.tasks,
        )

    def admin_page(self) -> AdminPage:
        from leaddesk.views.admin import AdminPage

        return AdminPage(self.query(keys.AUTH_STATS), self.query(keys.AUTH_USERS))

    def activity_feed(self) -> ActivityFeed:
        """Recent-activity feed fed by this app's lead events until `aclose()`."""

        from leaddesk.views.activity import ActivityFeed

        feed = ActivityFeed()
        feed.attach(self.events)
        self._feeds.append(feed)
        return feed

    async def open_view(self, key: str) -> ModuleType:
        """Import the view module for a navigation target (raises on failure)."""

        return await self.preloader.load(key)

    async def aclose(self, *, timeout: float = 10.0) -> None:
        self._unsubscribe_invalidation()
        for feed in self._feeds:
            feed.detach()
        self._feeds.clear()
        await self.tasks.drain(timeout)
        if self._owns_client:
            await self.client.close()

    async def __aenter__(self) -> DashboardApp:
        install_exception_handler()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.aclose()
        return False


__all__ = ["DashboardApp", "LEAD_INVALIDATIONS"]
