"""Console navigation table.

Each menu item names the view module it opens and the endpoints that view
reads on mount, in the order they should be prefetched.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from leaddesk.cache import keys
from leaddesk.cache.policy import ADMIN_POLICY, DEFAULT_POLICY, CachePolicy
from leaddesk.routes.preload import LazyView


@dataclass(frozen=True)
class NavItem:
    key: str
    path: str
    label: str
    module_path: str
    endpoints: tuple[str, ...] = ()
    admin_only: bool = False
    policy: CachePolicy = field(default=DEFAULT_POLICY)

    def lazy_view(self) -> LazyView:
        return LazyView(self.key, self.module_path)


NAV_ITEMS: tuple[NavItem, ...] = (
    NavItem(
        key="dashboard",
        path="/dashboard",
        label="Dashboard",
        module_path="leaddesk.views.dashboard",
        endpoints=(keys.PROJECTS,),
    ),
    NavItem(
        key="admin",
        path="/admin",
        label="Admin",
        module_path="leaddesk.views.admin",
        endpoints=(keys.AUTH_STATS, keys.AUTH_USERS),
        admin_only=True,
        policy=ADMIN_POLICY,
    ),
    NavItem(
        key="projects",
        path="/projects",
        label="Projects",
        module_path="leaddesk.views.projects",
        endpoints=(keys.PROJECTS,),
    ),
    NavItem(
        key="delivered",
        path="/delivered",
        label="Delivered",
        module_path="leaddesk.views.delivered",
        endpoints=(keys.PROJECTS_DELIVERED,),
    ),
)


def nav_table(items: tuple[NavItem, ...] = NAV_ITEMS) -> dict[str, NavItem]:
    return {item.key: item for item in items}


def lazy_views(items: tuple[NavItem, ...] = NAV_ITEMS) -> dict[str, LazyView]:
    return {item.key: item.lazy_view() for item in items}


def item_for_path(path: str, items: tuple[NavItem, ...] = NAV_ITEMS) -> NavItem | None:
    for item in items:
        if item.path == path:
            return item
    return None


__all__ = ["NAV_ITEMS", "NavItem", "item_for_path", "lazy_views", "nav_table"]
