from __future__ import annotations

import sys
import types

import pytest

from leaddesk.routes.preload import LazyView, RoutePreloader
from leaddesk.routes.table import NAV_ITEMS, item_for_path, lazy_views, nav_table


def _counting_importer(calls: list):
    def importer(path: str) -> types.ModuleType:
        calls.append(path)
        module = types.ModuleType(path)
        sys.modules[path] = module
        return module

    return importer


@pytest.fixture
def fake_module_path():
    path = "leaddesk_test_views.fake_view"
    yield path
    sys.modules.pop(path, None)


def test_nav_table_lists_every_view_with_its_endpoints():
    table = nav_table()

    assert list(table) == ["dashboard", "admin", "projects", "delivered"]
    assert table["admin"].endpoints == ("api/auth/stats", "api/auth/users")
    assert table["admin"].admin_only
    assert table["admin"].policy.ttl_seconds == 300
    assert table["dashboard"].policy.ttl_seconds == 30
    assert item_for_path("/delivered").key == "delivered"
    assert item_for_path("/nowhere") is None
    assert set(lazy_views()) == {item.key for item in NAV_ITEMS}


@pytest.mark.asyncio
async def test_preload_imports_real_view_module():
    preloader = RoutePreloader(lazy_views())

    task = preloader.preload("delivered")
    module = await task

    assert module is sys.modules["leaddesk.views.delivered"]
    assert preloader.view("delivered").loaded


@pytest.mark.asyncio
async def test_repeated_loads_import_once(fake_module_path):
    calls: list = []
    view = LazyView("fake", fake_module_path, importer=_counting_importer(calls))
    preloader = RoutePreloader({"fake": view})

    first = await preloader.preload("fake")
    second = await preloader.preload("fake")
    third = await preloader.load("fake")

    assert first is second is third
    assert calls == [fake_module_path]


@pytest.mark.asyncio
async def test_failed_preload_is_swallowed_and_navigation_retries(fake_module_path):
    attempts: list = []

    def flaky(path: str) -> types.ModuleType:
        attempts.append(path)
        if len(attempts) == 1:
            raise ImportError("chunk failed to load")
        module = types.ModuleType(path)
        sys.modules[path] = module
        return module

    preloader = RoutePreloader({"fake": LazyView("fake", fake_module_path, importer=flaky)})

    assert await preloader.preload("fake") is None
    module = await preloader.load("fake")

    assert module.__name__ == fake_module_path
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_navigation_load_propagates_import_errors(fake_module_path):
    def broken(path: str) -> types.ModuleType:
        raise ImportError("missing")

    preloader = RoutePreloader({"fake": LazyView("fake", fake_module_path, importer=broken)})

    with pytest.raises(ImportError):
        await preloader.load("fake")


@pytest.mark.asyncio
async def test_unknown_view_key():
    preloader = RoutePreloader(lazy_views())

    assert preloader.preload("reports") is None
    with pytest.raises(KeyError):
        await preloader.load("reports")
