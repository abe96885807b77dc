from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from prometheus_client import REGISTRY

from leaddesk.cache.keys import AUTH_STATS, PROJECTS
from leaddesk.cache.prefetch import Prefetcher
from leaddesk.cache.store import CacheEntry
from leaddesk.client.api_client import ApiClient
from leaddesk.client.errors import NetworkError
from leaddesk.core.credentials import MemoryTokenStore


@pytest.mark.asyncio
async def test_concurrent_prefetches_share_one_request(store, fake_client, credentials):
    fake_client.respond(PROJECTS, {"projects": [{"id": 1}]})
    fake_client.hold(PROJECTS)
    prefetcher = Prefetcher(store, fake_client, credentials)

    first = prefetcher.prefetch(PROJECTS)
    second = prefetcher.prefetch(PROJECTS)
    assert first is second
    assert store.get(PROJECTS).pending is first

    fake_client.release(PROJECTS)
    r1, r2 = await asyncio.gather(first, second)

    assert fake_client.calls_for(PROJECTS) == 1
    assert r1.unwrap() == r2.unwrap() == {"projects": [{"id": 1}]}


@pytest.mark.asyncio
async def test_successful_prefetch_fills_store_and_clears_marker(store, clock, fake_client, credentials):
    fake_client.respond(PROJECTS, {"projects": []})
    prefetcher = Prefetcher(store, fake_client, credentials)

    await prefetcher.prefetch(PROJECTS)
    await asyncio.sleep(0)

    entry = store.get(PROJECTS)
    assert entry.data == {"projects": []}
    assert entry.fetched_at == clock()
    assert entry.pending is None
    assert prefetcher.in_flight(PROJECTS) is None


@pytest.mark.asyncio
async def test_prefetch_without_token_is_a_no_op(store, fake_client):
    prefetcher = Prefetcher(store, fake_client, MemoryTokenStore())

    assert prefetcher.prefetch(PROJECTS) is None
    assert fake_client.calls == []
    assert store.get(PROJECTS) is None


@pytest.mark.asyncio
async def test_failed_prefetch_keeps_old_data_and_never_raises(store, fake_client, credentials):
    store.set(PROJECTS, CacheEntry(data={"projects": [{"id": 1}]}, fetched_at=1.0))
    fake_client.respond(PROJECTS, NetworkError("offline"))
    prefetcher = Prefetcher(store, fake_client, credentials)

    result = await prefetcher.prefetch(PROJECTS)
    await asyncio.sleep(0)

    assert result.is_failure()
    entry = store.get(PROJECTS)
    assert entry.data == {"projects": [{"id": 1}]}
    assert entry.fetched_at == 1.0
    assert entry.pending is None


@pytest.mark.asyncio
async def test_prefetch_after_settle_issues_new_request(store, fake_client, credentials):
    fake_client.respond(PROJECTS, {"v": 1}, {"v": 2})
    prefetcher = Prefetcher(store, fake_client, credentials)

    await prefetcher.prefetch(PROJECTS)
    await asyncio.sleep(0)
    await prefetcher.prefetch(PROJECTS)
    await asyncio.sleep(0)

    assert fake_client.calls_for(PROJECTS) == 2
    assert store.get(PROJECTS).data == {"v": 2}


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_prefetch(store, fake_client, credentials):
    fake_client.hold(PROJECTS)
    prefetcher = Prefetcher(store, fake_client, credentials)

    task = prefetcher.prefetch(PROJECTS)
    await asyncio.sleep(0)
    assert prefetcher.cancel(PROJECTS) is True

    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0)

    entry = store.get(PROJECTS)
    assert entry.pending is None
    assert entry.data is None
    assert prefetcher.cancel(PROJECTS) is False


@pytest.mark.asyncio
async def test_joined_prefetch_is_counted(store, fake_client, credentials):
    labels = {"path": "prefetch", "outcome": "joined"}
    before = REGISTRY.get_sample_value("leaddesk_cache_fetches_total", labels) or 0.0
    prefetcher = Prefetcher(store, fake_client, credentials)

    task = prefetcher.prefetch(PROJECTS)
    prefetcher.prefetch(PROJECTS)
    await task

    assert REGISTRY.get_sample_value("leaddesk_cache_fetches_total", labels) == before + 1


@pytest.mark.asyncio
async def test_same_tick_prefetches_hit_backend_once(serve, store, credentials):
    requests: list[str] = []

    async def stats(request: web.Request) -> web.Response:
        requests.append(request.path)
        await asyncio.sleep(0.25)
        return web.json_response({"stats": {"totalUsers": 3}})

    app = web.Application()
    app.router.add_get("/api/auth/stats", stats)

    async with serve(app) as base_url:
        client = ApiClient(base_url)
        prefetcher = Prefetcher(store, client, credentials)
        try:
            tasks = [prefetcher.prefetch(AUTH_STATS), prefetcher.prefetch(AUTH_STATS)]
            results = await asyncio.gather(*tasks)
        finally:
            await client.close()

    assert requests == ["/api/auth/stats"]
    assert [r.unwrap() for r in results] == [{"stats": {"totalUsers": 3}}] * 2
    assert store.get(AUTH_STATS).data == {"stats": {"totalUsers": 3}}
