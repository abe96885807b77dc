from __future__ import annotations

import asyncio

import pytest
from aiohttp import web

from leaddesk.app import DashboardApp
from leaddesk.cache.keys import AUTH_STATS, AUTH_USERS, LEADS, LEADS_STATS, PROJECTS
from leaddesk.cache.query import QueryStatus
from leaddesk.cache.store import CacheEntry
from leaddesk.core.credentials import MemoryTokenStore
from leaddesk.core.events import CallCompleted, LeadDeleted
from leaddesk.core.settings import get_settings
from leaddesk.views.base import RenderMode


@pytest.fixture
def app(fake_client, credentials, clock) -> DashboardApp:
    return DashboardApp.create(credentials=credentials, client=fake_client, clock=clock)


def test_admin_endpoints_get_the_longer_ttl(app):
    assert app.ttl_for(AUTH_STATS) == 300.0
    assert app.ttl_for(AUTH_USERS) == 300.0
    assert app.ttl_for(PROJECTS) == 30.0
    assert app.query(AUTH_USERS).ttl_seconds == 300.0
    assert app.query(PROJECTS, ttl_seconds=5).ttl_seconds == 5.0


@pytest.mark.asyncio
async def test_hover_then_mount_renders_without_spinner(app, fake_client):
    fake_client.respond(PROJECTS, {"projects": [{"id": 1, "status": "Delivered"}]})
    nav = app.navigation()

    preloads = nav.pointer_enter("dashboard")
    await asyncio.gather(preloads.route, preloads.data)

    module = await app.open_view("dashboard")
    query = app.query(PROJECTS)
    state = query.mount()
    view = module.build(state)

    assert view.mode is RenderMode.CONTENT
    assert view.metrics.delivered == 1
    assert fake_client.calls_for(PROJECTS) == 1
    query.unmount()


@pytest.mark.asyncio
async def test_admin_page_mounted_mid_prefetch_joins_stats_request(app, fake_client):
    fake_client.respond(AUTH_STATS, {"stats": {"totalUsers": 1}})
    fake_client.respond(AUTH_USERS, {"users": [{"name": "Priya"}]})
    fake_client.hold(AUTH_STATS)
    nav = app.navigation(is_admin=True)

    preloads = nav.focus("admin")
    page = app.admin_page()
    page.mount()
    await asyncio.sleep(0)
    fake_client.release(AUTH_STATS)
    await asyncio.gather(preloads.route, preloads.data, page.wait_idle())

    assert fake_client.calls_for(AUTH_STATS) == 1
    assert page.view().stats == {"totalUsers": 1}
    assert page.view().users == [{"name": "Priya"}]


@pytest.mark.asyncio
async def test_lead_events_mark_lead_reads_stale(app, clock, fake_client):
    app.store.set(LEADS, CacheEntry(data={"leads": [{"_id": "l1"}]}, fetched_at=clock()))
    app.store.set(LEADS_STATS, CacheEntry(data={"total": 1}, fetched_at=clock()))
    fake_client.respond(LEADS, {"leads": []})

    await app.events.publish(LeadDeleted(lead_id="l1"))
    query = app.query(LEADS)
    state = query.mount()

    assert state.status is QueryStatus.REFRESHING
    await query.wait_idle()
    assert query.state.data == {"leads": []}


@pytest.mark.asyncio
async def test_signed_out_console_issues_no_requests(fake_client, clock):
    app = DashboardApp.create(credentials=MemoryTokenStore(), client=fake_client, clock=clock)

    preloads = app.navigation().pointer_enter("projects")
    state = app.query(PROJECTS).mount()
    await preloads.route

    assert preloads.data is None
    assert state.loading is False
    assert fake_client.calls == []
    await app.aclose()


@pytest.mark.asyncio
async def test_aclose_unsubscribes_and_keeps_injected_client(app, fake_client):
    closed: list = []

    async def close() -> None:
        closed.append(True)

    fake_client.close = close

    async with app:
        pass

    assert app.events.handler_count(LeadDeleted) == 0
    assert closed == []


@pytest.mark.asyncio
async def test_activity_feed_follows_app_events_until_close(app):
    feed = app.activity_feed()

    await app.events.publish(CallCompleted(lead_id="l1", lead_name="Acme", duration_seconds=65))

    assert [a.type for a in feed.items] == ["call_completed"]
    assert feed.items[0].details == "Call duration: 1m 5s"

    await app.aclose()
    await app.events.publish(CallCompleted(lead_id="l2", lead_name="Globex"))

    assert app.events.handler_count(CallCompleted) == 0
    assert len(feed.items) == 1


@pytest.mark.asyncio
async def test_closing_one_app_leaves_another_apps_fetches_running(fake_client, credentials, clock):
    fake_client.respond(PROJECTS, {"projects": []})
    fake_client.hold(PROJECTS)
    first = DashboardApp.create(credentials=credentials, client=fake_client, clock=clock)
    second = DashboardApp.create(credentials=credentials, client=fake_client, clock=clock)
    query = second.query(PROJECTS)
    query.mount()
    await asyncio.sleep(0)

    await first.aclose(timeout=0.05)

    assert second.tasks.pending_count() == 1
    fake_client.release(PROJECTS)
    await query.wait_idle()
    assert query.state.data == {"projects": []}
    await second.aclose()


@pytest.mark.asyncio
async def test_default_wiring_talks_to_a_real_backend(serve, monkeypatch, tmp_path, clock):
    seen: list = []

    async def projects(request: web.Request) -> web.Response:
        seen.append(request.headers.get("Authorization"))
        return web.json_response({"projects": []})

    backend = web.Application()
    backend.router.add_get("/api/projects", projects)
    token_file = tmp_path / "token"
    token_file.write_text("file-token\n", encoding="utf-8")

    async with serve(backend) as base_url:
        monkeypatch.setenv("API_BASE_URL", base_url)
        monkeypatch.setenv("AUTH_TOKEN_FILE", str(token_file))
        get_settings.cache_clear()

        async with DashboardApp.create(clock=clock) as app:
            query = app.query(PROJECTS)
            await query.refetch()

    assert seen == ["Bearer file-token"]
    assert query.state.data == {"projects": []}
