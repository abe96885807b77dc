import asyncio
import os
import tempfile
from contextlib import asynccontextmanager
from typing import Any

import pytest

TEST_ENV = {
    "ENVIRONMENT": "test",
    "DATA_DIR": tempfile.mkdtemp(prefix="leaddesk-test-"),
    "API_BASE_URL": "http://backend.test",
    "API_TIMEOUT_SECONDS": "5",
    "CACHE_TTL_SECONDS": "30",
    "ADMIN_CACHE_TTL_SECONDS": "300",
    "LOG_LEVEL": "DEBUG",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value

from leaddesk.cache.store import CacheStore
from leaddesk.client.errors import ApiError
from leaddesk.core import logging as logging_module
from leaddesk.core.credentials import MemoryTokenStore
from leaddesk.core.result import Failure, Success

# Leave the root logger to pytest; tests that need configure_logging reset this flag.
logging_module._configured = True


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Every test sees settings built from the current environment."""

    from leaddesk.core import settings as settings_module

    settings_module.get_settings.cache_clear()
    yield
    settings_module.get_settings.cache_clear()


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeClient:
    """Stands in for ApiClient; records calls and can hold responses."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self._outcomes: dict[str, list[Any]] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def respond(self, endpoint: str, *outcomes: Any) -> None:
        """Queue outcomes for `endpoint`; the last one repeats. ApiError -> Failure."""

        self._outcomes[endpoint] = list(outcomes)

    def hold(self, endpoint: str) -> None:
        self._gates[endpoint] = asyncio.Event()

    def release(self, endpoint: str) -> None:
        gate = self._gates.pop(endpoint, None)
        if gate is not None:
            gate.set()

    def calls_for(self, endpoint: str) -> int:
        return sum(1 for called, _ in self.calls if called == endpoint)

    async def get_json(self, endpoint: str, *, token: str):
        self.calls.append((endpoint, token))
        gate = self._gates.get(endpoint)
        if gate is not None:
            await gate.wait()
        queue = self._outcomes.get(endpoint, [None])
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, ApiError):
            return Failure(outcome)
        return Success(outcome)

    async def close(self) -> None:
        return None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> CacheStore:
    return CacheStore(clock=clock)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def credentials() -> MemoryTokenStore:
    return MemoryTokenStore("test-token")


@asynccontextmanager
async def _serve(app):
    """Run an aiohttp.web app on a local port for the duration of the block."""

    from aiohttp.test_utils import TestServer

    server = TestServer(app)
    await server.start_server()
    try:
        yield f"http://{server.host}:{server.port}"
    finally:
        await server.close()


@pytest.fixture
def serve():
    return _serve
