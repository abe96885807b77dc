"""HTTP client for the console's backend REST API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp

from leaddesk.client.errors import ApiError, NetworkError, RequestFailed, failure_message
from leaddesk.core.metrics import observe_request
from leaddesk.core.result import Failure, Result, Success

logger = logging.getLogger(__name__)


class ApiClient:
    """Authenticated JSON GETs against `<base_url>/<endpoint>`.

    Every call returns a `Result`: HTTP and transport failures come back as
    `Failure(ApiError)` rather than being raised.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = (base_url or "").strip().rstrip("/")
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, endpoint: str) -> str:
        return f"{self._base_url}/{str(endpoint or '').lstrip('/')}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout or None)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def get_json(self, endpoint: str, *, token: str) -> Result[Any, ApiError]:
        url = self.url_for(endpoint)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        session = self._get_session()
        started = time.perf_counter()
        try:
            async with session.get(url, headers=headers) as resp:
                status = resp.status
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
        except asyncio.TimeoutError:
            observe_request(outcome="timeout", duration_seconds=time.perf_counter() - started)
            logger.debug("api_client.timeout", extra={"endpoint": endpoint})
            return Failure(NetworkError(f"Request timed out after {self._timeout}s"))
        except aiohttp.ClientError as exc:
            observe_request(outcome="network_error", duration_seconds=time.perf_counter() - started)
            logger.debug("api_client.network_error", exc_info=True, extra={"endpoint": endpoint})
            return Failure(NetworkError(str(exc) or exc.__class__.__name__))

        elapsed = time.perf_counter() - started
        if not 200 <= status < 300:
            observe_request(outcome="http_error", duration_seconds=elapsed)
            logger.debug("api_client.request_failed", extra={"endpoint": endpoint, "status": status})
            return Failure(RequestFailed(status, failure_message(status, body)))

        observe_request(outcome="success", duration_seconds=elapsed)
        return Success(body)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = ["ApiClient"]
