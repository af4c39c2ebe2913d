"""Bus data supplied to every conversation turn.

The built-in data is always available. When an external source is configured
it is fetched with a hard timeout, merged over the built-in routes and cached
for ``bus_data_cache_ms``. Concurrent turns share a single refresh. Failures
never reach the caller: the last good context (or the built-in one) is served
instead.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings import Settings, get_settings
from context.bus_data import builtin_context
from context.normalize import normalize_external_routes

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedContext:
    data: dict[str, Any]
    fetched_at: float


class ContextProvider:
    """Read/refresh interface over the merged bus data."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: CachedContext | None = None
        self._failed_at: float | None = None
        self._refresh_guard: asyncio.Lock | None = None
        self._refresh_loop: asyncio.AbstractEventLoop | None = None

    @property
    def cache_window_seconds(self) -> float:
        return self._settings.bus_data_cache_ms / 1000.0

    async def get_context(self) -> dict[str, Any]:
        if not self._settings.bus_data_source_configured:
            return builtin_context()

        served = self._serve_without_fetch()
        if served is not None:
            return served

        # One refresh at a time; callers that queued behind it reuse its result.
        async with self._refresh_lock():
            served = self._serve_without_fetch()
            if served is not None:
                return served
            return await self._refresh()

    def _serve_without_fetch(self) -> dict[str, Any] | None:
        now = self._clock()
        with self._lock:
            cached = self._cached
            failed_at = self._failed_at

        if cached is not None and now - cached.fetched_at < self.cache_window_seconds:
            return copy.deepcopy(cached.data)
        if failed_at is not None and now - failed_at < self._settings.bus_data_retry_seconds:
            return self._fallback(cached)
        return None

    def _refresh_lock(self) -> asyncio.Lock:
        # asyncio locks belong to one event loop; each loop gets its own.
        loop = asyncio.get_running_loop()
        if self._refresh_guard is None or self._refresh_loop is not loop:
            self._refresh_guard = asyncio.Lock()
            self._refresh_loop = loop
        return self._refresh_guard

    async def _refresh(self) -> dict[str, Any]:
        with self._lock:
            cached = self._cached

        try:
            payload = await asyncio.wait_for(
                self._fetch(), timeout=self._settings.bus_data_fetch_timeout_seconds
            )
        except Exception as exc:
            LOGGER.warning("Bus data API fetch failed, using last good data: %r", exc)
            with self._lock:
                self._failed_at = self._clock()
            return self._fallback(cached)

        merged = builtin_context()
        external = normalize_external_routes(payload)
        if external:
            merged["routes"].update(external)
        else:
            LOGGER.info("Bus data API returned no usable routes; using built-in routes")

        refreshed = CachedContext(data=merged, fetched_at=self._clock())
        with self._lock:
            self._cached = refreshed
            self._failed_at = None
        return copy.deepcopy(refreshed.data)

    def _fallback(self, cached: CachedContext | None) -> dict[str, Any]:
        if cached is None:
            return builtin_context()
        return copy.deepcopy(cached.data)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._settings.bookme_app_version:
            headers["app-version"] = self._settings.bookme_app_version
        if self._settings.bookme_auth:
            headers["authorization"] = self._settings.bookme_auth
        if self._settings.bus_data_api_method == "POST":
            headers["Content-Type"] = "application/json"
        return headers

    def _body(self) -> Any:
        raw = self._settings.bus_data_api_body
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("BUS_DATA_API_BODY is not valid JSON; sending no body")
            return None

    async def _fetch(self) -> Any:
        method = self._settings.bus_data_api_method
        url = (self._settings.bus_data_api_url or "").strip()
        kwargs: dict[str, Any] = {"headers": self._headers()}
        if method == "POST":
            body = self._body()
            if body is not None:
                kwargs["json"] = body

        async with httpx.AsyncClient(
            timeout=self._settings.bus_data_fetch_timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.request(method, url, **kwargs)

        response.raise_for_status()
        return response.json()
