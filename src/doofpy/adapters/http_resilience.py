"""Async HTTP client shared by every lookup in one batch.

Requests pass, in order, through the in-flight cap, the rate limiter, the optional
hishel cache and the httpx-retries transport.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import AsyncExitStack
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as CachedResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import RetryTransport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from doofpy.config.http_resilience import CacheConfig, CachePredicate, ResilienceConfig

log = getLogger(__name__)


class ResilientClient:
    """``httpx.AsyncClient`` configured from a :class:`ResilienceConfig`.

    ``transport`` replaces the network layer under the retry transport; tests pass an
    ``httpx.MockTransport`` there.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.request_count = 0
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        self._in_flight = (
            asyncio.Semaphore(config.max_in_flight) if config.max_in_flight else None
        )

        options: dict[str, Any] = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(transport=transport, retry=config.retry.build()),
            "headers": {"User-Agent": config.user_agent},
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url

        if config.cache is None:
            self._client: httpx.AsyncClient = httpx.AsyncClient(**options)
        else:
            storage, policy = _cache_components(config.cache)
            self._client = AsyncCacheClient(**options, storage=storage, policy=policy)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        log.debug("%s: closing after %d requests", self.config.name, self.request_count)
        await self._client.aclose()

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> httpx.Response:
        async with AsyncExitStack() as slots:
            if self._in_flight is not None:
                await slots.enter_async_context(self._in_flight)
            if self._limiter is not None:
                await slots.enter_async_context(self._limiter)
            self.request_count += 1
            return await self._client.get(url, params=params)


class _PayloadFilter(BaseFilter[CachedResponse]):
    """Only store JSON bodies the predicate accepts; anything else is cached as-is."""

    def __init__(self, predicate: CachePredicate) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: CachedResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return True
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return True
        return bool(self._predicate(payload))


def _cache_components(config: CacheConfig) -> tuple[AsyncSqliteStorage, FilterPolicy | None]:
    database_path = str(config.path) if config.path is not None else ":memory:"
    storage = AsyncSqliteStorage(database_path=database_path, default_ttl=config.ttl_seconds)
    policy = (
        FilterPolicy(response_filters=[_PayloadFilter(config.should_cache)])
        if config.should_cache is not None
        else None
    )
    return storage, policy
