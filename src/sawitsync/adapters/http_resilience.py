"""httpx clients wired with retries and an optional rate limit.

The dashboard API is called two ways during an import: blocking, for master
data and alias reads, and concurrently from the apply engine for record
writes. Both clients share the retry policy of one :class:`ResilienceConfig`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import RetryTransport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from sawitsync.config.http_resilience import ResilienceConfig

type JsonBody = Mapping[str, object] | list[object]


def _retrying(
    config: ResilienceConfig,
    transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None,
) -> RetryTransport:
    if transport is None:
        return RetryTransport(retry=config.retry.build())
    return RetryTransport(transport=transport, retry=config.retry.build())


def _headers(config: ResilienceConfig) -> dict[str, str] | None:
    return dict(config.default_headers) if config.default_headers else None


class ResilientClient:
    """Async client for concurrent writes; ``async with`` closes it.

    ``transport`` replaces the network layer underneath the retry transport,
    which is how tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        self._client = httpx.AsyncClient(
            base_url=config.base_url or "",
            timeout=config.timeout_seconds,
            headers=_headers(config),
            event_hooks={"response": list(config.response_hooks)},
            transport=_retrying(config, transport),
        )

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
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: JsonBody | None = None,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        if self._limiter is None:
            return await self._client.request(method, url, json=json, params=params)
        async with self._limiter:
            return await self._client.request(method, url, json=json, params=params)

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, *, json: JsonBody | None = None) -> httpx.Response:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, *, json: JsonBody | None = None) -> httpx.Response:
        return await self.request("PUT", url, json=json)


def build_sync_client(
    config: ResilienceConfig,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Blocking counterpart for the sequential, non-write calls of an import."""

    return httpx.Client(
        base_url=config.base_url or "",
        timeout=config.timeout_seconds,
        headers=_headers(config),
        transport=_retrying(config, transport),
    )
