"""
HTTP transport for long polls and service discovery.

``HttpClient`` is the collaborator the poll loop depends on; ``AiohttpClient``
is the default implementation. Authentication headers, when needed, are
supplied through ``default_headers`` and never inspected here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

import aiohttp
from loguru import logger

from ..datastructures.type_aliases import DurationSeconds, HttpStatusCode, UrlString
from ..exceptions import LongPollTransportError

DEFAULT_CONNECT_TIMEOUT: DurationSeconds = 1.0
DEFAULT_READ_TIMEOUT: DurationSeconds = 5.0


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Status code and raw body of a completed GET."""

    status_code: HttpStatusCode
    body: bytes | None = None


class HttpClient(Protocol):
    """Protocol for the HTTP GET used by the poll loop and locators."""

    async def get(
        self, url: UrlString, *, read_timeout: DurationSeconds
    ) -> HttpResponse:
        """Issue a GET; raise ``LongPollTransportError`` on transport failure."""
        ...


class AiohttpClient:
    """``HttpClient`` backed by a lazily created ``aiohttp.ClientSession``."""

    def __init__(
        self,
        *,
        connect_timeout: DurationSeconds = DEFAULT_CONNECT_TIMEOUT,
        default_headers: Mapping[str, str] | None = None,
    ) -> None:
        self.connect_timeout = connect_timeout
        self.default_headers = dict(default_headers or {})
        self._session: aiohttp.ClientSession | None = None

    @property
    def closed(self) -> bool:
        return self._session is None or self._session.closed

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.default_headers)
        return self._session

    async def get(
        self, url: UrlString, *, read_timeout: DurationSeconds = DEFAULT_READ_TIMEOUT
    ) -> HttpResponse:
        # no total limit: a long poll is expected to sit idle until sock_read fires
        timeout = aiohttp.ClientTimeout(
            total=None, connect=self.connect_timeout, sock_read=read_timeout
        )
        session = self._get_session()
        try:
            async with session.get(url, timeout=timeout) as response:
                if response.status == 304:
                    return HttpResponse(status_code=304)
                body = await response.read()
                return HttpResponse(status_code=response.status, body=body or None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LongPollTransportError(
                f"GET {url} failed: {type(e).__name__}: {e}"
            ) from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("Closed HTTP session")
        self._session = None
