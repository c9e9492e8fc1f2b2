"""
Config server discovery.

The poll loop only needs ``get_config_services()``. ``StaticServiceLocator``
serves a fixed list; ``MetaServiceLocator`` asks a meta server and keeps the
last good answer for when the meta server is unreachable.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from urllib.parse import quote_plus

from loguru import logger

from ..datastructures.notification import ServiceEndpoint
from ..datastructures.type_aliases import (
    AppId,
    DurationSeconds,
    IpAddress,
    UrlString,
)
from ..exceptions import ConfpollError, LongPollHttpError
from ..serialization import NotificationCodec
from .http_client import HttpClient

META_SERVICES_PATH = "services/config"


class ConfigServiceLocator(Protocol):
    """Protocol for enumerating candidate config servers."""

    async def get_config_services(self) -> list[ServiceEndpoint]:
        """Return the current server list; may be empty."""
        ...


class StaticServiceLocator:
    """Locator over a fixed list of config server base URLs."""

    def __init__(self, urls: Iterable[UrlString]) -> None:
        self._services = [
            ServiceEndpoint(home_page_url=url) for url in urls if url.strip()
        ]

    async def get_config_services(self) -> list[ServiceEndpoint]:
        return list(self._services)


class MetaServiceLocator:
    """Locator that queries ``{meta}/services/config`` for live servers."""

    def __init__(
        self,
        meta_server_url: UrlString,
        http_client: HttpClient,
        *,
        app_id: AppId,
        local_ip: IpAddress | None = None,
        read_timeout: DurationSeconds = 5.0,
    ) -> None:
        self.meta_server_url = meta_server_url
        self.http_client = http_client
        self.app_id = app_id
        self.local_ip = local_ip
        self.read_timeout = read_timeout
        self._codec = NotificationCodec()
        self._cached: list[ServiceEndpoint] = []

    def services_url(self) -> UrlString:
        base = self.meta_server_url
        if not base.endswith("/"):
            base += "/"
        query = f"appId={quote_plus(self.app_id)}"
        if self.local_ip:
            query += f"&ip={quote_plus(self.local_ip)}"
        return f"{base}{META_SERVICES_PATH}?{query}"

    async def get_config_services(self) -> list[ServiceEndpoint]:
        url = self.services_url()
        try:
            response = await self.http_client.get(url, read_timeout=self.read_timeout)
            if response.status_code != 200:
                raise LongPollHttpError(response.status_code, url)
            services = self._codec.decode_services(response.body)
        except ConfpollError as e:
            if not self._cached:
                raise
            logger.warning(
                f"Meta server lookup failed, using {len(self._cached)} cached config services: {e}"
            )
            return list(self._cached)

        if not services and self._cached:
            logger.warning("Meta server returned no config services, keeping cached list")
            return list(self._cached)
        self._cached = services
        return list(services)
