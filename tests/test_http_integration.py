"""End-to-end long polling against an in-process aiohttp config server."""

import asyncio
import json
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field

import pytest
import pytest_asyncio
from aiohttp import web

from confpoll.client.http_client import AiohttpClient
from confpoll.client.service_locator import MetaServiceLocator, StaticServiceLocator
from confpoll.config import ConfpollSettings
from confpoll.core.observer import CallbackObserver
from confpoll.datastructures.notification import ServiceEndpoint
from confpoll.exceptions import LongPollHttpError, LongPollTransportError
from confpoll.long_poll import create_long_poll_service


@dataclass
class FakeConfigServer:
    """Config server holding long polls until a release is published."""

    releases: dict[str, int] = field(default_factory=dict)
    hold_seconds: float = 0.2
    requests: list[dict[str, str]] = field(default_factory=list)
    changed: asyncio.Event = field(default_factory=asyncio.Event)
    base_url: str = ""

    def publish(self, namespace: str, notification_id: int) -> None:
        self.releases[namespace] = notification_id
        self.changed.set()

    def _pending(self, quoted: list[dict[str, object]]) -> list[dict[str, object]]:
        # like real servers, answer with the name stripped of its format suffix
        pending: list[dict[str, object]] = []
        for entry in quoted:
            name = str(entry["namespaceName"]).removesuffix(".properties")
            released = self.releases.get(name, -1)
            if released > int(entry["notificationId"]):
                pending.append({"namespaceName": name, "notificationId": released})
        return pending

    async def notifications(self, request: web.Request) -> web.Response:
        self.requests.append(dict(request.query))
        quoted = json.loads(request.query["notifications"])
        pending = self._pending(quoted)
        if not pending:
            self.changed.clear()
            try:
                await asyncio.wait_for(self.changed.wait(), timeout=self.hold_seconds)
            except TimeoutError:
                return web.Response(status=304)
            pending = self._pending(quoted)
        return web.json_response(pending)

    async def broken(self, request: web.Request) -> web.Response:
        return web.Response(status=500)

    async def services(self, request: web.Request) -> web.Response:
        return web.json_response(
            [{"appName": "config", "instanceId": "c-1", "homepageUrl": self.base_url}]
        )


@pytest_asyncio.fixture
async def config_server() -> AsyncGenerator[FakeConfigServer, None]:
    server = FakeConfigServer()
    app = web.Application()
    app.router.add_get("/notifications/v2", server.notifications)
    app.router.add_get("/services/config", server.services)
    app.router.add_get("/broken/notifications/v2", server.broken)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    server.base_url = f"http://{host}:{port}"
    try:
        yield server
    finally:
        await runner.cleanup()


@pytest.mark.asyncio
async def test_aiohttp_client_statuses(config_server: FakeConfigServer) -> None:
    client = AiohttpClient()
    try:
        config_server.publish("application", 3)
        url = (
            f"{config_server.base_url}/notifications/v2?appId=a&cluster=default"
            "&notifications=%5B%7B%22namespaceName%22%3A%22application%22%2C%22notificationId%22%3A-1%7D%5D"
        )
        response = await client.get(url, read_timeout=5.0)
        assert response.status_code == 200
        assert json.loads(response.body) == [
            {"namespaceName": "application", "notificationId": 3}
        ]

        idle = url.replace("%3A-1", "%3A3")
        assert (await client.get(idle, read_timeout=5.0)).status_code == 304

        broken = await client.get(
            f"{config_server.base_url}/broken/notifications/v2", read_timeout=5.0
        )
        assert broken.status_code == 500
    finally:
        await client.close()
    assert client.closed


@pytest.mark.asyncio
async def test_aiohttp_client_wraps_transport_errors(
    config_server: FakeConfigServer,
) -> None:
    config_server.hold_seconds = 2.0
    client = AiohttpClient()
    try:
        url = (
            f"{config_server.base_url}/notifications/v2?appId=a&cluster=c"
            "&notifications=%5B%5D"
        )
        with pytest.raises(LongPollTransportError):
            await client.get(url, read_timeout=0.1)
        with pytest.raises(LongPollTransportError):
            await client.get("http://127.0.0.1:1/notifications/v2", read_timeout=1.0)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_meta_locator_discovers_and_caches(
    config_server: FakeConfigServer,
) -> None:
    client = AiohttpClient()
    try:
        locator = MetaServiceLocator(
            config_server.base_url, client, app_id="some app", local_ip="10.0.0.1"
        )
        assert locator.services_url().endswith(
            "/services/config?appId=some+app&ip=10.0.0.1"
        )
        services = await locator.get_config_services()
        assert services == [
            ServiceEndpoint(
                home_page_url=config_server.base_url,
                app_name="config",
                instance_id="c-1",
            )
        ]

        # meta server gone: last good answer is served
        locator.meta_server_url = f"{config_server.base_url}/missing"
        assert await locator.get_config_services() == services

        fresh = MetaServiceLocator(
            f"{config_server.base_url}/missing", client, app_id="app"
        )
        with pytest.raises(LongPollHttpError):
            await fresh.get_config_services()
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_static_locator() -> None:
    locator = StaticServiceLocator(["http://a", " ", "http://b"])
    assert [s.home_page_url for s in await locator.get_config_services()] == [
        "http://a",
        "http://b",
    ]


@pytest.mark.asyncio
async def test_service_follows_published_releases(
    config_server: FakeConfigServer,
) -> None:
    settings = ConfpollSettings(
        app_id="someApp",
        cluster="default",
        data_center="dc1",
        meta_server_url=config_server.base_url,
        long_poll_qps=100.0,
    )
    service = create_long_poll_service(settings)
    notified: asyncio.Queue[ServiceEndpoint] = asyncio.Queue()

    try:
        service.submit("application", CallbackObserver(notified.put_nowait))
        service.submit("db.properties", CallbackObserver(notified.put_nowait))

        await asyncio.sleep(0.05)
        config_server.publish("application", 11)
        endpoint = await asyncio.wait_for(notified.get(), timeout=5.0)
        assert endpoint.home_page_url == config_server.base_url

        config_server.publish("db", 4)
        await asyncio.wait_for(notified.get(), timeout=5.0)

        for _ in range(100):
            if service.notifications.snapshot() == {"application": 11, "db.properties": 4}:
                break
            await asyncio.sleep(0.01)
        assert service.notifications.snapshot() == {
            "application": 11,
            "db.properties": 4,
        }
        first = config_server.requests[0]
        assert first["appId"] == "someApp"
        assert first["dataCenter"] == "dc1"
        assert "ip" not in first
    finally:
        await service.shutdown(timeout=1.0)

    assert service.http_client.closed
