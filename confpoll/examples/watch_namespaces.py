#!/usr/bin/env python3
"""Watch configuration namespaces and print every change signal.

Reads settings from CONFPOLL_* environment variables (or .env), e.g.:

    CONFPOLL_APP_ID=orders \
    CONFPOLL_CONFIG_SERVICE_URLS='["http://localhost:8080"]' \
    python -m confpoll.examples.watch_namespaces application db.properties
"""

import asyncio
import signal
import sys

from loguru import logger

from confpoll import CallbackObserver, ConfpollSettings, ServiceEndpoint
from confpoll.core.logging import configure_logging
from confpoll.long_poll import create_long_poll_service


class PrintingRepository:
    """Stand-in for a config repository: logs instead of refetching."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    async def refetch(self, endpoint: ServiceEndpoint) -> None:
        logger.info(f"{self.namespace} changed, would refetch from {endpoint.home_page_url}")


async def main(namespaces: list[str]) -> None:
    settings = ConfpollSettings()
    configure_logging(settings.log_level, debug_scopes=["long_poll"])

    service = create_long_poll_service(settings)
    for namespace in namespaces:
        repository = PrintingRepository(namespace)
        service.submit(namespace, CallbackObserver(repository.refetch, name=namespace))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await stop.wait()
    logger.info(f"Final state: {service.statistics()}")
    await service.shutdown()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:] or ["application"]))
