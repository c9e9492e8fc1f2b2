"""Pytest fixtures for confpoll tests."""

from collections.abc import AsyncGenerator

import pytest_asyncio

from confpoll.long_poll import RemoteConfigLongPollService


@pytest_asyncio.fixture
async def services() -> AsyncGenerator[list[RemoteConfigLongPollService], None]:
    """Collects services created by a test and shuts them all down afterwards."""
    created: list[RemoteConfigLongPollService] = []
    yield created
    for service in created:
        await service.shutdown(timeout=1.0)
