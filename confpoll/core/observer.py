from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from ..datastructures.notification import ServiceEndpoint


class LongPollObserver(Protocol):
    """Per-namespace repository that refetches when its namespace changes."""

    def on_long_poll_notified(
        self, endpoint: ServiceEndpoint
    ) -> Awaitable[None] | None:
        """Called from the poll worker with the server that produced the signal.

        Returning an awaitable hands the refetch to a background task; the
        poll loop never waits for it.
        """
        ...


@dataclass(frozen=True, slots=True, eq=False)
class CallbackObserver:
    """Adapts a plain callable (sync or async) to ``LongPollObserver``."""

    callback: Callable[[ServiceEndpoint], Awaitable[None] | None]
    name: str = ""

    def on_long_poll_notified(
        self, endpoint: ServiceEndpoint
    ) -> Awaitable[None] | None:
        return self.callback(endpoint)
