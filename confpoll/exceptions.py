"""
Exception hierarchy for the confpoll long-poll engine.

None of these escape to subscribers: the poll loop catches them, fails the
round and backs off. They exist so each failure kind is logged and recorded
with a precise type.
"""

from __future__ import annotations


class ConfpollError(Exception):
    """Base exception for confpoll errors."""

    pass


class NoAvailableServerError(ConfpollError):
    """Raised when the service locator returns no config servers."""

    pass


class LongPollTransportError(ConfpollError):
    """Raised when the HTTP transport fails (connect, read timeout, reset)."""

    pass


class LongPollHttpError(ConfpollError):
    """Raised when a long poll completes with a status other than 200 or 304."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Long poll got unexpected status {status_code} from {url}")
        self.status_code = status_code
        self.url = url


class MalformedResponseError(ConfpollError):
    """Raised when a 200 response body cannot be decoded into notifications."""

    pass


class LongPollStartError(ConfpollError):
    """Raised when the poll worker cannot be scheduled."""

    pass
