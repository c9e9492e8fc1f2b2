"""confpoll: long-poll change notifications for remote configuration namespaces."""

from .config import ConfpollSettings
from .core.observer import CallbackObserver, LongPollObserver
from .datastructures.notification import (
    INIT_NOTIFICATION_ID,
    Notification,
    ServiceEndpoint,
)
from .exceptions import (
    ConfpollError,
    LongPollHttpError,
    LongPollTransportError,
    MalformedResponseError,
    NoAvailableServerError,
)
from .long_poll import RemoteConfigLongPollService, create_long_poll_service

__all__ = [
    "INIT_NOTIFICATION_ID",
    "CallbackObserver",
    "ConfpollError",
    "ConfpollSettings",
    "LongPollHttpError",
    "LongPollObserver",
    "LongPollTransportError",
    "MalformedResponseError",
    "NoAvailableServerError",
    "Notification",
    "RemoteConfigLongPollService",
    "ServiceEndpoint",
    "create_long_poll_service",
]
