"""Core datastructures for confpoll."""

from .notification import (
    INIT_NOTIFICATION_ID,
    PROPERTIES_SUFFIX,
    Notification,
    ServiceEndpoint,
    properties_variant,
)

__all__ = [
    "INIT_NOTIFICATION_ID",
    "PROPERTIES_SUFFIX",
    "Notification",
    "ServiceEndpoint",
    "properties_variant",
]
