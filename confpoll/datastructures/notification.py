"""
Notification and service endpoint records exchanged with config servers.

A ``Notification`` pairs a namespace name with the server-assigned id of its
latest published revision. ``INIT_NOTIFICATION_ID`` tells the server the
client has seen nothing yet for that namespace.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..exceptions import MalformedResponseError
from .type_aliases import NamespaceName, NotificationId, UrlString

INIT_NOTIFICATION_ID: NotificationId = -1
PROPERTIES_SUFFIX = "properties"
# ids are signed 64-bit on the server side
MIN_NOTIFICATION_ID: NotificationId = -(2**63)
MAX_NOTIFICATION_ID: NotificationId = 2**63 - 1


def properties_variant(namespace: NamespaceName) -> NamespaceName:
    """Return the ``.properties`` suffixed form of a namespace name."""
    return f"{namespace}.{PROPERTIES_SUFFIX}"


@dataclass(frozen=True, slots=True)
class Notification:
    """A (namespace, notification id) pair produced by a config server."""

    namespace_name: NamespaceName
    notification_id: NotificationId = INIT_NOTIFICATION_ID

    def to_wire(self) -> dict[str, Any]:
        return {
            "namespaceName": self.namespace_name,
            "notificationId": self.notification_id,
        }

    @classmethod
    def from_wire(cls, data: Any) -> Notification:
        if not isinstance(data, Mapping):
            raise MalformedResponseError(
                f"Notification entry must be an object, got {type(data).__name__}"
            )
        namespace = data.get("namespaceName") or ""
        if not isinstance(namespace, str):
            raise MalformedResponseError(
                f"namespaceName must be a string, got {namespace!r}"
            )
        notification_id = data.get("notificationId", INIT_NOTIFICATION_ID)
        # bool is an int subclass but never a valid id
        if isinstance(notification_id, bool) or not isinstance(notification_id, int):
            raise MalformedResponseError(
                f"notificationId must be an integer, got {notification_id!r}"
            )
        if not MIN_NOTIFICATION_ID <= notification_id <= MAX_NOTIFICATION_ID:
            raise MalformedResponseError(
                f"notificationId out of 64-bit range: {notification_id}"
            )
        return cls(namespace_name=namespace, notification_id=notification_id)


@dataclass(frozen=True, slots=True)
class ServiceEndpoint:
    """A config server instance as reported by the service locator."""

    home_page_url: UrlString
    app_name: str = ""
    instance_id: str = ""

    @classmethod
    def from_wire(cls, data: Any) -> ServiceEndpoint:
        if not isinstance(data, Mapping) or not data.get("homepageUrl"):
            raise MalformedResponseError(f"Invalid service entry: {data!r}")
        return cls(
            home_page_url=str(data["homepageUrl"]),
            app_name=str(data.get("appName") or ""),
            instance_id=str(data.get("instanceId") or ""),
        )
