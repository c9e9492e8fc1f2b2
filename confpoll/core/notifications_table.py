from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from threading import RLock

from ..datastructures.notification import (
    INIT_NOTIFICATION_ID,
    Notification,
    properties_variant,
)
from ..datastructures.type_aliases import NamespaceName, NotificationId


@dataclass(slots=True)
class NotificationsTable:
    """Last known notification id per subscribed namespace.

    Subscriber threads insert entries, the poll worker overwrites them from
    server responses. Entries are never removed.
    """

    _notifications: dict[NamespaceName, NotificationId] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def ensure(self, namespace: NamespaceName) -> None:
        with self._lock:
            self._notifications.setdefault(namespace, INIT_NOTIFICATION_ID)

    def get(self, namespace: NamespaceName) -> NotificationId | None:
        with self._lock:
            return self._notifications.get(namespace)

    def snapshot(self) -> dict[NamespaceName, NotificationId]:
        with self._lock:
            return dict(self._notifications)

    def namespaces(self) -> list[NamespaceName]:
        with self._lock:
            return list(self._notifications)

    def apply(self, notifications: Iterable[Notification]) -> list[NamespaceName]:
        """Record delivered ids; returns the entries that were updated.

        A notification for ``ns`` also advances ``ns.properties`` when that
        is subscribed, since servers report names without the format suffix.
        Unsubscribed namespaces and empty names are ignored.
        """
        updated: list[NamespaceName] = []
        with self._lock:
            for notification in notifications:
                namespace = notification.namespace_name
                if not namespace:
                    continue
                for key in (namespace, properties_variant(namespace)):
                    if key in self._notifications:
                        self._notifications[key] = notification.notification_id
                        updated.append(key)
        return updated

    def __contains__(self, namespace: object) -> bool:
        with self._lock:
            return namespace in self._notifications

    def __len__(self) -> int:
        with self._lock:
            return len(self._notifications)
