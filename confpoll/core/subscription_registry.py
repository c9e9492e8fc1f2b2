from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock

from ..datastructures.type_aliases import NamespaceName
from .observer import LongPollObserver


@dataclass(slots=True)
class SubscriptionRegistry:
    """Namespace to observer multimap with copy-on-read lookups.

    Observers are keyed by identity, not by equality or hash, so any object
    (including unhashable dataclasses) can subscribe. Inner dicts keep
    insertion order so fan-out follows subscription order. Readers always
    get a private list.
    """

    _observers: dict[NamespaceName, dict[int, LongPollObserver]] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def add(self, namespace: NamespaceName, observer: LongPollObserver) -> bool:
        """Register ``observer``; returns False if the pair already existed."""
        with self._lock:
            observers = self._observers.setdefault(namespace, {})
            key = id(observer)
            if key in observers:
                return False
            observers[key] = observer
            return True

    def observers_for(self, namespace: NamespaceName) -> list[LongPollObserver]:
        with self._lock:
            observers = self._observers.get(namespace)
            return list(observers.values()) if observers else []

    def namespaces(self) -> list[NamespaceName]:
        with self._lock:
            return list(self._observers)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(observers) for observers in self._observers.values())
