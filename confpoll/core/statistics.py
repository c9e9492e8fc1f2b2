"""
Statistics dataclasses for the long-poll service.

``LongPollCounters`` is the mutable tally owned by the poll worker;
``LongPollStatistics`` is the frozen snapshot handed to callers.
"""

from dataclasses import dataclass

from ..datastructures.type_aliases import NamespaceName, UrlString


@dataclass(frozen=True, slots=True)
class LongPollStatistics:
    """Point-in-time view of poll worker activity."""

    started: bool
    stopped: bool
    rounds: int
    successes: int
    failures: int
    not_modified: int
    rebalances: int
    rate_limited: int
    notifications_received: int
    observer_calls: int
    observer_failures: int
    namespaces: tuple[NamespaceName, ...]
    sticky_server: UrlString | None

    @property
    def failure_rate(self) -> float:
        if self.rounds == 0:
            return 0.0
        return self.failures / self.rounds


@dataclass(slots=True)
class LongPollCounters:
    rounds: int = 0
    successes: int = 0
    failures: int = 0
    not_modified: int = 0
    rebalances: int = 0
    rate_limited: int = 0
    notifications_received: int = 0
    observer_calls: int = 0
    observer_failures: int = 0
