"""
Per-round telemetry spans for the long-poll worker.

Each poll round is wrapped in a ``PollTransaction`` carrying the request url,
the response status code and the delivered notifications, plus the error
that failed the round, if any. Completed spans go to a ``TelemetrySink``;
the default sink logs them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from ..datastructures.type_aliases import DurationSeconds, Timestamp


class TransactionStatus(Enum):
    """Outcome of a telemetry transaction."""

    UNSET = "unset"
    SUCCESS = "success"
    ERROR = "error"


class TelemetrySink(Protocol):
    """Protocol for consumers of completed transactions."""

    def record(self, transaction: PollTransaction) -> None:
        """Receive a completed transaction."""
        ...


@dataclass(slots=True)
class PollTransaction:
    """A structured span covering one unit of long-poll work."""

    type: str
    name: str
    sink: TelemetrySink | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    status: TransactionStatus = TransactionStatus.UNSET
    error: BaseException | None = None
    started_at: Timestamp = field(default_factory=time.monotonic)
    duration: DurationSeconds | None = None

    def add_data(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_success(self) -> None:
        self.status = TransactionStatus.SUCCESS

    def record_error(self, error: BaseException) -> None:
        self.status = TransactionStatus.ERROR
        self.error = error

    @property
    def completed(self) -> bool:
        return self.duration is not None

    def complete(self) -> None:
        """Close the span and hand it to the sink; later calls are no-ops."""
        if self.completed:
            return
        self.duration = time.monotonic() - self.started_at
        if self.sink is not None:
            self.sink.record(self)


class LoggingTelemetrySink:
    """Writes completed transactions to the debug log."""

    def record(self, transaction: PollTransaction) -> None:
        logger.debug(
            "[{}] {} {} in {:.3f}s {}{}",
            transaction.type,
            transaction.name,
            transaction.status.value,
            transaction.duration or 0.0,
            transaction.attributes,
            f" error={transaction.error!r}" if transaction.error else "",
        )


@dataclass(slots=True)
class RecordingTelemetrySink:
    """Keeps the most recent transactions in memory."""

    max_transactions: int = 1000
    transactions: list[PollTransaction] = field(default_factory=list)

    def record(self, transaction: PollTransaction) -> None:
        self.transactions.append(transaction)
        overflow = len(self.transactions) - self.max_transactions
        if overflow > 0:
            del self.transactions[:overflow]
