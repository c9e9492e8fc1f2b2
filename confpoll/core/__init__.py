"""Building blocks of the long-poll worker."""

from .notifications_table import NotificationsTable
from .observer import CallbackObserver, LongPollObserver
from .rate_limiter import TokenBucketRateLimiter
from .schedule_policy import ExponentialSchedulePolicy, SchedulePolicy
from .server_picker import pick_server
from .statistics import LongPollStatistics
from .subscription_registry import SubscriptionRegistry
from .telemetry import (
    LoggingTelemetrySink,
    PollTransaction,
    RecordingTelemetrySink,
    TelemetrySink,
    TransactionStatus,
)
from .url_assembler import assemble_long_poll_url, assemble_notifications

__all__ = [
    "CallbackObserver",
    "ExponentialSchedulePolicy",
    "LoggingTelemetrySink",
    "LongPollObserver",
    "LongPollStatistics",
    "NotificationsTable",
    "PollTransaction",
    "RecordingTelemetrySink",
    "SchedulePolicy",
    "SubscriptionRegistry",
    "TelemetrySink",
    "TokenBucketRateLimiter",
    "TransactionStatus",
    "assemble_long_poll_url",
    "assemble_notifications",
    "pick_server",
]
