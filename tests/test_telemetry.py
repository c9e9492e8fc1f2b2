from confpoll.core.statistics import LongPollStatistics
from confpoll.core.telemetry import (
    LoggingTelemetrySink,
    PollTransaction,
    RecordingTelemetrySink,
    TransactionStatus,
)


def test_transaction_completes_once() -> None:
    sink = RecordingTelemetrySink()
    transaction = PollTransaction(type="ConfigService", name="pollNotification", sink=sink)
    transaction.add_data("url", "http://h/notifications/v2")
    transaction.set_success()

    transaction.complete()
    transaction.complete()

    assert sink.transactions == [transaction]
    assert transaction.status is TransactionStatus.SUCCESS
    assert transaction.duration is not None and transaction.duration >= 0


def test_transaction_records_error() -> None:
    transaction = PollTransaction(type="ConfigService", name="pollNotification")
    error = RuntimeError("boom")
    transaction.record_error(error)
    transaction.complete()

    assert transaction.status is TransactionStatus.ERROR
    assert transaction.error is error
    assert transaction.completed


def test_recording_sink_is_bounded() -> None:
    sink = RecordingTelemetrySink(max_transactions=3)
    for i in range(5):
        PollTransaction(type="t", name=str(i), sink=sink).complete()
    assert [t.name for t in sink.transactions] == ["2", "3", "4"]


def test_logging_sink_accepts_braces_in_attributes() -> None:
    transaction = PollTransaction(
        type="t", name="n", sink=LoggingTelemetrySink()
    )
    transaction.add_data("result", [{"namespaceName": "a"}])
    transaction.record_error(ValueError("{not a format}"))
    transaction.complete()


def test_statistics_failure_rate() -> None:
    base = dict(
        started=True,
        stopped=False,
        successes=0,
        not_modified=0,
        rebalances=0,
        rate_limited=0,
        notifications_received=0,
        observer_calls=0,
        observer_failures=0,
        namespaces=("application",),
        sticky_server=None,
    )
    assert LongPollStatistics(rounds=0, failures=0, **base).failure_rate == 0.0
    assert LongPollStatistics(rounds=4, failures=1, **base).failure_rate == 0.25
