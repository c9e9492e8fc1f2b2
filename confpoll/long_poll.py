"""
Remote configuration long-poll service.

One background worker keeps a single HTTP long poll open against a config
server on behalf of every subscribed namespace. The request quotes the last
notification id seen for each namespace; the server holds it until one of
them changes (200 with the new ids) or its own timeout fires (304).

Server affinity is sticky: the worker keeps polling the same server until a
round fails, and on a 304 drops it with probability one half so load spreads
across the cluster over time.

Threading model:
- ``submit()`` is synchronous and safe from any thread. It never waits on
  the worker.
- The worker is an asyncio task on the service's event loop, which is either
  passed in or taken from the running loop at the first ``submit()``.
- ``stop()`` is thread safe and wakes the worker out of any sleep; an
  in-flight long poll is only aborted by ``shutdown()``.

Example:
    service = create_long_poll_service(ConfpollSettings(app_id="orders"))
    service.submit("application", repository)
    ...
    await service.shutdown()
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import inspect
import random
import threading
from collections.abc import Awaitable, Sequence
from typing import Any

from loguru import logger

from .client.http_client import AiohttpClient, HttpClient
from .client.service_locator import (
    ConfigServiceLocator,
    MetaServiceLocator,
    StaticServiceLocator,
)
from .config import ConfpollSettings
from .core.notifications_table import NotificationsTable
from .core.observer import LongPollObserver
from .core.rate_limiter import TokenBucketRateLimiter
from .core.schedule_policy import ExponentialSchedulePolicy, SchedulePolicy
from .core.server_picker import pick_server
from .core.statistics import LongPollCounters, LongPollStatistics
from .core.subscription_registry import SubscriptionRegistry
from .core.task_manager import TaskManager
from .core.telemetry import LoggingTelemetrySink, PollTransaction, TelemetrySink
from .core.url_assembler import assemble_long_poll_url
from .datastructures.notification import (
    Notification,
    ServiceEndpoint,
    properties_variant,
)
from .datastructures.type_aliases import (
    AppId,
    ClusterName,
    DataCenterName,
    DurationSeconds,
    IpAddress,
    NamespaceName,
)
from .exceptions import LongPollHttpError, LongPollStartError
from .serialization import NotificationCodec

LONG_POLL_READ_TIMEOUT: DurationSeconds = 600.0
RATE_LIMIT_ACQUIRE_TIMEOUT: DurationSeconds = 5.0
RATE_LIMIT_MISS_SLEEP: DurationSeconds = 5.0
DEFAULT_LONG_POLL_QPS = 2.0

TRANSACTION_TYPE = "ConfigService"
TRANSACTION_NAME = "pollNotification"
NAMESPACE_SEPARATOR = "+"


class RemoteConfigLongPollService:
    """Multiplexes namespace subscriptions onto one long-poll worker."""

    def __init__(
        self,
        *,
        app_id: AppId,
        cluster: ClusterName,
        service_locator: ConfigServiceLocator,
        http_client: HttpClient,
        data_center: DataCenterName | None = None,
        local_ip: IpAddress | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        schedule_policy: SchedulePolicy | None = None,
        read_timeout: DurationSeconds = LONG_POLL_READ_TIMEOUT,
        rate_limit_acquire_timeout: DurationSeconds = RATE_LIMIT_ACQUIRE_TIMEOUT,
        rate_limit_miss_sleep: DurationSeconds = RATE_LIMIT_MISS_SLEEP,
        rng: random.Random | None = None,
        telemetry_sink: TelemetrySink | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        owns_http_client: bool = False,
    ) -> None:
        self.app_id = app_id
        self.cluster = cluster
        self.data_center = data_center
        self.local_ip = local_ip
        self.service_locator = service_locator
        self.http_client = http_client
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter(
            qps=DEFAULT_LONG_POLL_QPS
        )
        self.schedule_policy: SchedulePolicy = (
            schedule_policy or ExponentialSchedulePolicy(1.0, 120.0)
        )
        self.read_timeout = read_timeout
        self.rate_limit_acquire_timeout = rate_limit_acquire_timeout
        self.rate_limit_miss_sleep = rate_limit_miss_sleep
        self.telemetry_sink = telemetry_sink or LoggingTelemetrySink()

        self.notifications = NotificationsTable()
        self.subscriptions = SubscriptionRegistry()

        self._rng = rng or random.Random()
        self._codec = NotificationCodec()
        self._counters = LongPollCounters()
        self._loop = loop
        self._owns_http_client = owns_http_client
        self._task_manager = TaskManager("RemoteConfigLongPollService")

        self._start_lock = threading.Lock()
        self._started = False
        self._stopped = threading.Event()
        self._wakeup: asyncio.Event | None = None
        self._worker: asyncio.Task[None] | concurrent.futures.Future[None] | None
        self._worker = None
        self._sticky: ServiceEndpoint | None = None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def submit(self, namespace: NamespaceName, observer: LongPollObserver) -> bool:
        """Subscribe ``observer`` to ``namespace`` and make sure polling runs.

        Returns False when this exact pair was already subscribed.
        """
        added = self.subscriptions.add(namespace, observer)
        self.notifications.ensure(namespace)
        if not self._started:
            self.start()
        return added

    def start(self) -> bool:
        """Schedule the poll worker once; returns True only for the call that did."""
        with self._start_lock:
            if self._started:
                return False
            self._started = True

        try:
            self._schedule_worker()
        except Exception as e:
            with self._start_lock:
                self._started = False
            logger.warning(f"Schedule long polling refresh failed: {e}")
            return False

        logger.info(
            f"Long polling scheduled for appId: {self.app_id}, cluster: {self.cluster}"
        )
        return True

    def stop(self) -> None:
        """Ask the worker to exit at its next checkpoint."""
        self._stopped.set()
        loop, wakeup = self._loop, self._wakeup
        if loop is not None and wakeup is not None and not loop.is_closed():
            loop.call_soon_threadsafe(wakeup.set)

    async def shutdown(self, timeout: DurationSeconds = 5.0) -> None:
        """Stop, cancel in-flight work and release owned resources.

        Must be awaited on the service's event loop.
        """
        self.stop()
        if isinstance(self._worker, concurrent.futures.Future):
            self._worker.cancel()
        await self._task_manager.shutdown(timeout=timeout)
        if self._owns_http_client:
            close = getattr(self.http_client, "close", None)
            if close is not None:
                await close()

    async def wait_closed(self) -> None:
        """Wait for the worker to finish after ``stop()``."""
        worker = self._worker
        if worker is None:
            return
        if isinstance(worker, concurrent.futures.Future):
            await asyncio.wait({asyncio.wrap_future(worker)})
        else:
            await asyncio.wait({worker})

    def statistics(self) -> LongPollStatistics:
        counters = self._counters
        sticky = self._sticky
        return LongPollStatistics(
            started=self._started,
            stopped=self._stopped.is_set(),
            rounds=counters.rounds,
            successes=counters.successes,
            failures=counters.failures,
            not_modified=counters.not_modified,
            rebalances=counters.rebalances,
            rate_limited=counters.rate_limited,
            notifications_received=counters.notifications_received,
            observer_calls=counters.observer_calls,
            observer_failures=counters.observer_failures,
            namespaces=tuple(self.subscriptions.namespaces()),
            sticky_server=sticky.home_page_url if sticky else None,
        )

    def _schedule_worker(self) -> None:
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        loop = self._loop or running
        if loop is None:
            raise LongPollStartError("No event loop available for the long-poll worker")
        if loop.is_closed():
            raise LongPollStartError("Event loop for the long-poll worker is closed")
        if self._task_manager.shutdown_requested:
            raise LongPollStartError("Long-poll service has been shut down")

        self._loop = loop
        if loop is running:
            self._worker = self._task_manager.create_task(
                self._poll_loop(), name="confpoll-long-poll"
            )
        else:
            self._worker = asyncio.run_coroutine_threadsafe(
                self._run_tracked(), loop
            )

    async def _run_tracked(self) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._task_manager.track(task)
        await self._poll_loop()

    async def _poll_loop(self) -> None:
        self._wakeup = asyncio.Event()
        if self._stopped.is_set():
            self._wakeup.set()

        logger.info(
            f"Long polling started for appId: {self.app_id}, cluster: {self.cluster}"
        )
        try:
            while not self._stopped.is_set():
                acquired = await self.rate_limiter.acquire(
                    self.rate_limit_acquire_timeout, interrupt=self._wakeup
                )
                if self._stopped.is_set():
                    break
                if not acquired:
                    self._counters.rate_limited += 1
                    await self._sleep(self.rate_limit_miss_sleep)
                    if self._stopped.is_set():
                        break
                await self._poll_once()
        finally:
            self._sticky = None
            logger.info(f"Long polling stopped for appId: {self.app_id}")

    async def _poll_once(self) -> None:
        transaction = PollTransaction(
            type=TRANSACTION_TYPE, name=TRANSACTION_NAME, sink=self.telemetry_sink
        )
        self._counters.rounds += 1
        try:
            if self._sticky is None:
                services = await self.service_locator.get_config_services()
                self._sticky = pick_server(services, self._rng)
            endpoint = self._sticky

            url = assemble_long_poll_url(
                endpoint.home_page_url,
                self.app_id,
                self.cluster,
                self.data_center,
                self.local_ip,
                self.notifications.snapshot(),
            )
            logger.debug(f"Long polling from {url}")
            transaction.add_data("url", url)

            response = await self.http_client.get(url, read_timeout=self.read_timeout)

            logger.debug(f"Long polling response: {response.status_code}, url: {url}")
            transaction.add_data("statusCode", response.status_code)
            if response.status_code == 200:
                notifications = self._codec.decode(response.body)
                if notifications:
                    self.notifications.apply(notifications)
                    self._counters.notifications_received += len(notifications)
                    transaction.add_data(
                        "result", [n.to_wire() for n in notifications]
                    )
                    self._notify(endpoint, notifications)
            elif response.status_code == 304:
                self._counters.not_modified += 1
                # spread load: half of the idle rounds move to a new server
                if self._rng.random() < 0.5:
                    self._sticky = None
                    self._counters.rebalances += 1
            else:
                raise LongPollHttpError(response.status_code, url)

            self.schedule_policy.success()
            self._counters.successes += 1
            transaction.set_success()
        except Exception as e:
            self._sticky = None
            self._counters.failures += 1
            transaction.record_error(e)
            sleep_seconds = self.schedule_policy.fail()
            logger.warning(
                f"Long polling failed, will retry in {sleep_seconds} seconds. "
                f"appId: {self.app_id}, cluster: {self.cluster}, "
                f"namespaces: {self._assemble_namespaces()}, reason: {e!r}"
            )
            await self._sleep(sleep_seconds)
        finally:
            transaction.complete()

    def _notify(
        self, endpoint: ServiceEndpoint, notifications: Sequence[Notification]
    ) -> None:
        for notification in notifications:
            namespace = notification.namespace_name
            if not namespace:
                continue
            # subscribers may use the explicit .properties name for the same namespace
            observers = self.subscriptions.observers_for(namespace)
            observers.extend(
                self.subscriptions.observers_for(properties_variant(namespace))
            )
            for observer in observers:
                self._counters.observer_calls += 1
                try:
                    result = observer.on_long_poll_notified(endpoint)
                    if inspect.isawaitable(result):
                        self._task_manager.create_task(
                            self._await_refetch(result, namespace, observer),
                            name=f"confpoll-refetch-{namespace}",
                        )
                except Exception:
                    self._counters.observer_failures += 1
                    logger.exception(
                        f"Long poll observer {observer!r} failed for namespace {namespace}"
                    )

    async def _await_refetch(
        self, pending: Awaitable[Any], namespace: NamespaceName, observer: Any
    ) -> None:
        try:
            await pending
        except Exception:
            self._counters.observer_failures += 1
            logger.exception(
                f"Long poll observer {observer!r} refetch failed for namespace {namespace}"
            )

    async def _sleep(self, seconds: DurationSeconds) -> None:
        """Sleep unless stopped; ``stop()`` cuts the sleep short."""
        if seconds <= 0 or self._stopped.is_set():
            return
        wakeup = self._wakeup
        if wakeup is None:
            await asyncio.sleep(seconds)
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(wakeup.wait(), timeout=seconds)

    def _assemble_namespaces(self) -> str:
        return NAMESPACE_SEPARATOR.join(self.subscriptions.namespaces())


def create_service_locator(
    settings: ConfpollSettings, http_client: HttpClient
) -> ConfigServiceLocator:
    if settings.config_service_urls:
        return StaticServiceLocator(settings.config_service_urls)
    if settings.meta_server_url:
        return MetaServiceLocator(
            settings.meta_server_url,
            http_client,
            app_id=settings.app_id,
            local_ip=settings.resolved_local_ip(),
        )
    raise ValueError("Either config_service_urls or meta_server_url must be configured")


def create_long_poll_service(
    settings: ConfpollSettings,
    *,
    http_client: HttpClient | None = None,
    service_locator: ConfigServiceLocator | None = None,
    telemetry_sink: TelemetrySink | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> RemoteConfigLongPollService:
    """Build a service from settings; construct once per process and share it."""
    owns_http_client = http_client is None
    client: HttpClient = http_client or AiohttpClient(
        connect_timeout=settings.connect_timeout
    )
    locator = service_locator or create_service_locator(settings, client)
    return RemoteConfigLongPollService(
        app_id=settings.app_id,
        cluster=settings.cluster,
        data_center=settings.data_center,
        local_ip=settings.resolved_local_ip(),
        service_locator=locator,
        http_client=client,
        rate_limiter=TokenBucketRateLimiter(qps=settings.long_poll_qps),
        schedule_policy=ExponentialSchedulePolicy(
            settings.backoff_min_seconds, settings.backoff_max_seconds
        ),
        read_timeout=settings.long_poll_read_timeout,
        rate_limit_acquire_timeout=settings.rate_limit_acquire_timeout,
        rate_limit_miss_sleep=settings.rate_limit_miss_sleep,
        telemetry_sink=telemetry_sink,
        loop=loop,
        owns_http_client=owns_http_client,
    )
