"""
Background task tracking for the long-poll service.

Holds the poll worker task and any observer refetch coroutines so they can be
cancelled together on shutdown instead of being garbage collected while
pending.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class TaskManager:
    """Tracks asyncio tasks created on behalf of one owner."""

    def __init__(self, name: str = "TaskManager") -> None:
        self.name = name
        self.tasks: set[asyncio.Task[Any]] = set()
        self._shutdown_requested = False

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def create_task(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create and track a task on the running loop."""
        if self._shutdown_requested:
            coro.close()
            raise RuntimeError("Cannot create tasks after shutdown requested")

        task = asyncio.create_task(coro, name=name)
        self.track(task)
        return task

    def track(self, task: asyncio.Task[Any]) -> None:
        """Track a task created elsewhere (e.g. scheduled from another thread)."""
        self.tasks.add(task)
        task.add_done_callback(self._task_completed)
        logger.debug(f"[{self.name}] Tracking task {task.get_name() or 'unnamed'}")

    def _task_completed(self, task: asyncio.Task[Any]) -> None:
        self.tasks.discard(task)

        if task.cancelled():
            logger.debug(
                f"[{self.name}] Task {task.get_name() or 'unnamed'} was cancelled"
            )
        elif task.exception():
            logger.error(
                f"[{self.name}] Task {task.get_name() or 'unnamed'} failed: {task.exception()}"
            )

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel all tracked tasks and wait up to ``timeout`` for them."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True

        pending = [task for task in self.tasks if not task.done()]
        if not pending:
            return

        logger.info(f"[{self.name}] Cancelling {len(pending)} background tasks")
        for task in pending:
            task.cancel()

        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            logger.warning(f"[{self.name}] Task did not stop in time: {task.get_name()}")
        self.tasks.clear()

    def __len__(self) -> int:
        return len(self.tasks)

    def __bool__(self) -> bool:
        return bool(self.tasks)
