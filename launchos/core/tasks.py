"""Supervised background tasks.

Work scheduled here is detached from the request that started it: the
response goes out immediately and the task keeps running on the event loop
until it finishes. The supervisor holds a reference to each task so it is
not garbage collected mid-flight, logs failures, and drains what is left on
shutdown.
"""

import asyncio
from functools import lru_cache
from typing import Any, Coroutine

from launchos.utils.logging import get_logger


class TaskSupervisor:
    """Owns fire-and-forget tasks for the lifetime of the application."""

    def __init__(self):
        self._tasks: set[asyncio.Task[Any]] = set()
        self.logger = get_logger("tasks")

    @property
    def active(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule ``coro`` without awaiting it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        self.logger.debug("tasks.spawned", task=task.get_name(), active=self.active)
        return task

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for running tasks; cancel whatever outlives ``timeout``.

        Returns the number of tasks that had to be cancelled.
        """
        cancelled = 0
        while self._tasks:
            tasks = set(self._tasks)
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                cancelled += len(pending)
                self.logger.warning("tasks.cancelled_on_drain", count=len(pending))
                break
        return cancelled

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.logger.warning("tasks.cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(
                "tasks.failed",
                task=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )


@lru_cache
def get_task_supervisor() -> TaskSupervisor:
    """Get the task supervisor singleton."""
    return TaskSupervisor()
