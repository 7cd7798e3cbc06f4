"""Owned set of fire-and-forget asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Coroutine

logger = logging.getLogger(__name__)


class BackgroundTasksClosedError(RuntimeError):
    """Raised when callers spawn work after shutdown."""

    @classmethod
    def default_message(cls) -> BackgroundTasksClosedError:
        """Build deterministic error text for spawns after close."""
        return cls("Background task set is closed and cannot accept new work.")


class BackgroundTasks:
    """Run coroutines off the caller's path and keep references until done.

    Failures are logged and never propagate: callers that need a result
    should await the coroutine directly instead.
    """

    _tasks: set[asyncio.Task[None]]
    _closed: bool

    def __init__(self) -> None:
        """Initialize with no running tasks."""
        self._tasks = set()
        self._closed = False

    @property
    def pending_count(self) -> int:
        """Return how many tasks are still running."""
        return len(self._tasks)

    def spawn(
        self,
        operation: Coroutine[object, object, None],
        *,
        name: str,
    ) -> asyncio.Task[None]:
        """Schedule one coroutine on the running loop."""
        if self._closed:
            operation.close()
            raise BackgroundTasksClosedError.default_message()
        task = asyncio.create_task(self._run(operation, name=name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait until every task, including ones spawned meanwhile, finishes."""
        while True:
            # Done tasks may still wait for their discard callback.
            self._tasks.difference_update(
                {task for task in self._tasks if task.done()},
            )
            if not self._tasks:
                return
            _ = await asyncio.wait(tuple(self._tasks))

    async def close(self) -> None:
        """Stop accepting work and drain what is already running."""
        self._closed = True
        await self.join()

    async def _run(
        self,
        operation: Coroutine[object, object, None],
        *,
        name: str,
    ) -> None:
        try:
            await operation
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Background task %s failed", name)
