"""Fire-and-forget task spawning with strong references."""

import asyncio
from collections.abc import Coroutine

import structlog

logger = structlog.get_logger()


class TaskScheduler:
    """Holds spawned tasks until they finish so they are not garbage collected.

    `drain` waits for everything spawned so far, including tasks spawned by
    those tasks, which is how the CLI and tests wait out a whole pipeline.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._done)
        return task

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("scheduler.task_failed", task=task.get_name(), error=str(exc))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until no spawned task is left."""
        async with asyncio.timeout(timeout):
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
