"""Post-commit work that runs beside the request instead of blocking it."""

import asyncio
from collections.abc import Coroutine
from itertools import count
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class BackgroundTasks:
    """Holds notifications scheduled after a commit until the owner drains them.

    A worker or CLI command creates one per unit of work, hands it to the
    services, and calls ``wait()`` before shutting its event loop down:

        bg = BackgroundTasks()
        await OrderCreationService(db, notifier).create_order(data, bg_tasks=bg)
        await bg.wait(timeout=30)
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._seq = count(1)

    def run(self, coro: Coroutine[Any, Any, Any], *, label: str | None = None) -> None:
        name = f"post-commit:{label or coro.__qualname__}:{next(self._seq)}"
        self._tasks.add(asyncio.create_task(coro, name=name))

    @property
    def pending(self) -> int:
        return sum(not t.done() for t in self._tasks)

    async def wait(self, *, timeout: float) -> None:
        """Drain scheduled work; anything still running after ``timeout`` is cancelled.

        Failures are logged per task and never re-raised, the database work
        they follow has already committed.
        """
        if not self._tasks:
            return

        tasks, self._tasks = self._tasks, set()
        done, still_running = await asyncio.wait(tasks, timeout=timeout)

        if still_running:
            logger.warning("Post-commit tasks timed out", timeout=timeout, cancelled=len(still_running))
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)

        for task in done:
            if task.cancelled():
                continue
            if (error := task.exception()) is not None:
                logger.warning("Post-commit task failed", task_name=task.get_name(), error=str(error))
