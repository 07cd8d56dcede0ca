"""
Fire-and-forget background dispatch.

Used for enrichment after a bill sync: the sync returns as soon as the
task is scheduled, and task failures are logged, never propagated.
At most ``max_concurrency`` tasks run at once; the rest wait their turn.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Set

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


class BackgroundDispatcher:
    """
    Keeps strong references to one-way background tasks.

    ``drain()`` waits for everything still in flight (shutdown, tests).
    """

    def __init__(self, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self._slots = asyncio.Semaphore(max_concurrency)
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, name: str, fn: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
        """
        Schedule ``fn(*args)`` in the background.

        Args:
            name: Task name used in log lines
            fn: Coroutine function
            *args: Arguments for ``fn``

        Returns:
            The scheduled task
        """
        task = asyncio.create_task(self._run(name, fn, *args), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"📤 Dispatched background task: {name}")
        return task

    async def _run(self, name: str, fn: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        async with self._slots:
            try:
                return await fn(*args)
            except Exception as e:
                logger.error(f"❌ Background task {name} failed: {e}", exc_info=True)
                return None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all in-flight tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
