"""
Concurrency Limiter.

Generic scheduling primitive: admits at most ``max_concurrent`` units of
work at a time from an unbounded FIFO queue. Start order follows
submission order; completion order is whatever the work dictates.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Deque, Set, Tuple

logger = logging.getLogger(__name__)

UnitOfWork = Callable[[], Awaitable[Any]]


@dataclass
class LimiterStats:
    """Snapshot of limiter counters."""
    max_concurrent: int
    running: int
    pending: int
    peak_running: int
    started: int
    completed: int


class ConcurrencyLimiter:
    """
    FIFO limiter for coroutine functions.

    Usage:
        limiter = ConcurrencyLimiter(2)
        future = limiter.admit(lambda: fetch(url))
        result = await future

    A failure inside a unit is set on that unit's future only; other queued
    or running units are not affected.
    """

    def __init__(self, max_concurrent: int):
        """
        Initialize limiter.

        Args:
            max_concurrent: Maximum number of units running at once
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self._queue: Deque[Tuple[UnitOfWork, asyncio.Future]] = deque()
        self._tasks: Set[asyncio.Task] = set()
        self._unstarted: Set[asyncio.Future] = set()
        self._running = 0
        self._closed = False

        # Statistics
        self._peak_running = 0
        self._started = 0
        self._completed = 0

    def admit(self, fn: UnitOfWork) -> asyncio.Future:
        """
        Queue a unit of work.

        Args:
            fn: Zero-argument coroutine function

        Returns:
            Future resolved with the unit's result (or exception)
        """
        if self._closed:
            raise RuntimeError("Limiter has been shut down")

        future = asyncio.get_running_loop().create_future()
        self._queue.append((fn, future))
        self._pump()
        return future

    def _pump(self) -> None:
        """Start queued units while capacity is available."""
        while not self._closed and self._running < self.max_concurrent and self._queue:
            fn, future = self._queue.popleft()
            if future.cancelled():
                continue

            self._running += 1
            self._started += 1
            self._peak_running = max(self._peak_running, self._running)

            self._unstarted.add(future)
            task = asyncio.create_task(self._execute(fn, future))
            self._tasks.add(task)
            task.add_done_callback(partial(self._task_done, future))

    def _task_done(self, future: asyncio.Future, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        # A task cancelled before its first step never reaches _execute
        if future in self._unstarted:
            self._unstarted.discard(future)
            self._running -= 1
            self._completed += 1
            if not future.done():
                future.cancel()
            self._pump()

    async def _execute(self, fn: UnitOfWork, future: asyncio.Future) -> None:
        self._unstarted.discard(future)
        try:
            result = await fn()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self._running -= 1
            self._completed += 1
            self._pump()

    def shutdown(self) -> int:
        """
        Stop admitting work and cancel everything queued or running.

        Returns:
            Number of queued units that never started
        """
        self._closed = True

        dropped = 0
        while self._queue:
            _, future = self._queue.popleft()
            if not future.done():
                future.cancel()
            dropped += 1

        for task in list(self._tasks):
            task.cancel()

        if dropped:
            logger.info(f"Limiter shut down, {dropped} queued units dropped")
        return dropped

    def get_stats(self) -> LimiterStats:
        return LimiterStats(
            max_concurrent=self.max_concurrent,
            running=self._running,
            pending=len(self._queue),
            peak_running=self._peak_running,
            started=self._started,
            completed=self._completed,
        )

    @property
    def running(self) -> int:
        """Units currently executing."""
        return self._running

    @property
    def pending(self) -> int:
        """Units waiting for a slot."""
        return len(self._queue)

    @property
    def peak_running(self) -> int:
        """Highest number of units that ran at the same time."""
        return self._peak_running

    @property
    def is_closed(self) -> bool:
        return self._closed
