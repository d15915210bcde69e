"""
Task queues running the deferred work of the request mocks.

Send hooks and timeout checks never run inside the call that schedules them.
TaskQueue is a deterministic queue with a virtual millisecond clock that
tests drive explicitly; AsyncioTaskQueue hands the same work to a running
asyncio event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections import deque
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TaskHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Interface shared by the task queues."""

    def now(self) -> float: ...

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TaskHandle: ...

    def call_later(
        self, delay_ms: float, callback: Callable[..., Any], *args: Any
    ) -> TaskHandle: ...


class Task:
    """Task queued in a TaskQueue."""

    __slots__ = ('callback', 'args', 'deadline', 'cancelled')

    def __init__(self, callback: Callable[..., Any], args: tuple, deadline: Optional[float] = None):
        self.callback = callback
        self.args = args
        self.deadline = deadline
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        self.callback(*self.args)

    def __repr__(self) -> str:
        state = ' cancelled' if self.cancelled else ''
        return f'<Task {getattr(self.callback, "__qualname__", self.callback)!r}{state}>'


class TaskQueue:
    """
    Deterministic single-threaded task queue with a virtual clock.

    Nothing runs until the owner calls run_pending(), advance() or flush().
    Exceptions raised by a task propagate to that caller.
    """

    def __init__(self, start_time: float = 0.0):
        """
        Args:
            start_time: Initial value of the virtual clock, in milliseconds.
        """
        self._now = start_time
        self._ready: deque[Task] = deque()
        self._timers: list[tuple[float, int, Task]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        """Current virtual time in milliseconds."""
        return self._now

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> Task:
        """Queue ``callback(*args)`` for the next run_pending()."""
        task = Task(callback, args)
        self._ready.append(task)
        return task

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> Task:
        """
        Schedule ``callback(*args)`` once the virtual clock reaches ``now() + delay_ms``.

        Args:
            delay_ms: Delay in milliseconds; negative delays count as 0.
            callback: Callable to run.

        Returns:
            Task handle, cancel() it to drop the task.
        """
        deadline = self._now + max(0.0, delay_ms)
        task = Task(callback, args, deadline)
        heapq.heappush(self._timers, (deadline, next(self._sequence), task))
        return task

    def run_pending(self) -> int:
        """
        Run the queued tasks in FIFO order, including tasks queued while running.

        Returns:
            Number of tasks run.
        """
        count = 0
        while self._ready:
            task = self._ready.popleft()
            if task.cancelled:
                continue
            task.run()
            count += 1
        return count

    def advance(self, ms: float) -> int:
        """
        Move the virtual clock forward by ``ms`` milliseconds.

        Queued tasks run first, then each timer due before the new time runs in
        deadline order with the clock set to its deadline. Tasks queued by a
        timer run before the next timer fires.

        Returns:
            Number of tasks run.
        """
        if ms < 0:
            raise ValueError('Cannot move the clock backwards')
        target = self._now + ms
        count = self.run_pending()
        while self._timers and self._timers[0][0] <= target:
            deadline, _, task = heapq.heappop(self._timers)
            if task.cancelled:
                continue
            self._now = deadline
            task.run()
            count += 1
            count += self.run_pending()
        self._now = target
        logger.debug(f'Clock advanced to {target} ms, {count} tasks run')
        return count

    def flush(self) -> int:
        """Run everything that is due without moving the clock."""
        return self.advance(0)

    def has_pending(self) -> bool:
        """Whether any task or timer is still waiting to run."""
        return any(not task.cancelled for task in self._ready) or any(
            not task.cancelled for _, _, task in self._timers
        )


class AsyncioTaskQueue:
    """Task queue backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            loop: Event loop to use. Defaults to the loop running when a task
                is scheduled.
        """
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time() * 1000

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        return self.loop.call_soon(callback, *args)

    def call_later(
        self, delay_ms: float, callback: Callable[..., Any], *args: Any
    ) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000, callback, *args)
