"""Bounded-concurrency FIFO task queue on top of asyncio."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, Generic, Set, TypeVar

T = TypeVar("T")


class TaskQueue(Generic[T]):
    """Runs ``worker`` over queued items with at most ``concurrency`` in flight.

    Workers may call :meth:`add` while running; :meth:`wait_all` only returns
    once nothing is pending and nothing is in flight.
    """

    def __init__(self, worker: Callable[[T], Awaitable[None]], concurrency: int) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._worker = worker
        self._concurrency = concurrency
        self._pending: Deque[T] = deque()
        self._running: Set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._running)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def add(self, item: T) -> None:
        self._pending.append(item)
        self._drain()

    async def wait_all(self) -> None:
        while self._running or self._pending:
            if not self._running:
                self._drain()
            await asyncio.gather(*list(self._running))

    def _drain(self) -> None:
        while len(self._running) < self._concurrency and self._pending:
            item = self._pending.popleft()
            task = asyncio.ensure_future(self._worker(item))
            self._running.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._running.discard(task)
        self._drain()


__all__ = ["TaskQueue"]
