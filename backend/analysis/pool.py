"""Fixed-size worker pool with fair FIFO borrowing."""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from typing import TYPE_CHECKING

import structlog

from analysis.exceptions import PoolNotRunningError, WorkerStartupError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from analysis.worker import Worker

logger = structlog.get_logger()


class WorkerPool:
    """Lend a fixed set of workers to one caller at a time each.

    A worker is always either idle (in `_idle`) or lent (in `_lent`); the
    pool never creates or drops workers after `start()`. Callers that find no
    idle worker wait on a one-shot future in `_waiters`, and `release()` hands
    the worker straight to the longest-waiting caller. Waiters only exist
    while `_idle` is empty.

    All mutation happens between awaits on the event loop thread, so the
    read-modify-write sequences in `acquire()`/`release()` never interleave.
    """

    def __init__(self, workers: Sequence[Worker]) -> None:
        if not workers:
            raise ValueError("worker pool needs at least one worker")
        self._workers: tuple[Worker, ...] = tuple(workers)
        self._idle: deque[Worker] = deque()
        self._lent: set[Worker] = set()
        self._waiters: deque[asyncio.Future[Worker]] = deque()
        self._running = False
        self._borrow_count = 0

    @property
    def size(self) -> int:
        return len(self._workers)

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def lent_count(self) -> int:
        return len(self._lent)

    @property
    def waiting_count(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def borrow_count(self) -> int:
        """Total number of successful acquisitions since start."""
        return self._borrow_count

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Bring every worker to ready, one after another, then open for borrowing.

        If any worker fails, the ones already started are closed and
        WorkerStartupError propagates: a partial pool never runs.
        """
        if self._running:
            return
        started: list[Worker] = []
        for worker in self._workers:
            try:
                await worker.start()
            except WorkerStartupError:
                logger.exception("worker startup failed, aborting pool start", worker_id=worker.worker_id)
                for ready in started:
                    await ready.close()
                raise
            started.append(worker)

        self._idle.extend(self._workers)
        self._running = True
        logger.info("worker pool started", size=self.size)

    async def shutdown(self) -> None:
        """Close every worker. Callers still waiting get PoolNotRunningError."""
        self._running = False
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(PoolNotRunningError("worker pool is shutting down"))
        self._idle.clear()
        self._lent.clear()
        for worker in self._workers:
            await worker.close()
        logger.info("worker pool stopped", size=self.size)

    async def acquire(self) -> Worker:
        """Borrow a worker, waiting (without timeout) until one is free."""
        if not self._running:
            raise PoolNotRunningError("worker pool is not running")

        if self._idle:
            worker = self._idle.popleft()
            self._lent.add(worker)
            self._borrow_count += 1
            return worker

        waiter: asyncio.Future[Worker] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug("all workers busy, queued", waiting=self.waiting_count)
        try:
            worker = await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
                # a worker was handed over just before the cancellation landed
                self.release(waiter.result())
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(waiter)
            raise
        self._borrow_count += 1
        return worker

    def release(self, worker: Worker) -> None:
        """Return a borrowed worker, serving the longest-waiting caller first."""
        if worker not in self._lent:
            logger.warning("release of a worker that is not lent, ignoring", worker_id=worker.worker_id)
            return

        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            waiter.set_result(worker)
            return

        self._lent.discard(worker)
        self._idle.append(worker)

    @contextlib.asynccontextmanager
    async def borrow(self) -> AsyncIterator[Worker]:
        """Scoped acquisition: the worker is released on every exit path."""
        worker = await self.acquire()
        try:
            yield worker
        finally:
            self.release(worker)
