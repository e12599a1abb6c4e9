"""Analysis workers: long-lived external UCI engine processes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import chess
import chess.engine
import structlog

from analysis.exceptions import EngineError, WorkerStartupError

if TYPE_CHECKING:
    import asyncio

logger = structlog.get_logger()


class Worker(ABC):
    """
    Abstract handle to an external analysis process.

    The pool only relies on this interface, so pool and handler logic can be
    tested without spawning real engine binaries.
    """

    @property
    @abstractmethod
    def worker_id(self) -> str:
        """Stable name of this worker, used in logs and status output."""
        ...

    @property
    @abstractmethod
    def alive(self) -> bool:
        """Whether the underlying process is running and ready for a task."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """
        Launch the process and wait until it reports ready.

        Raises WorkerStartupError if the process cannot be brought up.
        """
        ...

    @abstractmethod
    async def best_move(self, position: str, effort: int) -> str:
        """
        Set the position, search to the given effort and return the best move.

        Raises EngineError on any failure of the exchange.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Stop the process. Safe to call on a worker that never started."""
        ...


class UciWorker(Worker):
    """Worker backed by a UCI engine (e.g. Stockfish) driven through python-chess.

    Effort maps to the UCI search depth (`go depth N`). A process that died
    during a task is relaunched before the next one, so the handle itself
    stays in circulation for the life of the pool.
    """

    def __init__(self, worker_id: str, engine_path: str, *, threads: int = 1) -> None:
        self._worker_id = worker_id
        self._engine_path = engine_path
        self._threads = threads
        self._transport: asyncio.SubprocessTransport | None = None
        self._engine: chess.engine.UciProtocol | None = None

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def alive(self) -> bool:
        return self._engine is not None and self._transport is not None and self._transport.get_returncode() is None

    async def start(self) -> None:
        try:
            self._transport, self._engine = await chess.engine.popen_uci(self._engine_path)
            if self._threads > 1:
                await self._engine.configure({"Threads": self._threads})
            await self._engine.ping()
        except (OSError, chess.engine.EngineError) as e:
            await self.close()
            raise WorkerStartupError(self._worker_id, str(e)) from e
        logger.info("worker ready", worker_id=self._worker_id, engine=self._engine_path)

    async def best_move(self, position: str, effort: int) -> str:
        if not self.alive:
            logger.warning("worker process not running, restarting", worker_id=self._worker_id)
            await self.close()
            try:
                await self.start()
            except WorkerStartupError as e:
                raise EngineError(str(e)) from e

        try:
            board = chess.Board(position)
        except ValueError as e:
            raise EngineError(f"invalid position: {e}") from e

        engine = self._engine
        if engine is None:
            raise EngineError(f"worker {self._worker_id} is not running")

        try:
            result = await engine.play(board, chess.engine.Limit(depth=effort))
        except chess.engine.EngineTerminatedError as e:
            logger.warning("worker process terminated during search", worker_id=self._worker_id)
            await self.close()
            raise EngineError(f"engine terminated: {e}") from e
        except chess.engine.EngineError as e:
            raise EngineError(str(e)) from e

        if result.move is None:
            raise EngineError("engine returned no move")
        return result.move.uci()

    async def close(self) -> None:
        engine, transport = self._engine, self._transport
        self._engine = None
        self._transport = None
        if engine is not None and transport is not None and transport.get_returncode() is None:
            try:
                await engine.quit()
            except chess.engine.EngineError:
                logger.debug("engine already gone on quit", worker_id=self._worker_id)
        if transport is not None:
            transport.close()
