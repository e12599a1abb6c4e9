"""Evaluation request handling: validate, borrow a worker, run one search."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from analysis.exceptions import BadRequestError, EngineError

if TYPE_CHECKING:
    from analysis.pool import WorkerPool

logger = structlog.get_logger()

DEFAULT_EFFORT = 10
MAX_EFFORT = 30


class EvaluationHandler:
    """
    Drive one best-move request through the worker pool.

    Input is validated before the pool is touched. Once a worker is borrowed,
    every failure of the exchange surfaces as EngineError and the worker goes
    back to the pool exactly once.
    """

    def __init__(
        self,
        pool: WorkerPool,
        *,
        default_effort: int = DEFAULT_EFFORT,
        max_effort: int = MAX_EFFORT,
    ) -> None:
        if not 1 <= default_effort <= max_effort:
            raise ValueError(f"default_effort must be 1-{max_effort}, got {default_effort}")
        self._pool = pool
        self._default_effort = default_effort
        self._max_effort = max_effort

    def _validate(self, position: str | None, effort: int | None) -> tuple[str, int]:
        if position is None or not position.strip():
            raise BadRequestError("Missing position")
        if effort is None:
            effort = self._default_effort
        if not 1 <= effort <= self._max_effort:
            raise BadRequestError(f"effort must be between 1 and {self._max_effort}")
        return position.strip(), effort

    async def evaluate(self, position: str | None, effort: int | None = None) -> str:
        """Return the best move for `position` searched to `effort` (UCI depth)."""
        position, effort = self._validate(position, effort)

        async with self._pool.borrow() as worker:
            log = logger.bind(worker_id=worker.worker_id, effort=effort)
            started = time.monotonic()
            try:
                move = await worker.best_move(position, effort)
            except EngineError:
                log.warning("engine exchange failed", position=position, exc_info=True)
                raise
            except Exception as e:
                log.exception("unexpected worker failure", position=position)
                raise EngineError(str(e)) from e

        log.info("best move found", move=move, elapsed=round(time.monotonic() - started, 3))
        return move
