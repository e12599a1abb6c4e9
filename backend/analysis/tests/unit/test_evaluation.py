import asyncio

import pytest

from analysis.evaluation import DEFAULT_EFFORT, EvaluationHandler
from analysis.exceptions import BadRequestError, EngineError, PoolNotRunningError
from analysis.pool import WorkerPool
from analysis.tests.mocks import FakeWorker, crashing_worker, make_workers

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


class TestEvaluationValidation:
    @pytest.mark.parametrize("position", [None, "", "   "])
    async def test_missing_position_is_bad_request_without_borrowing(self, handler, pool, position):
        with pytest.raises(BadRequestError, match="Missing position"):
            await handler.evaluate(position, 5)

        assert pool.borrow_count == 0
        assert pool.idle_count == pool.size

    @pytest.mark.parametrize("effort", [0, -3, 31])
    async def test_out_of_range_effort_is_bad_request(self, handler, pool, effort):
        with pytest.raises(BadRequestError, match="effort"):
            await handler.evaluate(START_FEN, effort)

        assert pool.borrow_count == 0

    async def test_missing_effort_uses_default(self, handler, workers):
        await handler.evaluate(START_FEN)

        assert workers[0].searches == [(START_FEN, DEFAULT_EFFORT)]

    def test_default_effort_must_fit_max(self, pool):
        with pytest.raises(ValueError, match="default_effort"):
            EvaluationHandler(pool, default_effort=40, max_effort=30)


class TestEvaluationExchange:
    async def test_returns_worker_move_and_releases(self, handler, pool, workers):
        move = await handler.evaluate(START_FEN, 8)

        assert move == "e2e4"
        assert workers[0].searches == [(START_FEN, 8)]
        assert pool.borrow_count == 1
        assert pool.idle_count == pool.size

    async def test_engine_failure_releases_worker(self):
        worker = crashing_worker()
        pool = WorkerPool([worker])
        await pool.start()
        handler = EvaluationHandler(pool)

        with pytest.raises(EngineError, match="terminated"):
            await handler.evaluate(START_FEN, 5)

        assert pool.idle_count == 1
        assert pool.lent_count == 0

    async def test_unexpected_failure_becomes_engine_error(self):
        worker = FakeWorker(fail_with=BrokenPipeError("pipe closed"))
        pool = WorkerPool([worker])
        await pool.start()
        handler = EvaluationHandler(pool)

        with pytest.raises(EngineError, match="pipe closed"):
            await handler.evaluate(START_FEN, 5)

        assert pool.idle_count == 1

    async def test_failed_worker_stays_in_circulation(self):
        worker = crashing_worker()
        pool = WorkerPool([worker])
        await pool.start()
        handler = EvaluationHandler(pool)

        with pytest.raises(EngineError):
            await handler.evaluate(START_FEN, 5)
        worker.fail_with = None

        assert await handler.evaluate(START_FEN, 5) == "e2e4"
        assert pool.size == 1
        assert pool.borrow_count == 2

    async def test_surrounding_whitespace_is_stripped(self, handler, workers):
        await handler.evaluate(f"  {START_FEN}\n", 4)

        assert workers[0].searches == [(START_FEN, 4)]


class TestEvaluationShutdown:
    async def test_request_queued_at_shutdown_gets_pool_not_running(self):
        gate = asyncio.Event()
        pool = WorkerPool([FakeWorker("worker-0", gate=gate)])
        await pool.start()
        handler = EvaluationHandler(pool)

        running = asyncio.create_task(handler.evaluate(START_FEN, 3))
        queued = asyncio.create_task(handler.evaluate(START_FEN, 3))
        await asyncio.sleep(0)
        assert pool.waiting_count == 1

        await pool.shutdown()

        with pytest.raises(PoolNotRunningError):
            await queued
        assert not queued.cancelled()
        gate.set()
        assert await running == "e2e4"


class TestEvaluationConcurrency:
    async def test_one_request_beyond_pool_size_waits(self):
        gate = asyncio.Event()
        workers = make_workers(2, gate=gate)
        pool = WorkerPool(workers)
        await pool.start()
        handler = EvaluationHandler(pool)

        tasks = [asyncio.create_task(handler.evaluate(START_FEN, 3)) for _ in range(3)]
        await asyncio.sleep(0)

        assert pool.lent_count == 2
        assert pool.waiting_count == 1
        assert sum(len(w.searches) for w in workers) == 2

        gate.set()
        moves = await asyncio.gather(*tasks)

        assert moves == ["e2e4"] * 3
        assert pool.borrow_count == 3
        assert pool.idle_count == 2
        assert pool.waiting_count == 0

    async def test_every_acquire_matched_by_one_release_under_failures(self):
        workers = [crashing_worker("w0"), FakeWorker("w1")]
        pool = WorkerPool(workers)
        await pool.start()
        handler = EvaluationHandler(pool)

        results = await asyncio.gather(
            *(handler.evaluate(START_FEN, 2) for _ in range(6)),
            return_exceptions=True,
        )

        assert len(results) == 6
        assert pool.borrow_count == 6
        assert pool.idle_count == 2
        assert pool.lent_count == 0
