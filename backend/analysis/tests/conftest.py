import pytest

from analysis.evaluation import EvaluationHandler
from analysis.pool import WorkerPool
from analysis.tests.mocks import make_workers


@pytest.fixture
def workers():
    return make_workers(2)


@pytest.fixture
async def pool(workers):
    pool = WorkerPool(workers)
    await pool.start()
    yield pool
    await pool.shutdown()


@pytest.fixture
def handler(pool):
    return EvaluationHandler(pool)
