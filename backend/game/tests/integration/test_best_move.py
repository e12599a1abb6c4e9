"""HTTP tests for /best-move, /health and /status against in-process fake workers."""

import pytest
from starlette.testclient import TestClient

from analysis.exceptions import EngineError, WorkerStartupError
from analysis.pool import WorkerPool
from analysis.tests.mocks import FakeWorker, make_workers
from game.server.app import create_app
from game.server.settings import GameServerSettings
from game.tests.helpers.positions import START_FEN


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


class TestBestMove:
    def test_returns_engine_move(self, client, fake_workers):
        response = client.post("/best-move", json={"position": START_FEN, "effort": 12})

        assert response.status_code == 200
        assert response.json() == {"move": "e2e4"}
        assert fake_workers[0].searches == [(START_FEN, 12)]

    def test_fen_and_level_aliases(self, client, fake_workers):
        response = client.post("/best-move", json={"fen": START_FEN, "level": 3})

        assert response.status_code == 200
        assert fake_workers[0].searches == [(START_FEN, 3)]

    def test_numeric_string_level_accepted(self, client, fake_workers):
        response = client.post("/best-move", json={"fen": START_FEN, "level": "5"})

        assert response.status_code == 200
        assert fake_workers[0].searches == [(START_FEN, 5)]

    def test_effort_defaults(self, client, fake_workers):
        client.post("/best-move", json={"position": START_FEN})

        assert fake_workers[0].searches == [(START_FEN, 10)]

    @pytest.mark.parametrize("body", [{}, {"position": ""}, {"position": "   ", "effort": 5}])
    def test_missing_position(self, client, fake_workers, body):
        response = client.post("/best-move", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing position"}
        assert all(w.searches == [] for w in fake_workers)

    @pytest.mark.parametrize("effort", [0, 31])
    def test_effort_out_of_range(self, client, effort):
        response = client.post("/best-move", json={"position": START_FEN, "effort": effort})

        assert response.status_code == 400
        assert "effort" in response.json()["error"]

    @pytest.mark.parametrize(
        "content",
        [
            b"{not json",
            b"[1, 2]",
            b'{"position": 42}',
            b'{"position": "x", "effort": "five"}',
            b'{"position": "x", "effort": 2.5}',
            b'{"position": "x", "effort": true}',
        ],
    )
    def test_malformed_body(self, client, content):
        response = client.post("/best-move", content=content, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}

    def test_oversized_body(self, client):
        response = client.post("/best-move", json={"position": START_FEN, "pad": "x" * 5000})

        assert response.status_code == 413

    def test_engine_failure_is_500_and_worker_returns(self):
        worker = FakeWorker("worker-0", fail_with=EngineError("engine terminated: boom"))
        pool = WorkerPool([worker])
        app = create_app(settings=GameServerSettings(), worker_pool=pool)

        with TestClient(app) as client:
            response = client.post("/best-move", json={"position": START_FEN})

            assert response.status_code == 500
            assert response.json() == {"error": "Engine error"}
            assert pool.idle_count == 1

    def test_pool_not_started_is_503(self, app):
        client = TestClient(app)

        response = client.post("/best-move", json={"position": START_FEN})

        assert response.status_code == 503


class TestLifecycle:
    def test_workers_started_and_closed_with_app(self, app, fake_workers):
        with TestClient(app) as client:
            assert all(w.started for w in fake_workers)
            assert client.get("/health").json() == {"status": "ok"}

        assert all(w.closed for w in fake_workers)

    def test_startup_failure_aborts(self):
        workers = [FakeWorker("worker-0"), FakeWorker("worker-1", fail_start=True)]
        app = create_app(settings=GameServerSettings(), worker_pool=WorkerPool(workers))

        with pytest.raises(WorkerStartupError), TestClient(app):
            pass

        assert workers[0].closed

    def test_status_reports_pool(self):
        app = create_app(settings=GameServerSettings(), worker_pool=WorkerPool(make_workers(3)))

        with TestClient(app) as client:
            client.post("/best-move", json={"position": START_FEN})
            body = client.get("/status").json()

        assert body["status"] == "ok"
        assert body["workers"] == 3
        assert body["workers_idle"] == 3
        assert body["workers_busy"] == 0
        assert body["evaluations_started"] == 1
        assert body["active_rooms"] == 0

    def test_cors_preflight(self, client):
        response = client.options(
            "/best-move",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
