from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from analysis.evaluation import EvaluationHandler
from analysis.exceptions import BadRequestError, EngineError, PoolNotRunningError
from analysis.pool import WorkerPool
from analysis.worker import UciWorker
from game.messaging.router import MessageRouter
from game.server.settings import GameServerSettings
from game.server.types import BestMoveResponse, EvaluationRequest
from game.server.websocket import websocket_endpoint
from game.session.registry import RoomRegistry
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket


_MAX_REQUEST_BODY_SIZE = 4096


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    pool: WorkerPool = request.app.state.worker_pool
    registry: RoomRegistry = request.app.state.room_registry
    return JSONResponse(
        {
            "status": "ok" if pool.running else "starting",
            "workers": pool.size,
            "workers_idle": pool.idle_count,
            "workers_busy": pool.lent_count,
            "requests_waiting": pool.waiting_count,
            "evaluations_started": pool.borrow_count,
            "active_rooms": registry.room_count,
        },
    )


async def list_rooms(request: Request) -> JSONResponse:
    registry: RoomRegistry = request.app.state.room_registry
    return JSONResponse({"rooms": [r.model_dump(mode="json") for r in registry.get_rooms_info()]})


async def best_move(request: Request) -> JSONResponse:
    handler: EvaluationHandler = request.app.state.evaluation_handler

    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)
        body = json.loads(raw_body)
        evaluation = EvaluationRequest(**body)
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    try:
        move = await handler.evaluate(evaluation.position, evaluation.effort)
    except BadRequestError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except PoolNotRunningError:
        return JSONResponse({"error": "Engine unavailable"}, status_code=503)
    except EngineError:
        return JSONResponse({"error": "Engine error"}, status_code=500)

    return JSONResponse(BestMoveResponse(move=move).model_dump())


def create_worker_pool(settings: GameServerSettings) -> WorkerPool:
    return WorkerPool(
        [
            UciWorker(f"worker-{i}", settings.engine_path, threads=settings.engine_threads)
            for i in range(settings.pool_size)
        ],
    )


def create_app(
    settings: GameServerSettings | None = None,
    worker_pool: WorkerPool | None = None,
    room_registry: RoomRegistry | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    if worker_pool is None:  # pragma: no cover
        worker_pool = create_worker_pool(settings)

    if room_registry is None:
        room_registry = RoomRegistry()

    if message_router is None:
        message_router = MessageRouter(room_registry)

    evaluation_handler = EvaluationHandler(
        worker_pool,
        default_effort=settings.default_effort,
        max_effort=settings.max_effort,
    )

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        # a worker that cannot start aborts startup; no partial pool is served
        await worker_pool.start()
        logger.info("server ready", workers=worker_pool.size)
        try:
            yield
        finally:
            await worker_pool.shutdown()

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/rooms", list_rooms, methods=["GET"]),
        Route("/best-move", best_move, methods=["POST"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.worker_pool = worker_pool
    app.state.room_registry = room_registry
    app.state.evaluation_handler = evaluation_handler
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory game.server.app:get_app)."""
    settings = GameServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
