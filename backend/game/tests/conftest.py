import pytest

from analysis.pool import WorkerPool
from analysis.tests.mocks import make_workers
from game.messaging.router import MessageRouter
from game.server.app import create_app
from game.server.settings import GameServerSettings
from game.session.registry import RoomRegistry
from game.tests.mocks import MockConnection


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def message_router(registry):
    return MessageRouter(registry)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def fake_workers():
    return make_workers(2, move="e2e4")


@pytest.fixture
def app(fake_workers, registry, message_router):
    return create_app(
        settings=GameServerSettings(),
        worker_pool=WorkerPool(fake_workers),
        room_registry=registry,
        message_router=message_router,
    )
