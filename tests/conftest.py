"""Test configuration and fixtures."""
import pytest

from roomrelay.core.config import Settings
from roomrelay.services.connection_manager import ConnectionManager
from roomrelay.services.message_store import MemoryMessageStore
from roomrelay.services.room_registry import RoomRegistry
from roomrelay.services.session import ChatSession


class FakeWebSocket:
    """Records every frame the server sends to it."""

    def __init__(self):
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        self.sent.append(data)

    def events(self):
        return [frame["event"] for frame in self.sent]

    def take(self):
        frames, self.sent = self.sent, []
        return frames


class TestSettings(Settings):
    __test__ = False

    STORAGE_BACKEND = "memory"
    PUB_SUB_SERVICE = "local"
    DEFAULT_ROOMS = ["interactive-session", "Room 2"]
    CORS_ORIGINS = ["*"]


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def manager(registry):
    return ConnectionManager(registry)


@pytest.fixture
def store():
    return MemoryMessageStore()


@pytest.fixture
def open_session(registry, manager, store):
    """Factory: ``session, ws = await open_session()``."""

    async def _open(message_store=None):
        ws = FakeWebSocket()
        connection_id = await manager.connect(ws)
        session = ChatSession(connection_id, registry, manager, message_store or store)
        return session, ws

    return _open


@pytest.fixture
def test_settings():
    return TestSettings()
