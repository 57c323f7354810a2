import pytest

from tictac.messaging.router import MessageRouter
from tictac.session.manager import SessionManager
from tictac.tests.helpers.session import TEST_GRACE_SECONDS
from tictac.tests.mocks.connection import MockConnection


@pytest.fixture
def manager():
    manager = SessionManager(disconnect_grace_seconds=TEST_GRACE_SECONDS)
    yield manager
    manager.shutdown()


@pytest.fixture
def router(manager):
    return MessageRouter(manager)


@pytest.fixture
def connect(manager):
    """Create a MockConnection registered with the manager."""

    def _connect(connection_id: str | None = None) -> MockConnection:
        connection = MockConnection(connection_id)
        manager.register_connection(connection)
        return connection

    return _connect
