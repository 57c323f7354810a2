import asyncio
from typing import Any
from uuid import uuid4

from tictac.messaging.encoder import decode
from tictac.messaging.protocol import ConnectionProtocol


class MockConnection(ConnectionProtocol):
    """In-memory connection that records what the server sends."""

    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or str(uuid4())
        self._outbox: list[bytes] = []
        self._inbox: asyncio.Queue[bytes] = asyncio.Queue()
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.fail_sends = False

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return [decode(data) for data in self._outbox]

    def messages_of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self.sent_messages if m.get("type") == message_type]

    def last_of_type(self, message_type: str) -> dict[str, Any] | None:
        matches = self.messages_of_type(message_type)
        return matches[-1] if matches else None

    def clear(self) -> None:
        self._outbox.clear()

    async def send_bytes(self, data: bytes) -> None:
        if self.closed or self.fail_sends:
            raise ConnectionError("connection closed")
        self._outbox.append(data)

    async def receive_bytes(self) -> bytes:
        return await self._inbox.get()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self.close_reason = reason
