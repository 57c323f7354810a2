"""Abstract connection protocol for MessagePack binary communication."""

from abc import ABC, abstractmethod
from typing import Any

from tictac.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for one client connection.

    The session layer only ever talks to this interface, so room logic can
    be tested without real WebSockets. ``connection_id`` is the identity the
    session layer keys players by; it stays valid as a dictionary key after
    the underlying socket is gone.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        raw = await self.receive_bytes()
        return decode(raw)
