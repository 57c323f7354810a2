"""Shared WebSocket test helpers for integration tests."""

from tictac.messaging.encoder import decode, encode


def send_ws(ws, data: dict) -> None:
    """Send a MessagePack-encoded message over a test WebSocket."""
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())


def recv_until(ws, message_type: str, limit: int = 20) -> dict:
    """Receive messages until one of ``message_type`` arrives."""
    for _ in range(limit):
        msg = recv_ws(ws)
        if msg.get("type") == message_type:
            return msg
    raise AssertionError(f"no {message_type!r} message within {limit} frames")
