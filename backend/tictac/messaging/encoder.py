"""
MessagePack encoder/decoder for the WebSocket wire format.

Every frame is a single MessagePack map with a ``type`` key naming the
event. Decoding enforces size limits so a hostile client cannot make the
server allocate large buffers.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Error raised when a frame cannot be decoded into a message map."""


# Frames are small (a name, a room id, a 9-cell board); anything near these
# limits is not a legitimate client.
MAX_BUFFER_LEN = 64 * 1024
MAX_STR_LEN = 8 * 1024
MAX_BIN_LEN = 1024
MAX_ARRAY_LEN = 512
MAX_MAP_LEN = 64
MAX_EXT_LEN = 16


def encode(data: dict[str, Any]) -> bytes:
    """Encode a message map to MessagePack bytes."""
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode MessagePack bytes to a message map.

    Raises DecodeError if data is invalid, not a map, or exceeds size limits.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")

    return result
