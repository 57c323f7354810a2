"""
Grace-period eviction of disconnected players.

When a room member's connection drops, their seat is held for a fixed grace
period. If they reconnect with their token in time the pending eviction is
cancelled; otherwise the expiry callback removes them from the room.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tictac.session.models import Player, Room

logger = structlog.get_logger()

DEFAULT_GRACE_SECONDS = 30.0


@dataclass(eq=False)
class EvictionHandle:
    """A scheduled eviction for one disconnected player.

    The handle is stored in ``Room.pending_evictions`` under the player's
    old connection id. The expiry callback must re-check, under the room
    lock, that this exact handle is still registered before mutating the
    room: that check is what makes fire and cancel mutually exclusive.
    """

    room_id: str
    connection_id: str
    token: str
    player_name: str
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class EvictionScheduler:
    """Create, track and cancel eviction tasks for every room.

    This class owns the task lifecycle only. Whether an expired handle still
    applies, and what removing the player means for the room, is decided by
    the ``on_expire`` callback (SessionManager).
    """

    def __init__(
        self,
        on_expire: Callable[[EvictionHandle], Awaitable[None]],
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        self._on_expire = on_expire
        self._grace_seconds = grace_seconds
        self._handles: set[EvictionHandle] = set()

    @property
    def grace_seconds(self) -> float:
        return self._grace_seconds

    @property
    def pending_count(self) -> int:
        return len(self._handles)

    def schedule(self, room: Room, player: Player) -> EvictionHandle:
        """Start the grace period for ``player``. Must be called under ``room.lock``.

        A handle already pending for the same connection id is replaced.
        """
        self.cancel(room, player.connection_id)
        handle = EvictionHandle(
            room_id=room.room_id,
            connection_id=player.connection_id,
            token=player.token,
            player_name=player.name,
        )
        handle.task = asyncio.create_task(self._run(handle), name=f"evict-{room.room_id}-{player.connection_id}")
        room.pending_evictions[player.connection_id] = handle
        self._handles.add(handle)
        logger.info(
            "eviction scheduled",
            room_id=room.room_id,
            player=player.name,
            grace_seconds=self._grace_seconds,
        )
        return handle

    def cancel(self, room: Room, connection_id: str) -> bool:
        """Cancel the pending eviction for ``connection_id``. Must be called under ``room.lock``.

        Returns False when nothing was pending.
        """
        handle = room.pending_evictions.pop(connection_id, None)
        if handle is None:
            return False
        handle.cancel()
        self._handles.discard(handle)
        logger.info("eviction cancelled", room_id=room.room_id, player=handle.player_name)
        return True

    def cancel_all(self) -> None:
        """Cancel every pending eviction (server shutdown)."""
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

    async def _run(self, handle: EvictionHandle) -> None:
        try:
            await asyncio.sleep(self._grace_seconds)
            await self._on_expire(handle)
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("eviction callback failed", room_id=handle.room_id)
        finally:
            self._handles.discard(handle)
