"""FIFO queue of players waiting for a public opponent."""

from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class WaitingEntry:
    connection_id: str
    name: str


class MatchmakingQueue:
    """Pair each arrival with the longest-waiting player.

    The queue only decides who is paired; building the room and notifying
    both players is the session manager's job. Methods never await, so a
    pop cannot be observed half-done by another coroutine.
    """

    def __init__(self) -> None:
        self._waiting: deque[WaitingEntry] = deque()

    def __len__(self) -> int:
        return len(self._waiting)

    def __contains__(self, connection_id: object) -> bool:
        return any(entry.connection_id == connection_id for entry in self._waiting)

    def enqueue_or_pair(self, connection_id: str, name: str) -> WaitingEntry | None:
        """Return the oldest waiter if there is one, else queue the arrival and return None."""
        if self._waiting:
            return self._waiting.popleft()
        self._waiting.append(WaitingEntry(connection_id=connection_id, name=name))
        return None

    def push_front(self, entry: WaitingEntry) -> None:
        """Put a popped waiter back at the head (pairing could not complete)."""
        self._waiting.appendleft(entry)

    def cancel(self, connection_id: str) -> bool:
        """Remove the connection's entry. Returns False (and does nothing) if absent."""
        for entry in self._waiting:
            if entry.connection_id == connection_id:
                self._waiting.remove(entry)
                return True
        return False

    def clear(self) -> None:
        self._waiting.clear()
