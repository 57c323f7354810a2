import time

import pytest

from tictac.logic.enums import Mark
from tictac.logic.exceptions import RoomFullError
from tictac.session.models import Room


class TestRoom:
    def test_roles_assigned_x_then_o(self):
        room = Room(room_id="ABCD")
        first = room.add_player("a", "Alice")
        second = room.add_player("b", "Bob")
        assert (first.role, second.role) == (Mark.X, Mark.O)
        assert room.is_full

    def test_third_player_rejected(self):
        room = Room(room_id="ABCD")
        room.add_player("a", "Alice")
        room.add_player("b", "Bob")
        with pytest.raises(RoomFullError):
            room.add_player("c", "Carol")
        assert room.player_count == 2

    def test_tokens_are_unique(self):
        room = Room(room_id="ABCD")
        first = room.add_player("a", "Alice")
        second = room.add_player("b", "Bob")
        assert first.token != second.token

    def test_freed_role_is_reused(self):
        room = Room(room_id="ABCD")
        room.add_player("a", "Alice")
        room.add_player("b", "Bob")
        room.remove_player("a")
        newcomer = room.add_player("c", "Carol")
        assert newcomer.role is Mark.X

    def test_rebind_keeps_token_name_and_role(self):
        room = Room(room_id="ABCD")
        player = room.add_player("a", "Alice")
        token = player.token
        room.rebind_player(player, "a2")
        assert "a" not in room.players
        assert room.players["a2"] is player
        assert (player.token, player.name, player.role) == (token, "Alice", Mark.X)

    def test_player_by_token(self):
        room = Room(room_id="ABCD")
        player = room.add_player("a", "Alice")
        assert room.player_by_token(player.token) is player
        assert room.player_by_token("nope") is None

    def test_append_message(self):
        room = Room(room_id="ABCD")
        player = room.add_player("a", "Alice")
        entry = room.append_message(player, "hi")
        assert room.messages == [entry]
        assert (entry.player_id, entry.player_name, entry.message) == ("a", "Alice", "hi")

    def test_age_counts_from_creation(self):
        room = Room(room_id="ABCD", created_at=time.monotonic() - 5.0)
        assert 5.0 <= room.age_seconds < 60.0
