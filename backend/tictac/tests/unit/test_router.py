from unittest.mock import AsyncMock

from tictac.messaging.types import ServerMessageType, SessionErrorCode
from tictac.tests.helpers.session import start_private_game


class TestMessageRouter:
    async def test_invalid_payload_returns_error(self, router, connect):
        alice = connect()
        await router.handle_message(alice, {"type": "createRoom"})

        error = alice.last_of_type(ServerMessageType.ERROR)
        assert error["code"] == SessionErrorCode.INVALID_MESSAGE

    async def test_unknown_type_returns_error(self, router, connect):
        alice = connect()
        await router.handle_message(alice, {"type": "selfDestruct"})

        assert alice.last_of_type(ServerMessageType.ERROR)["code"] == "invalid_message"

    async def test_create_and_join_through_router(self, router, manager, connect):
        alice, bob = connect(), connect()
        await router.handle_message(alice, {"type": "createRoom", "name": "Alice"})
        room_id = alice.last_of_type(ServerMessageType.ROOM_CREATED)["roomId"]

        await router.handle_message(bob, {"type": "joinRoom", "roomId": room_id.lower(), "playerName": "Bob"})

        assert bob.last_of_type(ServerMessageType.ROOM_JOINED)["roomId"] == room_id
        assert manager.get_room(room_id).player_count == 2

    async def test_invalid_move_reported_to_actor_only(self, router, manager, connect):
        alice, bob = connect(), connect()
        room_id, _, _ = await start_private_game(manager, alice, bob)

        await router.handle_message(bob, {"type": "makeMove", "roomId": room_id, "cellIndex": 0})

        assert bob.sent_messages == [{"type": "invalidMove", "reason": "not_your_turn", "cellIndex": 0}]
        assert alice.sent_messages == []

    async def test_occupied_cell(self, router, manager, connect):
        alice, bob = connect(), connect()
        room_id, _, _ = await start_private_game(manager, alice, bob)
        await router.handle_message(alice, {"type": "makeMove", "roomId": room_id, "cellIndex": 4})

        await router.handle_message(bob, {"type": "makeMove", "roomId": room_id, "cellIndex": 4})

        assert bob.last_of_type(ServerMessageType.INVALID_MOVE)["reason"] == "cell_occupied"

    async def test_unexpected_error_is_contained(self, router, manager, connect):
        alice = connect()
        manager.create_room = AsyncMock(side_effect=KeyError("boom"))

        await router.handle_message(alice, {"type": "createRoom", "name": "Alice"})

        assert alice.last_of_type(ServerMessageType.ERROR)["code"] == SessionErrorCode.INTERNAL_ERROR

    async def test_ping(self, router, connect):
        alice = connect()
        await router.handle_message(alice, {"type": "ping"})
        assert alice.sent_messages == [{"type": "pong"}]

    async def test_cancel_find_opponent(self, router, manager, connect):
        alice = connect()
        await router.handle_message(alice, {"type": "findOpponent", "name": "Alice"})
        await router.handle_message(alice, {"type": "cancelFindOpponent"})
        assert manager.waiting_count == 0

    async def test_disconnect_unregisters_and_starts_grace(self, router, manager, connect):
        alice, bob = connect(), connect()
        room_id, _, _ = await start_private_game(manager, alice, bob)

        await router.handle_disconnect(alice)

        assert manager.connection_count == 1
        assert alice.connection_id in manager.get_room(room_id).pending_evictions
        assert bob.last_of_type(ServerMessageType.PLAYER_DISCONNECTED)["playerName"] == "Alice"
