"""Tests for RoomService lobby operations against the in-memory Redis double."""

import asyncio

import pytest

from app.schemas.game_engine import GameType
from app.services.room.service import (
    ACTIVE_ROOMS_KEY,
    STATUS_PLAYING,
    STATUS_WAITING,
    RoomService,
)

from .conftest import PLAYER_1_ID, PLAYER_2_ID, PLAYER_3_ID, PLAYER_4_ID, FakeRedis


class RoundTripRedis(FakeRedis):
    """Yields after every read, the way a network round-trip would."""

    async def hgetall(self, key):
        result = await super().hgetall(key)
        await asyncio.sleep(0)
        return result


@pytest.fixture
def rooms(fake_redis):
    return RoomService(redis_client=fake_redis, room_ttl_seconds=3600)


async def create_chess_room(rooms: RoomService):
    result = await rooms.create_room(PLAYER_1_ID, "Friday night", GameType.CHESS, display_name="Host")
    assert result.success
    return result.room_snapshot


class TestCreateRoom:
    """Test room creation."""

    async def test_host_takes_seat_zero(self, rooms, fake_redis):
        """Test the host is seated first and the room is waiting."""
        snapshot = await create_chess_room(rooms)

        assert snapshot.status == STATUS_WAITING
        assert snapshot.host_id == PLAYER_1_ID
        assert snapshot.max_players == 2
        host = snapshot.get_participant(PLAYER_1_ID)
        assert host.seat == 0
        assert host.is_host
        assert not host.ready
        assert snapshot.room_id in fake_redis.data[ACTIVE_ROOMS_KEY]

    async def test_max_players_defaults_to_the_game_maximum(self, rooms):
        """Test the seat limit defaults to the game's maximum."""
        result = await rooms.create_room(PLAYER_1_ID, "Eights", GameType.CRAZY8S)

        assert result.room_snapshot.max_players == 8

    async def test_max_players_outside_limits(self, rooms):
        """Test a seat limit outside the game's range is rejected."""
        result = await rooms.create_room(PLAYER_1_ID, "Big hearts", GameType.HEARTS, max_players=6)

        assert not result.success
        assert result.error_code == "INVALID_PLAYER_COUNT"


class TestJoinRoom:
    """Test joining a room and seat allocation."""

    async def test_join_takes_next_seat(self, rooms):
        """Test a guest takes the next free seat."""
        snapshot = await create_chess_room(rooms)

        result = await rooms.join_room(snapshot.room_id, PLAYER_2_ID, "Guest")

        assert result.success
        assert result.room_snapshot.player_slots == [PLAYER_1_ID, PLAYER_2_ID]
        assert result.room_snapshot.version > snapshot.version

    async def test_rejoin_is_idempotent(self, rooms):
        """Test joining again keeps the same seat."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        result = await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        assert result.success
        assert len(result.room_snapshot.participants) == 2

    async def test_full_room(self, rooms):
        """Test joining a full room is rejected."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        result = await rooms.join_room(snapshot.room_id, PLAYER_3_ID)

        assert result.error_code == "ROOM_FULL"

    async def test_spectators_do_not_take_seats(self, rooms):
        """Test spectators join without a seat."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        result = await rooms.join_room(snapshot.room_id, PLAYER_3_ID, as_spectator=True)

        assert result.success
        watcher = result.room_snapshot.get_participant(PLAYER_3_ID)
        assert watcher.is_spectator
        assert watcher.seat is None
        assert PLAYER_3_ID not in result.room_snapshot.player_slots

    async def test_late_joiners_watch(self, rooms):
        """Test joining after the game starts makes a spectator."""
        snapshot = await create_chess_room(rooms)
        await rooms.set_status(snapshot.room_id, STATUS_PLAYING)

        result = await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        assert result.room_snapshot.get_participant(PLAYER_2_ID).is_spectator

    async def test_concurrent_joins_cannot_share_a_seat(self):
        """Test two joins racing for the last seat give it to only one."""
        rooms = RoomService(redis_client=RoundTripRedis(), room_ttl_seconds=3600)
        snapshot = await create_chess_room(rooms)

        results = await asyncio.gather(
            rooms.join_room(snapshot.room_id, PLAYER_2_ID),
            rooms.join_room(snapshot.room_id, PLAYER_3_ID),
        )

        assert sorted(result.success for result in results) == [False, True]
        assert [r.error_code for r in results if not r.success] == ["ROOM_FULL"]
        final = await rooms.get_room_snapshot(snapshot.room_id)
        assert [p.seat for p in final.players] == [0, 1]

    async def test_concurrent_bots_fill_distinct_seats(self):
        """Test bots added at once each get a different seat."""
        rooms = RoomService(redis_client=RoundTripRedis(), room_ttl_seconds=3600)
        created = await rooms.create_room(PLAYER_1_ID, "Table", GameType.HEARTS)
        room_id = created.room_snapshot.room_id

        results = await asyncio.gather(*(rooms.add_bot(room_id, PLAYER_1_ID) for _ in range(4)))

        assert sum(result.success for result in results) == 3
        final = await rooms.get_room_snapshot(room_id)
        assert [p.seat for p in final.players] == [0, 1, 2, 3]

    async def test_freed_seat_is_reused(self, rooms):
        """Test a seat freed by a leaver goes to the next joiner."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID)
        await rooms.leave_room(snapshot.room_id, PLAYER_2_ID)

        result = await rooms.join_room(snapshot.room_id, PLAYER_3_ID)

        assert result.success
        assert result.room_snapshot.get_participant(PLAYER_3_ID).seat == 1

    async def test_unknown_room(self, rooms):
        """Test joining a missing room is rejected."""
        result = await rooms.join_room("missing", PLAYER_2_ID)

        assert result.error_code == "ROOM_NOT_FOUND"


class TestBots:
    """Test adding bot seats."""

    async def test_host_adds_a_ready_bot(self, rooms):
        """Test a bot added by the host is seated and ready."""
        snapshot = await create_chess_room(rooms)

        result = await rooms.add_bot(snapshot.room_id, PLAYER_1_ID, "hard")

        assert result.success
        bot = result.room_snapshot.players[1]
        assert bot.user_id.startswith("bot-")
        assert bot.is_bot
        assert bot.ready
        assert result.room_snapshot.bot_difficulties() == {bot.user_id: "hard"}

    async def test_only_the_host_adds_bots(self, rooms):
        """Test guests cannot add bots."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID, as_spectator=True)

        result = await rooms.add_bot(snapshot.room_id, PLAYER_2_ID)

        assert result.error_code == "NOT_HOST"

    async def test_no_bots_once_full(self, rooms):
        """Test no bot can be added to a full room."""
        snapshot = await create_chess_room(rooms)
        await rooms.add_bot(snapshot.room_id, PLAYER_1_ID)

        result = await rooms.add_bot(snapshot.room_id, PLAYER_1_ID)

        assert result.error_code == "ROOM_FULL"

    async def test_no_bots_after_start(self, rooms):
        """Test no bot can be added once the game has started."""
        snapshot = await create_chess_room(rooms)
        await rooms.set_status(snapshot.room_id, STATUS_PLAYING)

        result = await rooms.add_bot(snapshot.room_id, PLAYER_1_ID)

        assert result.error_code == "GAME_ALREADY_STARTED"


class TestReady:
    """Test the ready flag."""

    async def test_toggle_flips_the_flag(self, rooms):
        """Test toggling ready flips the flag each time."""
        snapshot = await create_chess_room(rooms)

        first = await rooms.toggle_ready(snapshot.room_id, PLAYER_1_ID)
        second = await rooms.toggle_ready(snapshot.room_id, PLAYER_1_ID)

        assert first.new_ready_state is True
        assert second.new_ready_state is False

    async def test_outsider_cannot_ready(self, rooms):
        """Test someone outside the room cannot toggle ready."""
        snapshot = await create_chess_room(rooms)

        result = await rooms.toggle_ready(snapshot.room_id, PLAYER_3_ID)

        assert result.error_code == "NOT_IN_ROOM"

    async def test_spectator_cannot_ready(self, rooms):
        """Test a spectator cannot toggle ready."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_3_ID, as_spectator=True)

        result = await rooms.toggle_ready(snapshot.room_id, PLAYER_3_ID)

        assert result.error_code == "VALIDATION_ERROR"

    async def test_rematch_reset_unreadies_humans(self, rooms):
        """Test a rematch reset unreadies humans and keeps bots ready."""
        snapshot = await create_chess_room(rooms)
        await rooms.toggle_ready(snapshot.room_id, PLAYER_1_ID)
        await rooms.add_bot(snapshot.room_id, PLAYER_1_ID)
        await rooms.set_status(snapshot.room_id, STATUS_PLAYING)

        reset = await rooms.reset_for_rematch(snapshot.room_id)

        assert reset.status == STATUS_WAITING
        assert not reset.get_participant(PLAYER_1_ID).ready
        assert reset.players[1].ready


class TestLeave:
    """Test leaving a room."""

    async def test_guest_leaving_frees_the_seat(self, rooms):
        """Test a guest leaving gives up their seat."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        result = await rooms.leave_room(snapshot.room_id, PLAYER_2_ID)

        assert result.success
        assert not result.room_closed
        assert result.room_snapshot.player_slots == [PLAYER_1_ID]

    async def test_host_leaving_closes_the_room(self, rooms, fake_redis):
        """Test the host leaving deletes the room."""
        snapshot = await create_chess_room(rooms)
        await rooms.join_room(snapshot.room_id, PLAYER_2_ID)

        result = await rooms.leave_room(snapshot.room_id, PLAYER_1_ID)

        assert result.room_closed
        assert result.room_snapshot is None
        assert await rooms.get_room_snapshot(snapshot.room_id) is None
        assert snapshot.room_id not in fake_redis.data[ACTIVE_ROOMS_KEY]

    async def test_leaving_a_room_you_are_not_in(self, rooms):
        """Test leaving a room you are not in is rejected."""
        snapshot = await create_chess_room(rooms)

        result = await rooms.leave_room(snapshot.room_id, PLAYER_3_ID)

        assert result.error_code == "NOT_IN_ROOM"


class TestLobby:
    """Test lobby changes, listing and presence."""

    async def test_change_game_type_resets_ready_and_seats(self, rooms):
        """Test switching games unreadies humans and resets the seat limit."""
        snapshot = await create_chess_room(rooms)
        await rooms.toggle_ready(snapshot.room_id, PLAYER_1_ID)

        result = await rooms.change_game_type(snapshot.room_id, PLAYER_1_ID, GameType.GOFISH)

        assert result.success
        assert result.room_snapshot.game_type == "gofish"
        assert result.room_snapshot.max_players == 6
        assert not result.room_snapshot.get_participant(PLAYER_1_ID).ready

    async def test_change_game_type_rejects_too_many_players(self, rooms):
        """Test switching to a game with fewer seats than players is rejected."""
        result = await rooms.create_room(PLAYER_1_ID, "Eights", GameType.CRAZY8S)
        room_id = result.room_snapshot.room_id
        await rooms.join_room(room_id, PLAYER_2_ID)
        await rooms.join_room(room_id, PLAYER_3_ID)

        changed = await rooms.change_game_type(room_id, PLAYER_1_ID, GameType.CHESS)

        assert changed.error_code == "INVALID_PLAYER_COUNT"

    async def test_change_game_type_compacts_seats(self, rooms):
        """Test switching games closes gaps left by leavers."""
        result = await rooms.create_room(PLAYER_1_ID, "Eights", GameType.CRAZY8S)
        room_id = result.room_snapshot.room_id
        await rooms.join_room(room_id, PLAYER_2_ID)
        await rooms.join_room(room_id, PLAYER_3_ID)
        await rooms.leave_room(room_id, PLAYER_2_ID)

        changed = await rooms.change_game_type(room_id, PLAYER_1_ID, GameType.CHESS)
        late = await rooms.join_room(room_id, PLAYER_4_ID)

        assert [p.seat for p in changed.room_snapshot.players] == [0, 1]
        assert changed.room_snapshot.get_participant(PLAYER_3_ID).seat == 1
        assert late.error_code == "ROOM_FULL"

    async def test_list_rooms_drops_expired_ids(self, rooms, fake_redis):
        """Test room listing skips ids whose room has expired."""
        snapshot = await create_chess_room(rooms)
        fake_redis.data[ACTIVE_ROOMS_KEY].add("expired-room")

        listed = await rooms.list_rooms()

        assert [room.room_id for room in listed] == [snapshot.room_id]
        assert "expired-room" not in fake_redis.data[ACTIVE_ROOMS_KEY]

    async def test_connected_flag_tracks_presence(self, rooms, fake_redis):
        """Test the connected flag follows the presence set."""
        snapshot = await create_chess_room(rooms)
        presence_key = f"room:{snapshot.room_id}:presence"

        await rooms.update_connected(snapshot.room_id, PLAYER_1_ID, True)
        connected = await rooms.get_room_snapshot(snapshot.room_id)
        assert connected.get_participant(PLAYER_1_ID).connected
        assert PLAYER_1_ID in fake_redis.data[presence_key]

        await rooms.update_connected(snapshot.room_id, PLAYER_1_ID, False)
        assert PLAYER_1_ID not in fake_redis.data[presence_key]
