"""Room-level game orchestration.

GameSessionService sits between the WebSocket handlers and the engine:
- serializes every state change for a room behind one asyncio.Lock
- loads and persists state through GameStateStore
- drives bot seats after each change, with a randomized pacing delay
- broadcasts bot moves itself (human moves are broadcast by the handler)

Results come back as SessionResult so handlers never catch exceptions for
control flow.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from app.schemas.game_engine import GameType
from app.schemas.ws import (
    DrawOfferPayload,
    GameEndedPayload,
    GameStartedPayload,
    GameUpdatedPayload,
    MessageType,
    WSServerMessage,
)
from app.services.bots import BotPlayer
from app.services.room.service import (
    STATUS_FINISHED,
    STATUS_PLAYING,
    STATUS_WAITING,
    RoomService,
    RoomSnapshotData,
)

from .engine import GameStarted, ProcessResult
from .service import GameEngine
from .store import GameRecord, GameStateStore

logger = logging.getLogger(__name__)

# Sends a message to every connection subscribed to a room
Broadcaster = Callable[[str, WSServerMessage], Awaitable[object]]


@dataclass
class SessionResult:
    """Outcome of a session operation."""

    success: bool
    record: GameRecord | None = None
    events: list = field(default_factory=list)
    move: dict | None = None
    messages: list[WSServerMessage] = field(default_factory=list)
    room_snapshot: RoomSnapshotData | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def error(cls, code: str, message: str) -> "SessionResult":
        return cls(success=False, error_code=code, error_message=message)


def game_started_message(record: GameRecord, events: list) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.GAME_STARTED,
        payload=GameStartedPayload(
            state=record.to_wire(),
            events=[event.model_dump(mode="json") for event in events],
        ).model_dump(mode="json"),
    )


def game_updated_message(record: GameRecord, move: dict | None, events: list) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.GAME_UPDATED,
        payload=GameUpdatedPayload(
            state=record.to_wire(),
            current_turn=record.current_turn,
            turn_number=record.turn_number,
            move=move,
            events=[event.model_dump(mode="json") for event in events],
        ).model_dump(mode="json", by_alias=True),
    )


def game_ended_message(record: GameRecord) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.GAME_ENDED,
        payload=GameEndedPayload(
            reason=record.state.end_reason,
            winner=record.state.winner,
        ).model_dump(mode="json"),
    )


@dataclass
class _RoomLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class GameSessionService:
    """Runs games for rooms. One instance serves every room."""

    def __init__(
        self,
        room_service: RoomService,
        store: GameStateStore,
        engine: GameEngine,
        bot_player: BotPlayer,
        broadcaster: Broadcaster,
        bot_delay: tuple[float, float] = (1.0, 3.0),
        rng: random.Random | None = None,
    ):
        self._rooms = room_service
        self._store = store
        self._engine = engine
        self._bots = bot_player
        self._broadcast = broadcaster
        self._bot_delay = bot_delay
        self._rng = rng or random.Random()

        self._locks: dict[str, _RoomLock] = {}
        self._bot_tasks: dict[str, asyncio.Task] = {}
        self._bot_rechecks: dict[str, str] = {}
        self._draw_offers: dict[str, tuple[str, str]] = {}  # room_id -> (game_id, offering slot)

    @asynccontextmanager
    async def _room_lock(self, room_id: str):
        """Hold the room's lock. The entry is dropped once nobody holds or awaits it."""
        entry = self._locks.get(room_id)
        if entry is None:
            entry = self._locks[room_id] = _RoomLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[room_id]

    async def get_game(self, room_id: str) -> GameRecord | None:
        try:
            return await self._store.get(room_id)
        except ValueError:
            logger.exception("Stored game for room %s is invalid", room_id)
            return None

    async def _commit(self, record: GameRecord, result: ProcessResult) -> GameRecord:
        """Persist an accepted transition and mark the room finished when it ends."""
        updated = await self._store.update(record, result.state)
        if updated.state.game_over:
            self._draw_offers.pop(record.room_id, None)
            await self._rooms.set_status(record.room_id, STATUS_FINISHED)
            logger.info(
                "Game %s in room %s ended: reason=%s, winner=%s",
                record.game_id,
                record.room_id,
                updated.state.end_reason.value,
                updated.state.winner,
            )
        return updated

    def _after_transition(self, record: GameRecord, move: dict | None, events: list) -> list[WSServerMessage]:
        messages = [game_updated_message(record, move, events)]
        if record.state.game_over:
            messages.append(game_ended_message(record))
        return messages

    # --- Game lifecycle ---

    async def start_game(self, room_id: str, user_id: str) -> SessionResult:
        """Host starts the game once every seated participant is ready."""
        async with self._room_lock(room_id):
            snapshot = await self._rooms.get_room_snapshot(room_id)
            if snapshot is None:
                return SessionResult.error("ROOM_NOT_FOUND", "Room not found")
            if snapshot.host_id != user_id:
                return SessionResult.error("NOT_HOST", "Only the host can start the game")
            if snapshot.status == STATUS_PLAYING:
                return SessionResult.error("GAME_ALREADY_STARTED", "Game has already started")
            if snapshot.status != STATUS_WAITING:
                return SessionResult.error(
                    "INVALID_GAME_STATE", "Request a rematch before starting a new game"
                )

            players = snapshot.players
            try:
                self._engine.validate_player_count(snapshot.game_type, len(players))
            except ValueError as e:
                return SessionResult.error("INVALID_PLAYER_COUNT", str(e))
            not_ready = [p.user_id for p in players if not p.ready]
            if not_ready:
                return SessionResult.error(
                    "PLAYERS_NOT_READY", "All players must be ready before starting the game"
                )

            state = self._engine.initialize(snapshot.game_type, snapshot.player_slots)
            started = GameStarted(
                game_type=GameType(snapshot.game_type),
                player_order=list(state.players),
                first_player_id=state.current_turn,
                seq=state.event_seq,
            )
            state = state.model_copy(update={"event_seq": state.event_seq + 1})

            record = await self._store.create(room_id, state)
            await self._rooms.set_status(room_id, STATUS_PLAYING)
            self._draw_offers.pop(room_id, None)

        logger.info(
            "Game started in room %s: game=%s, players=%d",
            room_id,
            snapshot.game_type,
            len(players),
        )
        self._schedule_bot_turns(room_id, record.game_id)
        return SessionResult(
            success=True,
            record=record,
            events=[started],
            messages=[game_started_message(record, [started])],
        )

    async def apply_move(self, room_id: str, user_id: str, payload: dict) -> SessionResult:
        """Validate and apply a player's `{kind, data}` move."""
        try:
            move = self._engine.parse_move(payload)
        except ValueError as e:
            return SessionResult.error("VALIDATION_ERROR", f"Invalid move: {e}")

        async with self._room_lock(room_id):
            record = await self.get_game(room_id)
            if record is None:
                return SessionResult.error("GAME_NOT_FOUND", "No game in progress for this room")
            if record.state.game_over:
                return SessionResult.error("GAME_FINISHED", "Game has already finished")

            result = self._engine.process_move(record.state, move, user_id)
            if not result.success:
                logger.warning(
                    "Move rejected in room %s: code=%s, player=%s",
                    room_id,
                    result.error_code,
                    user_id[:8],
                )
                return SessionResult.error(
                    result.error_code or "VALIDATION_ERROR",
                    result.error_message or "Invalid move",
                )

            updated = await self._commit(record, result)

        wire_move = result.events[0].move if result.events else None
        self._schedule_bot_turns(room_id, updated.game_id)
        return SessionResult(
            success=True,
            record=updated,
            events=result.events,
            move=wire_move,
            messages=self._after_transition(updated, wire_move, result.events),
        )

    async def apply_action(self, room_id: str, user_id: str, action: str) -> SessionResult:
        """Forfeit or negotiate a draw."""
        async with self._room_lock(room_id):
            record = await self.get_game(room_id)
            if record is None:
                return SessionResult.error("GAME_NOT_FOUND", "No game in progress for this room")
            if record.state.game_over:
                return SessionResult.error("GAME_FINISHED", "Game has already finished")
            if user_id not in record.state.players:
                return SessionResult.error("NOT_IN_ROOM", "You are not playing in this game")

            if action == "forfeit":
                result = self._engine.forfeit(record.state, user_id)
            elif action == "draw_offer":
                if GameType(record.state.game_type) not in (GameType.CHESS, GameType.CHECKERS):
                    return SessionResult.error(
                        "INVALID_GAME_STATE", "Draws are only offered in chess and checkers"
                    )
                self._draw_offers[room_id] = (record.game_id, user_id)
                logger.info("Draw offered in room %s by %s", room_id, user_id[:8])
                return SessionResult(
                    success=True,
                    record=record,
                    messages=[
                        WSServerMessage(
                            type=MessageType.DRAW_OFFER,
                            payload=DrawOfferPayload(from_player=user_id).model_dump(),
                        )
                    ],
                )
            else:
                offer = self._draw_offers.get(room_id)
                if offer is None or offer[0] != record.game_id or offer[1] == user_id:
                    return SessionResult.error("VALIDATION_ERROR", "There is no draw offer to answer")
                del self._draw_offers[room_id]
                if action == "draw_decline":
                    return SessionResult(
                        success=True,
                        record=record,
                        messages=[
                            WSServerMessage(
                                type=MessageType.DRAW_OFFER,
                                payload=DrawOfferPayload(
                                    from_player=offer[1], status="declined"
                                ).model_dump(),
                            )
                        ],
                    )
                result = self._engine.agree_draw(record.state)

            if not result.success:
                return SessionResult.error(
                    result.error_code or "VALIDATION_ERROR",
                    result.error_message or "Action failed",
                )
            updated = await self._commit(record, result)

        return SessionResult(
            success=True,
            record=updated,
            events=result.events,
            messages=self._after_transition(updated, None, result.events),
        )

    async def rematch(self, room_id: str, user_id: str) -> SessionResult:
        """Discard the finished game and send the room back to the lobby."""
        async with self._room_lock(room_id):
            snapshot = await self._rooms.get_room_snapshot(room_id)
            if snapshot is None:
                return SessionResult.error("ROOM_NOT_FOUND", "Room not found")
            if snapshot.get_participant(user_id) is None:
                return SessionResult.error("NOT_IN_ROOM", "You are not in this room")
            record = await self.get_game(room_id)
            if record is not None and not record.state.game_over:
                return SessionResult.error("GAME_ALREADY_STARTED", "The current game is still running")

            self._cancel_bot_turns(room_id)
            self._draw_offers.pop(room_id, None)
            await self._store.delete(room_id)
            snapshot = await self._rooms.reset_for_rematch(room_id)

        logger.info("Rematch requested in room %s by %s", room_id, user_id[:8])
        return SessionResult(success=True, room_snapshot=snapshot)

    async def leave(self, room_id: str, user_id: str) -> SessionResult:
        """Remove a participant, forfeiting for them if they were mid-game.

        The host leaving closes the room and discards the game.
        """
        messages: list[WSServerMessage] = []
        async with self._room_lock(room_id):
            record = await self.get_game(room_id)
            if record is not None and not record.state.game_over and user_id in record.state.players:
                result = self._engine.forfeit(record.state, user_id)
                if result.success:
                    updated = await self._commit(record, result)
                    messages = self._after_transition(updated, None, result.events)

            leave_result = await self._rooms.leave_room(room_id, user_id)
            if not leave_result.success:
                return SessionResult.error(
                    leave_result.error_code or "INTERNAL_ERROR",
                    leave_result.error_message or "Failed to leave room",
                )
            if leave_result.room_closed:
                self._cancel_bot_turns(room_id)
                self._draw_offers.pop(room_id, None)
                await self._store.delete(room_id)

        return SessionResult(
            success=True,
            messages=messages,
            room_snapshot=leave_result.room_snapshot,
        )

    # --- Bots ---

    def _schedule_bot_turns(self, room_id: str, game_id: str) -> None:
        task = self._bot_tasks.get(room_id)
        if task is not None and not task.done():
            # The running loop may already be on its way out; look again once it ends
            self._bot_rechecks[room_id] = game_id
            return
        task = asyncio.create_task(self.run_bot_turns(room_id, game_id))
        task.add_done_callback(lambda done: self._bot_task_done(room_id, done))
        self._bot_tasks[room_id] = task

    def _bot_task_done(self, room_id: str, task: asyncio.Task) -> None:
        if self._bot_tasks.get(room_id) is task:
            del self._bot_tasks[room_id]
        game_id = self._bot_rechecks.pop(room_id, None)
        if game_id is not None and not task.cancelled():
            self._schedule_bot_turns(room_id, game_id)

    def _cancel_bot_turns(self, room_id: str) -> None:
        self._bot_rechecks.pop(room_id, None)
        task = self._bot_tasks.pop(room_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def close(self) -> None:
        """Cancel every pending bot loop (application shutdown)."""
        tasks = list(self._bot_tasks.values())
        for room_id in list(self._bot_tasks):
            self._cancel_bot_turns(room_id)
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Cancelled %d bot loops", len(tasks))

    async def _bot_step(self, room_id: str, game_id: str) -> tuple[GameRecord | None, list[WSServerMessage]]:
        """Play one bot turn under the room lock.

        Returns (None, []) when there is nothing for a bot to do, including
        when the game the delay was started for has since been replaced.
        """
        async with self._room_lock(room_id):
            record = await self.get_game(room_id)
            if record is None or record.game_id != game_id:
                logger.info("Discarding bot turn for stale game %s in room %s", game_id, room_id)
                return None, []
            state = record.state
            if state.game_over:
                return None, []

            snapshot = await self._rooms.get_room_snapshot(room_id)
            if snapshot is None:
                return None, []
            difficulty = snapshot.bot_difficulties().get(state.current_turn)
            if difficulty is None:
                return None, []

            move = self._bots.select_move(state, difficulty, self._rng)
            if move is None:
                result = self._engine.skip_turn(state)
                wire_move = None
            else:
                result = self._engine.process_move(state, move, state.current_turn)
                wire_move = result.events[0].move if result.success and result.events else None

            if not result.success:
                logger.error(
                    "Bot turn failed in room %s: code=%s, message=%s",
                    room_id,
                    result.error_code,
                    result.error_message,
                )
                return None, []

            updated = await self._commit(record, result)
            return updated, self._after_transition(updated, wire_move, result.events)

    async def run_bot_turns(self, room_id: str, game_id: str) -> None:
        """Keep playing bot turns until a human is on turn or the game ends."""
        consecutive_skips = 0
        try:
            while True:
                snapshot = await self._rooms.get_room_snapshot(room_id)
                record = await self.get_game(room_id)
                if snapshot is None or record is None or record.game_id != game_id:
                    return
                if record.state.game_over or record.current_turn not in snapshot.bot_difficulties():
                    return

                low, high = self._bot_delay
                await asyncio.sleep(self._rng.uniform(low, high))

                updated, messages = await self._bot_step(room_id, game_id)
                if updated is None:
                    return
                for message in messages:
                    await self._broadcast(room_id, message)

                skipped = messages[0].payload.get("move") is None
                consecutive_skips = consecutive_skips + 1 if skipped else 0
                if consecutive_skips >= len(updated.state.players):
                    logger.error("Every seat skipped in room %s, stopping bot turns", room_id)
                    return
        except asyncio.CancelledError:
            logger.info("Bot turns cancelled for room %s", room_id)
            raise
        except Exception:
            logger.exception("Bot loop failed for room %s", room_id)


# Singleton instance
_session_service: GameSessionService | None = None


def get_game_session_service() -> GameSessionService:
    """Get the singleton GameSessionService, wired to the live services."""
    global _session_service
    if _session_service is None:
        from app.config import get_settings
        from app.services.room.service import get_room_service
        from app.services.websocket.manager import get_connection_manager

        settings = get_settings()
        manager = get_connection_manager()
        _session_service = GameSessionService(
            room_service=get_room_service(),
            store=GameStateStore(ttl_seconds=settings.ROOM_TTL_SECONDS),
            engine=GameEngine(),
            bot_player=BotPlayer(),
            broadcaster=manager.send_to_room,
            bot_delay=(settings.BOT_MOVE_DELAY_MIN, settings.BOT_MOVE_DELAY_MAX),
        )
    return _session_service
