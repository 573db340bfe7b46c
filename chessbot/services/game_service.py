"""Orchestration of one room message: classification, chess rules, diagrams, persistence and replies."""

import asyncio
import logging
from typing import Iterable

import chess

from chessbot.board import rules
from chessbot.board.render import Renderer
from chessbot.commands.classifier import classify
from chessbot.commands.help import help_content
from chessbot.core.exceptions import (
    DeliveryError,
    GameLoadError,
    IllegalMoveError,
    PositionImportParseError,
    RenderError,
    StorageError,
)
from chessbot.core.models import (
    Command,
    EventID,
    GameSession,
    MoveAttempt,
    PositionImport,
    RoomID,
)
from chessbot.core.shared_types import CommandName, Outcome
from chessbot.db.repository import SessionStore
from chessbot.events.models import MessageEvent
from chessbot.services.delivery import DeliveryPipeline
from chessbot.services.room_locks import RoomLocks

logger = logging.getLogger("GameService")


class GameSessionController:
    """Per-room state machine: no game / active game."""

    def __init__(
        self,
        store: SessionStore,
        delivery: DeliveryPipeline,
        renderer: Renderer,
        bot_localpart: str,
        locks: RoomLocks | None = None,
    ) -> None:
        self.store = store
        self.delivery = delivery
        self.renderer = renderer
        self.bot_localpart = bot_localpart
        self.locks = locks or RoomLocks()

    async def handle_message(self, event: MessageEvent) -> Outcome:
        """Apply one (non-self) message to its room. Never raises for expected failures."""
        async with self.locks.hold(event.room_id):
            try:
                return await self._handle(event)
            except RenderError as e:
                logger.error("Failed to render board for %s: %s", event.room_id, e)
                return Outcome.DELIVERY_FAILED
            except DeliveryError as e:
                logger.error("Failed to send reply to %s in %s: %s", event.event_id, event.room_id, e)
                return Outcome.DELIVERY_FAILED
            except StorageError as e:
                logger.error("Dropping %s in %s: %s", event.event_id, event.room_id, e)
                return Outcome.STORAGE_FAILED

    # -- Message kinds --
    async def _handle(self, event: MessageEvent) -> Outcome:
        if event.replaces:
            await self._redact_diagram_for_source(event.room_id, event.replaces)

        # Chat in a room without a game is not a move attempt
        session = await self.store.get(event.room_id)
        has_session = session is not None and session.is_active
        classification = classify(event.body, self.bot_localpart, has_session=has_session)

        if isinstance(classification, Command):
            return await self.handle_command(event.room_id, classification)
        if isinstance(classification, PositionImport):
            return await self.import_position(event, classification.notation)
        if isinstance(classification, MoveAttempt):
            return await self.make_move(event.room_id, classification.text, session)
        return Outcome.IGNORED

    async def handle_command(self, room_id: RoomID, command: Command) -> Outcome:
        if command.name == CommandName.NEW:
            return await self.new_game(room_id)

        # "help" and anything unknown
        await self.delivery.send(room_id, help_content())
        return Outcome.HELP

    async def new_game(self, room_id: RoomID) -> Outcome:
        """Replace whatever game the room had with a fresh one."""

        # Create the game and draw the starting position
        game = rules.new_game(room_id)
        png = await self._render(rules.current_board(game))

        # Send the diagram, then store the game pointing at it
        diagram_event_id = await self.delivery.send_image(room_id, png)
        await self.store.put(
            room_id,
            GameSession(
                room_id=room_id,
                pgn=rules.dump_game(game),
                last_diagram_event_id=diagram_event_id,
            ),
        )
        logger.info("New game in %s", room_id)
        return Outcome.NEW_GAME

    async def import_position(self, event: MessageEvent, notation: str) -> Outcome:
        """Draw a FEN position in a thread under the message that contained it. The room's game is not touched."""
        try:
            board = rules.board_from_fen(notation)
        except PositionImportParseError as e:
            logger.error("%s", e)
            return Outcome.PARSE_ERROR

        png = await self._render(board)
        diagram_event_id = await self.delivery.send_image(
            event.room_id, png, thread_root=event.thread_root
        )

        # Remember the diagram so an edit of the message can redact it
        await self.store.set_diagram_for_source(
            event.room_id, event.thread_root, diagram_event_id
        )
        return Outcome.POSITION_RENDERED

    async def make_move(self, room_id: RoomID, text: str, session: GameSession | None) -> Outcome:
        """Apply `text` to the room's game. `session` is the room's game as read under its lock."""
        if session is None or not session.is_active:
            return Outcome.NO_SESSION

        # Rebuild the game from its PGN
        try:
            game = rules.load_game(session.pgn)
        except GameLoadError as e:
            logger.warning("Game in %s cannot be resumed: %s", room_id, e)
            return Outcome.NO_SESSION

        # Attempt the move
        try:
            move = rules.apply_move(game, text)
        except IllegalMoveError as e:
            logger.debug("%s", e)
            return Outcome.ILLEGAL_MOVE

        # Only the latest diagram of a game stays visible
        await self.delivery.redact(room_id, session.last_diagram_event_id)
        png = await self._render(rules.current_board(game), rules.move_squares(move))
        diagram_event_id = await self.delivery.send_image(room_id, png)

        # Capture updated state and store it
        await self.store.put(
            room_id,
            GameSession(
                room_id=room_id,
                pgn=rules.dump_game(game),
                last_diagram_event_id=diagram_event_id,
            ),
        )
        logger.info("Move %s played in %s", move.uci(), room_id)
        return Outcome.MOVE_APPLIED

    # -- Internal helpers --
    async def _redact_diagram_for_source(self, room_id: RoomID, source_event_id: EventID) -> None:
        """An edited message's old diagram goes away before the edit is handled."""
        try:
            diagram_event_id = await self.store.get_diagram_for_source(room_id, source_event_id)
        except StorageError as e:
            logger.warning("Could not look up diagram for edited %s: %s", source_event_id, e)
            return
        await self.delivery.redact(room_id, diagram_event_id)

    async def _render(self, board: chess.Board, squares: Iterable[chess.Square] = ()) -> bytes:
        # conversion shells out, keep it off the event loop
        return await asyncio.to_thread(self.renderer, board, tuple(squares))
