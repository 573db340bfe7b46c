"""
SessionStore keeping each room's game as a state event in the room itself.

The game then lives with the room on the homeserver and survives a lost database.
The diagram reply index has no natural home in room state and stays in SQL.
"""

import logging

from chessbot.core.exceptions import DeliveryError, StorageError, TransportError
from chessbot.core.models import EventID, GameSession, RoomID
from chessbot.core.shared_types import GAME_STATE_EVENT
from chessbot.db.sql_repository import SQLSessionStore
from chessbot.services.retry import RetryPolicy
from chessbot.transport.protocol import Content, Transport

logger = logging.getLogger("SessionStore")

PGN_KEY = "PGN"
DIAGRAM_KEY = "BoardImageEventID"


class RoomStateSessionStore:
    def __init__(
        self, transport: Transport, diagram_index: SQLSessionStore, retry: RetryPolicy
    ) -> None:
        self.transport = transport
        self.diagram_index = diagram_index
        self.retry = retry

    async def get(self, room_id: RoomID) -> GameSession | None:
        try:
            content = await self.transport.get_state_event(room_id, GAME_STATE_EVENT)
        except TransportError as e:
            raise StorageError(f"Failed to read game state of {room_id}: {e}") from e
        if not content:
            return None
        return self._to_model(room_id, content)

    async def put(self, room_id: RoomID, session: GameSession) -> None:
        content = self._to_content(session)
        try:
            await self.retry.run(
                f"save game state in {room_id}",
                lambda: self.transport.send_state_event(room_id, GAME_STATE_EVENT, content),
            )
        except DeliveryError as e:
            raise StorageError(f"Failed to save game state of {room_id}: {e}") from e

    async def get_diagram_for_source(
        self, room_id: RoomID, source_event_id: EventID
    ) -> EventID | None:
        return await self.diagram_index.get_diagram_for_source(room_id, source_event_id)

    async def set_diagram_for_source(
        self, room_id: RoomID, source_event_id: EventID, diagram_event_id: EventID
    ) -> None:
        await self.diagram_index.set_diagram_for_source(
            room_id, source_event_id, diagram_event_id
        )

    def close(self) -> None:
        self.diagram_index.close()

    def _to_model(self, room_id: RoomID, content: Content) -> GameSession:
        pgn = content.get(PGN_KEY)
        if not isinstance(pgn, str):
            logger.warning("Game state in %s has no PGN, ignoring it", room_id)
            pgn = ""
        return GameSession(
            room_id=room_id,
            pgn=pgn,
            last_diagram_event_id=content.get(DIAGRAM_KEY) or None,
        )

    def _to_content(self, session: GameSession) -> Content:
        return {
            PGN_KEY: session.pgn,
            DIAGRAM_KEY: session.last_diagram_event_id or "",
        }
