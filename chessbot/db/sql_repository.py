"""Implementation of SessionStore using SQLAlchemy"""

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chessbot.core.exceptions import StorageError
from chessbot.core.models import EventID, GameSession, RoomID
from chessbot.db.database import make_session_factory
from chessbot.db.schema import DBDiagramReply, DBGameSession

logger = logging.getLogger("SessionStore")


class SQLSessionStore:
    """Game sessions and the diagram reply index, both stored as SQL rows."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory: sessionmaker[Session] = make_session_factory(engine)

    # --- game sessions ---
    async def get(self, room_id: RoomID) -> GameSession | None:
        """Get the room's game session, if a record exists."""
        try:
            with self.session_factory() as db:
                session_db = db.get(DBGameSession, room_id)
                if session_db is None:
                    return None
                return self._to_model(session_db)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read game session of {room_id}: {e}") from e

    async def put(self, room_id: RoomID, session: GameSession) -> None:
        """Create or overwrite the room's game session."""
        try:
            with self.session_factory() as db:
                db.merge(
                    DBGameSession(
                        room_id=room_id,
                        pgn=session.pgn,
                        last_diagram_event_id=session.last_diagram_event_id,
                    )
                )
                db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save game session of {room_id}: {e}") from e
        logger.debug("Saved game session of %s", room_id)

    # --- diagram reply index ---
    async def get_diagram_for_source(
        self, room_id: RoomID, source_event_id: EventID
    ) -> EventID | None:
        query = select(DBDiagramReply.board_event_id).where(
            DBDiagramReply.room_id == room_id,
            DBDiagramReply.fen_event_id == source_event_id,
        )
        try:
            with self.session_factory() as db:
                return db.scalar(query)
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to look up diagram for {source_event_id} in {room_id}: {e}"
            ) from e

    async def set_diagram_for_source(
        self, room_id: RoomID, source_event_id: EventID, diagram_event_id: EventID
    ) -> None:
        """Upsert on (room_id, source_event_id): the latest diagram wins."""
        try:
            with self.session_factory() as db:
                db.merge(
                    DBDiagramReply(
                        room_id=room_id,
                        fen_event_id=source_event_id,
                        board_event_id=diagram_event_id,
                    )
                )
                db.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to record diagram for {source_event_id} in {room_id}: {e}"
            ) from e

    def close(self) -> None:
        self.engine.dispose()

    def _to_model(self, session_db: DBGameSession) -> GameSession:
        """Convert SQLAlchemy model to data transfer model."""
        return GameSession(
            room_id=session_db.room_id,
            pgn=session_db.pgn,
            last_diagram_event_id=session_db.last_diagram_event_id,
        )
