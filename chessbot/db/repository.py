"""Protocol for the session store (SQL tables, room state events, ...)"""

from typing import Protocol

from chessbot.core.models import EventID, GameSession, RoomID


class SessionStore(Protocol):
    """
    Persistence of the per-room game and of the diagram reply index.

    Reads must reflect the latest committed write made by this process.
    Implementations raise StorageError when the backing medium fails.
    """

    async def get(self, room_id: RoomID) -> GameSession | None:
        """Current game session of the room, if one was ever stored."""
        ...

    async def put(self, room_id: RoomID, session: GameSession) -> None:
        """Overwrite the room's game session (last writer wins)."""
        ...

    async def get_diagram_for_source(
        self, room_id: RoomID, source_event_id: EventID
    ) -> EventID | None:
        """Diagram sent in reply to the given position-import message, if any."""
        ...

    async def set_diagram_for_source(
        self, room_id: RoomID, source_event_id: EventID, diagram_event_id: EventID
    ) -> None:
        """Insert or update the diagram sent in reply to a position-import message."""
        ...

    def close(self) -> None:
        """Release the backing medium. Called once, at shutdown."""
        ...
