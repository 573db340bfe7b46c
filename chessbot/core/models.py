"""
Boundary layer data model(s).

The controller, the stores and the classifier exchange these plain objects,
which decouples them from the SQL schema, the room-state event layout and python-chess.
"""

from dataclasses import dataclass, field
from typing import Optional

# Type aliases to make the models easier to read
RoomID = str
EventID = str
UserID = str


@dataclass
class GameSession:
    """The one game tracked for a room. An empty PGN means there is no active game."""

    room_id: RoomID
    pgn: str = ""
    last_diagram_event_id: Optional[EventID] = None

    @property
    def is_active(self) -> bool:
        return bool(self.pgn.strip())


# --- Classification results ---
@dataclass(frozen=True)
class Command:
    name: str
    args: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PositionImport:
    notation: str


@dataclass(frozen=True)
class MoveAttempt:
    text: str


@dataclass(frozen=True)
class NotApplicable:
    pass


Classification = Command | PositionImport | MoveAttempt | NotApplicable
