"""
Type definitions used across layers
"""

from enum import StrEnum

# Protocol event types the bot sends or reads
MESSAGE_EVENT = "m.room.message"
ENCRYPTED_EVENT = "m.room.encrypted"
GAME_STATE_EVENT = "space.nevarro.chess.game"


class CommandName(StrEnum):
    NEW = "new"
    HELP = "help"


class SessionBackend(StrEnum):
    ROOM_STATE = "room_state"
    DATABASE = "database"


class Outcome(StrEnum):
    """What handling a single message amounted to. Logged by the router."""

    SELF = "own message"
    IGNORED = "not applicable"
    HELP = "help sent"
    NEW_GAME = "new game started"
    POSITION_RENDERED = "position rendered"
    MOVE_APPLIED = "move applied"
    NO_SESSION = "no active game"
    ILLEGAL_MOVE = "illegal move"
    PARSE_ERROR = "unparseable position"
    DELIVERY_FAILED = "delivery failed"
    STORAGE_FAILED = "storage failed"


class Membership(StrEnum):
    INVITE = "invite"
    JOIN = "join"
    LEAVE = "leave"
    BAN = "ban"
    KNOCK = "knock"
