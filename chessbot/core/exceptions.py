"""
Error types shared across layers.

Only transport/encryption errors are ever retried. Everything else is handled where it is raised:
the per-message task always completes, so none of these reach the event loop.
"""


class ChessBotError(Exception):
    """Base class for all chessbot errors."""


# --- Chess input ---
class IllegalMoveError(ChessBotError):
    """Text is not a legal move for the current position (or not a move at all)."""


class PositionImportParseError(ChessBotError):
    """Text matched the position-notation pattern but does not describe a position."""


class GameLoadError(ChessBotError):
    """A stored PGN could not be read back into a game."""


# --- Delivery ---
class TransportError(ChessBotError):
    """A network action against the homeserver failed. Retryable."""


class EncryptionError(ChessBotError):
    """Payload could not be encrypted for the room. NOT recoverable by re-sharing."""


class EncryptionSessionError(EncryptionError):
    """Outbound group session is unusable. Recoverable once by re-sharing it with the room."""


class SessionExpiredError(EncryptionSessionError):
    pass


class SessionNotSharedError(EncryptionSessionError):
    pass


class NoGroupSessionError(EncryptionSessionError):
    pass


class DeliveryError(ChessBotError):
    """A send gave up: retries exhausted or encryption failed twice."""


# --- Persistence ---
class StorageError(ChessBotError):
    """Reading or writing the session store failed."""


class RenderError(ChessBotError):
    """The board diagram could not be produced."""
