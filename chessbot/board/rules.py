"""
Adapter between the bot and python-chess.

The bot never checks move legality itself: everything that touches chess rules,
PGN or FEN goes through these functions, which translate python-chess failures into our own errors.
"""

import io
from datetime import datetime, timezone

import chess
import chess.pgn

from chessbot.core.exceptions import GameLoadError, IllegalMoveError, PositionImportParseError


def new_game(room_id: str) -> chess.pgn.Game:
    """Fresh game from the standard starting position, tagged with the room it belongs to."""
    game = chess.pgn.Game()
    game.headers["Event"] = f"{room_id} @ {datetime.now(timezone.utc).isoformat()}"
    return game


def dump_game(game: chess.pgn.Game) -> str:
    exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
    return game.accept(exporter)


def load_game(pgn: str) -> chess.pgn.Game:
    """Rebuild a game from stored PGN."""
    game = chess.pgn.read_game(io.StringIO(pgn))
    if game is None:
        raise GameLoadError("No game found in stored PGN.")
    if game.errors:
        raise GameLoadError(f"Stored PGN could not be replayed: {game.errors[0]}")
    return game


def current_board(game: chess.pgn.Game) -> chess.Board:
    return game.end().board()


def board_from_fen(fen: str) -> chess.Board:
    """Single position from FEN notation (side to move, castling, en passant and counters included)."""
    try:
        return chess.Board(fen.strip())
    except ValueError as e:
        raise PositionImportParseError(f"Unable to parse FEN ({fen}): {e}") from e


def parse_move(board: chess.Board, text: str) -> chess.Move:
    """
    Interpret `text` as a move in the given position.

    Standard algebraic notation first (e4, Nf3, O-O, exd8=Q+), long algebraic (e2e4) as a fallback.
    """
    text = text.strip()
    try:
        move = board.parse_san(text)
    except ValueError:
        try:
            move = board.parse_uci(text)
        except ValueError as e:
            raise IllegalMoveError(f"{text!r} is not a legal move in {board.fen()}") from e
    # "--" and "0000" parse as the null move, which is not a move a player can make
    if not move:
        raise IllegalMoveError(f"{text!r} is not a legal move in {board.fen()}")
    return move


def apply_move(game: chess.pgn.Game, text: str) -> chess.Move:
    """Append the move in `text` to the mainline. The game is left untouched when it raises."""
    end = game.end()
    move = parse_move(end.board(), text)
    end.add_main_variation(move)
    return move


def move_squares(move: chess.Move) -> tuple[chess.Square, chess.Square]:
    """Origin and destination of a move, the squares highlighted on the diagram."""
    return move.from_square, move.to_square
