"""
Board diagrams.

python-chess draws the board as SVG. Chat clients only display raster images reliably,
so the SVG is converted to PNG with ImageMagick's `convert`.
"""

import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, Protocol

import chess
import chess.svg

from chessbot.core.exceptions import RenderError

HIGHLIGHT_COLOR = "#ffff00"
BOARD_SIZE = 400
CONVERT_COMMAND = "convert"


class Renderer(Protocol):
    def __call__(self, board: chess.Board, squares: Iterable[chess.Square] = ()) -> bytes: ...


def board_svg(board: chess.Board, squares: Iterable[chess.Square] = ()) -> str:
    fill = {square: HIGHLIGHT_COLOR for square in squares}
    return chess.svg.board(board, fill=fill, size=BOARD_SIZE)


def svg_to_png(svg: str) -> bytes:
    with tempfile.TemporaryDirectory(prefix="chessboard-") as tmp:
        svg_path = Path(tmp) / "chessboard.svg"
        png_path = Path(tmp) / "chessboard.png"
        svg_path.write_text(svg, encoding="utf-8")
        try:
            subprocess.run(
                [CONVERT_COMMAND, str(svg_path), str(png_path)],
                check=True,
                capture_output=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise RenderError(f"Converting board SVG to PNG failed: {e}") from e
        return png_path.read_bytes()


def render_board(board: chess.Board, squares: Iterable[chess.Square] = ()) -> bytes:
    """PNG bytes of `board`, with `squares` highlighted."""
    return svg_to_png(board_svg(board, squares))
