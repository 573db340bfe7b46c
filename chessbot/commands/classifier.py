"""
Decide what an incoming message body is asking for.

Precedence: an explicit command beats embedded position notation, which beats a move attempt.
"""

import re

from chessbot.core.models import (
    Classification,
    Command,
    MoveAttempt,
    NotApplicable,
    PositionImport,
)
from chessbot.core.shared_types import CommandName

# 8 ranks of pieces/empty counts, side to move, castling rights, en passant target, half-move and full-move counters
FEN_REGEX = re.compile(
    r"([rnbqkpRNBQKP1-8]{1,8}/?){8}\s+[wb]\s+(-|K?Q?k?q?)\s+(-|[a-h][3-6])\s+\d+\s+\d+"
)

BANG_PREFIXES = ("chessbot", "chess")


def command_patterns(localpart: str) -> list[re.Pattern[str]]:
    """
    Valid command strings include:
        chessbot: foo
        @chessbot foo
        @chessbot: foo
        !chessbot foo
        !chess foo
    A bang prefix on its own means "help".
    """
    name = re.escape(localpart)
    patterns = [
        re.compile(rf"^{name}:(.*)$"),
        re.compile(rf"^@{name}:?(.*)$"),
    ]
    for prefix in BANG_PREFIXES:
        patterns.append(re.compile(rf"^!{prefix}$"))
        patterns.append(re.compile(rf"^!{prefix}:? (.*)$"))
    return patterns


def command_parts(body: str, localpart: str) -> list[str] | None:
    """Split a command body into [command, *args], or None if it is not addressed to the bot."""
    for pattern in command_patterns(localpart):
        match = pattern.match(body)
        if match is None:
            continue
        remainder = match.group(1).strip() if pattern.groups else ""
        if not remainder:
            return [CommandName.HELP.value]
        return remainder.split(" ")
    return None


def find_fen(body: str) -> str | None:
    """First position-notation substring in `body`, wherever it appears."""
    match = FEN_REGEX.search(body)
    return match.group(0) if match else None


def classify(message_body: str, bot_localpart: str, has_session: bool = True) -> Classification:
    body = message_body.strip()

    parts = command_parts(body, bot_localpart)
    if parts is not None:
        return Command(name=parts[0].lower(), args=parts[1:])

    fen = find_fen(body)
    if fen is not None:
        return PositionImport(notation=fen)

    if has_session and body:
        return MoveAttempt(text=body)

    return NotApplicable()
