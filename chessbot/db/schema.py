"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBGameSession(Base):
    """One row per room. Used by the `database` session backend."""

    __tablename__ = "game_sessions"
    room_id: Mapped[str] = mapped_column(primary_key=True)
    pgn: Mapped[str] = mapped_column(default="")
    last_diagram_event_id: Mapped[Optional[str]]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)


class DBDiagramReply(Base):
    """Board image sent in reply to a FEN message, so that an edit of that message can redact it."""

    __tablename__ = "sent_fen_board_events"
    room_id: Mapped[str] = mapped_column(primary_key=True)
    fen_event_id: Mapped[str] = mapped_column(primary_key=True)
    board_event_id: Mapped[str]
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
