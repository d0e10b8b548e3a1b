"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBSavedGame(Base):
    __tablename__ = "saved_games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    board: Mapped[list[str]] = mapped_column(JSON)
    moves: Mapped[list[str]] = mapped_column(JSON, default=list)
    turn: Mapped[str]
    game_over: Mapped[bool]
    status: Mapped[str]
    winner: Mapped[Optional[str]]
    mode: Mapped[str]
    local_color: Mapped[str]
    difficulty: Mapped[str]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
