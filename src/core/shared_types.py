"""
Type definitions used across layers
"""

from enum import StrEnum
from typing import Self


class Color(StrEnum):
    BLACK = "black"
    WHITE = "white"

    def opponent(self) -> "Color":
        return Color.WHITE if self == Color.BLACK else Color.BLACK


# --- Cell is what a single intersection of the board holds. Color is only used for players/stones.
class Cell(StrEnum):
    EMPTY = "empty"
    BLACK = "black"
    WHITE = "white"

    @classmethod
    def of(cls, color: Color) -> Self:
        return cls(color.value)

    @property
    def color(self) -> Color | None:
        return None if self == Cell.EMPTY else Color(self.value)


class GameMode(StrEnum):
    LOCAL_TWO_PLAYER = "local two player"
    LOCAL_VS_AI = "local vs ai"
    NETWORK = "network multiplayer"


class AIDifficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def level(self) -> int:
        """0 for easy, 1 for medium, 2 for hard (used to scale the thinking time)"""
        return list(AIDifficulty).index(self)


class Status(StrEnum):
    AWAITING_MOVE = "awaiting move"
    WIN = "win"
    DRAW = "draw"
    ABORTED = "aborted"


class Actor(StrEnum):
    """Who proposed a move"""

    LOCAL = "local"
    AI = "ai"
    PEER = "peer"


class PeerRole(StrEnum):
    HOST = "host"
    GUEST = "guest"
