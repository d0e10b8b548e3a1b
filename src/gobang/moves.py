"""A single stone placement, plus the notation used to store/send it."""

from dataclasses import dataclass
from typing import Self

from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color

# Gobang board is always 15x15.
BOARD_SIZE = 15

Coord = tuple[int, int]  # (row, col), zero-based
NO_MOVE: Coord = (-1, -1)


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


@dataclass(frozen=True)
class Move:
    row: int
    col: int
    color: Color

    @property
    def coord(self) -> Coord:
        return (self.row, self.col)

    @classmethod
    def from_notation(cls, notation: str, color: Color) -> Self:
        """
        Moves are stored/sent as "row,col", ex. "7,7" is the center of the board.
        The color is not part of the notation: it follows from the turn order (black first).
        """
        parts = notation.split(",")
        if len(parts) != 2:
            raise IllegalMoveError(f"Cannot interpret {notation!r} as 'row,col'.")
        try:
            row, col = (int(part.strip()) for part in parts)
        except ValueError as exc:
            raise IllegalMoveError(
                f"Cannot interpret {notation!r} as 'row,col'."
            ) from exc
        return cls(row, col, color)

    def to_notation(self) -> str:
        return f"{self.row},{self.col}"


def color_for_ply(ply: int) -> Color:
    """Black plays the even plies (0, 2, 4, ...), white the odd ones."""
    return Color.BLACK if ply % 2 == 0 else Color.WHITE


def moves_from_notation(notations: list[str]) -> list[Move]:
    """Rebuild a move history: the color of each move is implied by its index."""
    return [
        Move.from_notation(notation, color_for_ply(ply))
        for ply, notation in enumerate(notations)
    ]
