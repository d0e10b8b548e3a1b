"""The Game board implements all rules that effect the grid: placing stones and detecting five in a row / a full board."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Self

from src.core.exceptions import GameStateError, IllegalMoveError
from src.core.shared_types import Cell, Color
from src.gobang.moves import BOARD_SIZE, Coord, Move, in_bounds

Vector = tuple[int, int]

# Horizontal, vertical and both diagonals. Every axis is walked in both directions.
AXES: tuple[Vector, ...] = ((0, 1), (1, 0), (1, 1), (1, -1))
WIN_LENGTH = 5

CHAR_TO_CELL: dict[str, Cell] = {
    ".": Cell.EMPTY,
    "b": Cell.BLACK,
    "w": Cell.WHITE,
}
CELL_TO_CHAR: dict[Cell, str] = {value: key for key, value in CHAR_TO_CELL.items()}


@dataclass
class Board:
    grid: list[list[Cell]]
    # occupied cells, kept in sync with the grid so evaluation does not have to scan all 225 cells
    _stones: dict[Coord, Color] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.grid) != BOARD_SIZE or any(
            len(row) != BOARD_SIZE for row in self.grid
        ):
            raise GameStateError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}.")
        self._stones = {
            (row_idx, col_idx): cell.color
            for row_idx, row in enumerate(self.grid)
            for col_idx, cell in enumerate(row)
            if cell.color is not None
        }

    @classmethod
    def empty(cls) -> Self:
        return cls([[Cell.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)])

    @classmethod
    def from_rows(cls, rows: list[str]) -> Self:
        """Construct a board from one string per row.

        ex. a row with a black stone in the center:
        .......b.......
        * '.' is an empty cell
        * 'b' is a black stone
        * 'w' is a white stone
        """
        if len(rows) != BOARD_SIZE:
            raise GameStateError(f"Expected {BOARD_SIZE} rows, got {len(rows)}.")
        grid: list[list[Cell]] = []
        for row in rows:
            if len(row) != BOARD_SIZE or any(char not in CHAR_TO_CELL for char in row):
                raise GameStateError(f"Cannot interpret board row {row!r}.")
            grid.append([CHAR_TO_CELL[char] for char in row])
        return cls(grid)

    def to_rows(self) -> list[str]:
        return ["".join(CELL_TO_CHAR[cell] for cell in row) for row in self.grid]

    def copy(self) -> Self:
        return type(self)([list(row) for row in self.grid])

    def cell(self, row: int, col: int) -> Cell:
        return self.grid[row][col]

    def is_empty(self, row: int, col: int) -> bool:
        return self.grid[row][col] == Cell.EMPTY

    def stones(self) -> dict[Coord, Color]:
        return dict(self._stones)

    def stone_count(self) -> int:
        return len(self._stones)

    def empty_cells(self) -> list[Coord]:
        """All empty cells, in row-major order"""
        return [
            (row, col)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
            if self.grid[row][col] == Cell.EMPTY
        ]

    def place(self, move: Move) -> None:
        """Put a stone on the board. Nothing changes if the move is illegal."""
        if not in_bounds(move.row, move.col):
            raise IllegalMoveError(
                f"Position ({move.row}, {move.col}) is off the board."
            )
        if not self.is_empty(move.row, move.col):
            raise IllegalMoveError(
                f"Position ({move.row}, {move.col}) is already occupied."
            )
        self.grid[move.row][move.col] = Cell.of(move.color)
        self._stones[move.coord] = move.color

    def remove(self, row: int, col: int) -> None:
        """Take a stone back off the board (undo / search)"""
        self.grid[row][col] = Cell.EMPTY
        self._stones.pop((row, col), None)

    def check_win(self, row: int, col: int) -> bool:
        """
        Does the stone on (row, col) complete five (or more) in a row?

        Only walks outward from the given cell, so call it with the last placed stone.
        """
        cell = self.grid[row][col]
        if cell == Cell.EMPTY:
            return False
        return any(
            self._run_through(row, col, d_row, d_col, cell) >= WIN_LENGTH
            for d_row, d_col in AXES
        )

    def check_draw(self) -> bool:
        """Board is full. Only a draw if the last move did not win."""
        return len(self._stones) == BOARD_SIZE * BOARD_SIZE

    def _run_through(self, row: int, col: int, d_row: int, d_col: int, cell: Cell) -> int:
        """Length of the solid run of `cell` through (row, col) along one axis"""
        count = 1
        for sign in (1, -1):
            r, c = row + sign * d_row, col + sign * d_col
            while in_bounds(r, c) and self.grid[r][c] == cell:
                count += 1
                r, c = r + sign * d_row, c + sign * d_col
        return count


def replay(moves: list[Move]) -> Board:
    """Build the board by playing the move history on an empty board."""
    board = Board.empty()
    for move in moves:
        board.place(move)
    return board


@contextmanager
def simulated_move(board: Board, row: int, col: int, color: Color) -> Iterator[Board]:
    """Place a stone for the duration of the block. The stone is always removed again, also on early return/break."""
    board.place(Move(row, col, color))
    try:
        yield board
    finally:
        board.remove(row, col)
