"""
Heuristic scoring of lines on the board.

Key idea: a run of stones is only dangerous if it has room to grow. While scanning, empty cells are skipped
(they are space the run can still extend into), an opposing stone or the board edge ends the scan.

Both the medium AI (scoring candidate cells) and the hard AI (scoring search leaves) use PATTERN_SCORES,
so the two strategies agree on how valuable a given run is.
"""

from functools import cache

from src.core.shared_types import Cell, Color
from src.gobang.board import AXES, Board, Vector
from src.gobang.moves import BOARD_SIZE, Coord, in_bounds

LineKey = tuple[Vector, Coord]  # (axis, first cell of the line)

# How far the scan looks in each direction
RUN_WINDOW = 4

PATTERN_SCORES: dict[int, int] = {
    5: 100_000,
    4: 10_000,
    3: 1_000,
    2: 100,
    1: 10,
}
OVERLINE_SCORE = 1_000_000  # six or more: already won

CENTER = BOARD_SIZE // 2
CENTER_WEIGHT = 5
MAX_CENTER_DISTANCE = 14
OFFENSE_WEIGHT = 2

WIN_SCORE = 1_000_000


def run_length(
    board: Board, row: int, col: int, d_row: int, d_col: int, color: Color
) -> int:
    """
    Count the stones of `color` on the line through (row, col) along (d_row, d_col), in both directions.

    (row, col) itself counts as one, whether or not it is occupied yet: this is used to score a candidate cell.
    """
    own = Cell.of(color)
    count = 1
    for sign in (1, -1):
        for step in range(1, RUN_WINDOW + 1):
            r = row + sign * step * d_row
            c = col + sign * step * d_col
            if not in_bounds(r, c):
                break
            cell = board.grid[r][c]
            if cell == own:
                count += 1
            elif cell != Cell.EMPTY:
                break
    return count


def pattern_score(length: int) -> int:
    if length > 5:
        return OVERLINE_SCORE
    return PATTERN_SCORES.get(length, 0)


def center_bonus(row: int, col: int) -> int:
    distance = abs(row - CENTER) + abs(col - CENTER)
    return (MAX_CENTER_DISTANCE - distance) * CENTER_WEIGHT


def position_score(board: Board, row: int, col: int, mover: Color, opponent: Color) -> int:
    """
    How good is it for `mover` to play on (row, col)?

    Own runs count double (offense), the opponent's runs through the same cell count once (defense).
    Cells close to the center get a small bonus.
    """
    score = 0
    for d_row, d_col in AXES:
        score += pattern_score(run_length(board, row, col, d_row, d_col, mover)) * OFFENSE_WEIGHT
        score += pattern_score(run_length(board, row, col, d_row, d_col, opponent))
    return score + center_bonus(row, col)


def stone_score(board: Board, row: int, col: int, color: Color) -> int:
    """Pattern value of a stone that is already on the board (all four axes)"""
    return sum(
        pattern_score(run_length(board, row, col, d_row, d_col, color))
        for d_row, d_col in AXES
    )


def evaluate_board(board: Board, ai_color: Color) -> int:
    """
    Static evaluation from the AI's point of view.

    A finished five decides it outright. Otherwise: sum of the pattern values of the AI's stones minus those
    of the opponent's stones.
    """
    stones = board.stones()
    for (row, col), color in stones.items():
        if board.check_win(row, col):
            return WIN_SCORE if color == ai_color else -WIN_SCORE

    score = 0
    for (row, col), color in stones.items():
        if color == ai_color:
            score += stone_score(board, row, col, color)
        else:
            score -= stone_score(board, row, col, color)
    return score


# --- PER LINE SCORING (search) ---
# A stone's value along one axis only depends on the cells of that line, so the sum of all stone values can be kept
# per line. Placing or removing a stone only changes the four lines through it.


@cache
def line_key(row: int, col: int, d_row: int, d_col: int) -> LineKey:
    while in_bounds(row - d_row, col - d_col):
        row, col = row - d_row, col - d_col
    return ((d_row, d_col), (row, col))


@cache
def line_cells(key: LineKey) -> tuple[Coord, ...]:
    (d_row, d_col), (row, col) = key
    cells = []
    while in_bounds(row, col):
        cells.append((row, col))
        row, col = row + d_row, col + d_col
    return tuple(cells)


@cache
def all_lines() -> tuple[LineKey, ...]:
    return tuple(
        sorted(
            {
                line_key(row, col, d_row, d_col)
                for row in range(BOARD_SIZE)
                for col in range(BOARD_SIZE)
                for d_row, d_col in AXES
            }
        )
    )


def line_score(board: Board, key: LineKey, ai_color: Color) -> int:
    """Pattern values of the stones on one line (along that line only). AI stones count positive."""
    cells = [board.grid[row][col] for row, col in line_cells(key)]
    own = Cell.of(ai_color)
    score = 0
    for idx, cell in enumerate(cells):
        if cell == Cell.EMPTY:
            continue
        value = pattern_score(_run_in_line(cells, idx))
        score += value if cell == own else -value
    return score


def _run_in_line(cells: list[Cell], idx: int) -> int:
    """Same count as run_length, on a line already taken out of the board"""
    stone = cells[idx]
    count = 1
    for sign in (1, -1):
        for step in range(1, RUN_WINDOW + 1):
            pos = idx + sign * step
            if not 0 <= pos < len(cells):
                break
            if cells[pos] == stone:
                count += 1
            elif cells[pos] != Cell.EMPTY:
                break
    return count


class LineScores:
    """
    Running value of evaluate_board (without the five check) for a board that changes one stone at a time.

    Call refresh() right after a stone was placed or removed, and revert() with its result to undo that.
    """

    def __init__(self, board: Board, ai_color: Color) -> None:
        self.board = board
        self.ai_color = ai_color
        self.scores = {key: line_score(board, key, ai_color) for key in all_lines()}
        self.total = sum(self.scores.values())

    def refresh(self, row: int, col: int) -> list[tuple[LineKey, int]]:
        """Rescore the four lines through (row, col). Returns the previous line values."""
        previous = []
        for d_row, d_col in AXES:
            key = line_key(row, col, d_row, d_col)
            old = self.scores[key]
            new = line_score(self.board, key, self.ai_color)
            previous.append((key, old))
            self.scores[key] = new
            self.total += new - old
        return previous

    def revert(self, previous: list[tuple[LineKey, int]]) -> None:
        for key, old in previous:
            self.total += old - self.scores[key]
            self.scores[key] = old
