"""
Computer opponent.

Key idea: Use strategy pattern, one move-selection strategy per difficulty:

* easy: a random empty cell
* medium: win if you can, block if you must, otherwise the cell with the best heuristic score
* hard: fixed depth minimax with alpha-beta pruning around the stones already on the board

All strategies work on the board they are given and leave it exactly as they found it.
"""

import logging
import random
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from src.core.shared_types import AIDifficulty, Color
from src.gobang.board import Board, simulated_move
from src.gobang.moves import BOARD_SIZE, NO_MOVE, Coord
from src.gobang.patterns import CENTER, WIN_SCORE, LineScores, position_score

logger = logging.getLogger(__name__)

# NOTE: tuning constants kept from the desktop version. They work, nobody claims they are optimal.
MEDIUM_JITTER = 10  # random bonus in [0, 10) added to every medium score
SEARCH_DEPTH = 3  # plies
SEARCH_RADIUS = 2  # only look at empty cells this close (Chebyshev distance) to a stone

# bounds for the search window, strictly outside any score evaluate_board can produce
INFINITY = 10**12

MoveStrategy = Callable[[Board, Color, random.Random], Coord]


# --- EASY ---
def random_move(board: Board, ai_color: Color, rng: random.Random) -> Coord:
    """Uniformly random empty cell. NO_MOVE if the board is full."""
    empty_cells = board.empty_cells()
    if not empty_cells:
        return NO_MOVE
    return rng.choice(empty_cells)


# --- MEDIUM ---
def find_winning_move(board: Board, color: Color) -> Coord:
    """First cell (row-major) where `color` would complete five. NO_MOVE if there is none."""
    for row, col in board.empty_cells():
        with simulated_move(board, row, col, color):
            if board.check_win(row, col):
                return (row, col)
    return NO_MOVE


def heuristic_move(
    board: Board, ai_color: Color, rng: random.Random, jitter: int = MEDIUM_JITTER
) -> Coord:
    """
    Priority chain:

    1. Take an immediate win
    2. Block the opponent's immediate win
    3. Highest position_score (+ a bit of random jitter so the AI is not fully predictable).
       Ties go to the cell found first in row-major order.
    """
    empty_cells = board.empty_cells()
    if not empty_cells:
        return random_move(board, ai_color, rng)

    opponent = ai_color.opponent()

    winning_move = find_winning_move(board, ai_color)
    if winning_move != NO_MOVE:
        return winning_move

    blocking_move = find_winning_move(board, opponent)
    if blocking_move != NO_MOVE:
        return blocking_move

    best_score: Optional[int] = None
    best_move = NO_MOVE
    for row, col in empty_cells:
        score = position_score(board, row, col, ai_color, opponent)
        if jitter > 0:
            score += rng.randrange(jitter)
        if best_score is None or score > best_score:
            best_score = score
            best_move = (row, col)
    return best_move


# --- HARD ---
def candidate_moves(board: Board, radius: int = SEARCH_RADIUS) -> list[Coord]:
    """
    Empty cells within `radius` of any stone, in row-major order.
    On an empty board the only sensible opening is the center.
    """
    stones = board.stones()
    if not stones:
        return [(CENTER, CENTER)]

    candidates: set[Coord] = set()
    for stone_row, stone_col in stones:
        for row in range(max(0, stone_row - radius), min(BOARD_SIZE, stone_row + radius + 1)):
            for col in range(max(0, stone_col - radius), min(BOARD_SIZE, stone_col + radius + 1)):
                if board.is_empty(row, col):
                    candidates.add((row, col))
    return sorted(candidates)


@dataclass
class SearchResult:
    score: int
    move: Coord
    nodes: int


@dataclass
class Minimax:
    """
    Depth limited minimax with alpha-beta pruning, scored from the AI's point of view.

    The AI maximizes on its own plies, the opponent minimizes on theirs. Every candidate is tried on the shared
    board through simulated_move, so the board is back in its original state whenever a call returns.
    Leaves are scored from LineScores, which follows every simulated stone (same value as evaluate_board).
    A five is scored when it is placed, so a leaf never holds one.
    """

    ai_color: Color
    depth: int = SEARCH_DEPTH
    prune: bool = True
    order_moves: bool = True
    nodes: int = 0

    def run(self, board: Board) -> SearchResult:
        self.nodes = 0
        lines = LineScores(board, self.ai_color)
        score, move = self._search(board, lines, self.depth, True, -INFINITY, INFINITY)
        return SearchResult(score=score, move=move, nodes=self.nodes)

    def _search(
        self,
        board: Board,
        lines: LineScores,
        depth: int,
        maximizing: bool,
        alpha: int,
        beta: int,
    ) -> tuple[int, Coord]:
        self.nodes += 1
        if depth == 0 or board.check_draw():
            return lines.total, NO_MOVE

        mover = self.ai_color if maximizing else self.ai_color.opponent()
        best_score = -INFINITY if maximizing else INFINITY
        best_move = NO_MOVE

        for row, col in self._candidates(board, mover, depth):
            with simulated_move(board, row, col, mover):
                if board.check_win(row, col):
                    score = WIN_SCORE if maximizing else -WIN_SCORE
                else:
                    previous = lines.refresh(row, col)
                    score, _ = self._search(
                        board, lines, depth - 1, not maximizing, alpha, beta
                    )
                    lines.revert(previous)

            if maximizing:
                if score > best_score:
                    best_score, best_move = score, (row, col)
                alpha = max(alpha, score)
            else:
                if score < best_score:
                    best_score, best_move = score, (row, col)
                beta = min(beta, score)

            if self.prune and beta <= alpha:
                break

        return best_score, best_move

    def _candidates(self, board: Board, mover: Color, depth: int) -> list[Coord]:
        """
        Try the most promising cells first so the cut-offs come early.
        (Only above the last ply: right above the leaves the sorting costs more than it saves.)
        NOTE sorted() is stable, so equal scores keep their row-major order and the search stays deterministic.
        """
        candidates = candidate_moves(board)
        if not self.order_moves or depth <= 1:
            return candidates
        opponent = mover.opponent()
        return sorted(
            candidates,
            key=lambda cell: position_score(board, cell[0], cell[1], mover, opponent),
            reverse=True,
        )


def minimax_move(board: Board, ai_color: Color, rng: random.Random) -> Coord:
    """Best move according to a SEARCH_DEPTH minimax search. Full board -> easy fallback (NO_MOVE)."""
    if board.check_draw():
        return random_move(board, ai_color, rng)
    result = Minimax(ai_color).run(board)
    logger.debug(
        "Minimax picked %s with score %d after %d nodes",
        result.move,
        result.score,
        result.nodes,
    )
    if result.move == NO_MOVE:
        return random_move(board, ai_color, rng)
    return result.move


STRATEGIES: dict[AIDifficulty, MoveStrategy] = {
    AIDifficulty.EASY: random_move,
    AIDifficulty.MEDIUM: heuristic_move,
    AIDifficulty.HARD: minimax_move,
}

# Same as medium, minus the random jitter. Handy when you need reproducible play.
deterministic_heuristic_move: MoveStrategy = partial(heuristic_move, jitter=0)


def choose_move(
    board: Board,
    ai_color: Color,
    difficulty: AIDifficulty,
    rng: Optional[random.Random] = None,
) -> Coord:
    """Entrypoint for the coordinator: pick a cell for `ai_color`. Unknown difficulty -> easy."""
    strategy = STRATEGIES.get(difficulty)
    if strategy is None:
        logger.warning("Unknown AI difficulty %r, falling back to easy", difficulty)
        strategy = random_move
    return strategy(board, ai_color, rng or random.Random())
