"""Unit tests for /src/gobang/ai.py"""

import random
import time

import pytest

from src.core.shared_types import AIDifficulty, Color
from src.gobang.ai import (
    STRATEGIES,
    Minimax,
    candidate_moves,
    choose_move,
    deterministic_heuristic_move,
    find_winning_move,
    heuristic_move,
    minimax_move,
    random_move,
)
from src.gobang.board import Board, simulated_move
from src.gobang.moves import BOARD_SIZE, NO_MOVE, Move
from src.gobang.patterns import evaluate_board


def place(board: Board, color: Color, *cells: tuple[int, int]) -> Board:
    for row, col in cells:
        board.place(Move(row, col, color))
    return board


def full_board() -> Board:
    rows = [
        "".join("b" if ((col + 2 * row) // 2) % 2 == 0 else "w" for col in range(BOARD_SIZE))
        for row in range(BOARD_SIZE)
    ]
    return Board.from_rows(rows)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def closed_white_four() -> Board:
    """White threatens five on (7, 7). The other end is already blocked by black."""
    board = place(Board.empty(), Color.WHITE, (7, 3), (7, 4), (7, 5), (7, 6))
    place(board, Color.BLACK, (7, 2), (6, 4), (8, 5))
    return board


# -- EASY --
def test_random_move_picks_empty_cell(rng: random.Random) -> None:
    board = place(Board.empty(), Color.BLACK, (7, 7), (0, 0))
    for _ in range(20):
        row, col = random_move(board, Color.WHITE, rng)
        assert board.is_empty(row, col)


def test_random_move_only_one_cell_left(rng: random.Random) -> None:
    board = full_board()
    board.remove(3, 9)
    assert random_move(board, Color.WHITE, rng) == (3, 9)


def test_random_move_full_board(rng: random.Random) -> None:
    assert random_move(full_board(), Color.WHITE, rng) == NO_MOVE


def test_random_move_is_reproducible_with_seed() -> None:
    board = Board.empty()
    first = [random_move(board, Color.BLACK, random.Random(7)) for _ in range(3)]
    second = [random_move(board, Color.BLACK, random.Random(7)) for _ in range(3)]
    assert first == second


# -- MEDIUM --
def test_find_winning_move_row_major() -> None:
    """Both ends complete five: the first one in row-major order is returned."""
    board = place(Board.empty(), Color.BLACK, (7, 3), (7, 4), (7, 5), (7, 6))
    assert find_winning_move(board, Color.BLACK) == (7, 2)
    assert find_winning_move(board, Color.WHITE) == NO_MOVE


def test_find_winning_move_gap() -> None:
    board = place(Board.empty(), Color.WHITE, (2, 2), (3, 3), (5, 5), (6, 6))
    assert find_winning_move(board, Color.WHITE) == (4, 4)


def test_find_winning_move_leaves_board_untouched() -> None:
    board = place(Board.empty(), Color.BLACK, (7, 3), (7, 4), (7, 5), (7, 6))
    before = board.copy()
    _ = find_winning_move(board, Color.BLACK)
    assert board == before
    assert board.stones() == before.stones()


def test_medium_takes_the_win_before_blocking(rng: random.Random) -> None:
    board = place(Board.empty(), Color.BLACK, (7, 3), (7, 4), (7, 5), (7, 6))
    place(board, Color.WHITE, (3, 3), (3, 4), (3, 5), (3, 6))
    assert heuristic_move(board, Color.WHITE, rng) == (3, 2)
    assert heuristic_move(board, Color.BLACK, rng) == (7, 2)


def test_medium_blocks_four(rng: random.Random, closed_white_four: Board) -> None:
    assert heuristic_move(closed_white_four, Color.BLACK, rng) == (7, 7)


def test_medium_blocks_open_four(rng: random.Random) -> None:
    """An open four cannot be stopped, but the AI still blocks the first end it finds."""
    board = place(Board.empty(), Color.WHITE, (7, 3), (7, 4), (7, 5), (7, 6))
    place(board, Color.BLACK, (0, 0), (14, 14), (0, 14))
    assert heuristic_move(board, Color.BLACK, rng) == (7, 2)


def test_deterministic_medium_opens_in_the_center(rng: random.Random) -> None:
    assert deterministic_heuristic_move(Board.empty(), Color.BLACK, rng) == (7, 7)


def test_medium_stays_near_the_center_with_jitter(rng: random.Random) -> None:
    """Jitter is smaller than the bonus of two steps towards the center."""
    row, col = heuristic_move(Board.empty(), Color.BLACK, rng)
    assert abs(row - 7) + abs(col - 7) <= 1


def test_medium_extends_own_run(rng: random.Random) -> None:
    board = place(Board.empty(), Color.BLACK, (7, 6), (7, 7), (7, 8))
    place(board, Color.WHITE, (6, 6), (8, 8))
    assert deterministic_heuristic_move(board, Color.BLACK, rng) in {(7, 5), (7, 9)}


def test_medium_full_board(rng: random.Random) -> None:
    assert heuristic_move(full_board(), Color.BLACK, rng) == NO_MOVE


# -- HARD --
def test_candidates_on_empty_board() -> None:
    assert candidate_moves(Board.empty()) == [(7, 7)]


def test_candidates_around_a_stone() -> None:
    board = place(Board.empty(), Color.BLACK, (7, 7))
    candidates = candidate_moves(board)
    assert len(candidates) == 24
    assert (7, 7) not in candidates
    assert candidates == sorted(candidates)
    assert all(max(abs(row - 7), abs(col - 7)) <= 2 for row, col in candidates)


def test_candidates_in_the_corner() -> None:
    board = place(Board.empty(), Color.BLACK, (0, 0))
    assert len(candidate_moves(board, radius=1)) == 3
    assert len(candidate_moves(board)) == 8


def test_hard_opens_in_the_center(rng: random.Random) -> None:
    assert minimax_move(Board.empty(), Color.BLACK, rng) == (7, 7)


def test_hard_takes_the_win(rng: random.Random) -> None:
    board = place(Board.empty(), Color.BLACK, (7, 3), (7, 4), (7, 5), (7, 6))
    place(board, Color.WHITE, (6, 3), (6, 4), (6, 5), (8, 8))
    assert minimax_move(board, Color.BLACK, rng) in {(7, 2), (7, 7)}


def test_hard_blocks_four(rng: random.Random, closed_white_four: Board) -> None:
    assert minimax_move(closed_white_four, Color.BLACK, rng) == (7, 7)


def test_hard_leaves_board_untouched(rng: random.Random, closed_white_four: Board) -> None:
    before = closed_white_four.copy()
    _ = minimax_move(closed_white_four, Color.BLACK, rng)
    assert closed_white_four == before
    assert closed_white_four.stones() == before.stones()


def test_hard_full_board(rng: random.Random) -> None:
    assert minimax_move(full_board(), Color.WHITE, rng) == NO_MOVE


def test_hard_is_deterministic() -> None:
    board = place(Board.empty(), Color.BLACK, (7, 7), (8, 8))
    place(board, Color.WHITE, (7, 8))
    first = minimax_move(board, Color.WHITE, random.Random(1))
    second = minimax_move(board, Color.WHITE, random.Random(2))
    assert first == second


@pytest.mark.parametrize("order_moves", [False, True])
def test_pruning_does_not_change_the_result(order_moves: bool) -> None:
    """Alpha-beta must find the same score and move as plain minimax, just with fewer nodes."""
    board = place(Board.empty(), Color.BLACK, (7, 7), (8, 6))
    place(board, Color.WHITE, (7, 8))

    pruned = Minimax(Color.WHITE, depth=2, prune=True, order_moves=order_moves).run(board)
    full = Minimax(Color.WHITE, depth=2, prune=False, order_moves=order_moves).run(board)

    assert pruned.score == full.score
    assert pruned.move == full.move
    assert pruned.nodes < full.nodes


def test_pruning_at_full_depth() -> None:
    """Same check with 3 plies, as played. A few stones in the corner keep the unpruned tree small."""
    board = place(Board.empty(), Color.BLACK, (0, 0), (0, 1))
    place(board, Color.WHITE, (1, 1))

    pruned = Minimax(Color.WHITE, depth=3, prune=True, order_moves=False).run(board)
    full = Minimax(Color.WHITE, depth=3, prune=False, order_moves=False).run(board)

    assert pruned.score == full.score
    assert pruned.move == full.move
    assert pruned.nodes < full.nodes


def test_one_ply_search_matches_board_evaluation() -> None:
    """Leaf scores are kept up to date stone by stone: they must agree with a full evaluate_board."""
    board = place(Board.empty(), Color.BLACK, (7, 7), (7, 8), (6, 9))
    place(board, Color.WHITE, (8, 8), (6, 7))

    best = None
    for row, col in candidate_moves(board):
        with simulated_move(board, row, col, Color.WHITE):
            score = evaluate_board(board, Color.WHITE)
        if best is None or score > best:
            best = score

    result = Minimax(Color.WHITE, depth=1).run(board)
    assert result.score == best


def test_hard_is_quick_in_the_middle_game(rng: random.Random) -> None:
    """Twenty stones around the center: a full 3-ply search has to stay well below the time a player would wait."""
    board = place(
        Board.empty(),
        Color.BLACK,
        (5, 5), (5, 7), (6, 6), (6, 8), (7, 5), (7, 7), (8, 6), (8, 9), (9, 7), (4, 8),
    )
    place(
        board,
        Color.WHITE,
        (5, 6), (5, 8), (6, 5), (6, 7), (7, 6), (7, 8), (8, 7), (8, 5), (9, 6), (4, 6),
    )

    start = time.perf_counter()
    row, col = minimax_move(board, Color.BLACK, rng)
    elapsed = time.perf_counter() - start

    assert board.is_empty(row, col)
    assert elapsed < 5.0


# -- DISPATCH --
def test_strategy_per_difficulty() -> None:
    assert STRATEGIES[AIDifficulty.EASY] is random_move
    assert STRATEGIES[AIDifficulty.MEDIUM] is heuristic_move
    assert STRATEGIES[AIDifficulty.HARD] is minimax_move


@pytest.mark.parametrize("difficulty", list(AIDifficulty))
def test_choose_move_returns_empty_cell(difficulty: AIDifficulty) -> None:
    board = place(Board.empty(), Color.BLACK, (7, 7))
    row, col = choose_move(board, Color.WHITE, difficulty, random.Random(3))
    assert board.is_empty(row, col)


def test_choose_move_unknown_difficulty_falls_back_to_easy() -> None:
    board = Board.empty()
    expected = random_move(board, Color.WHITE, random.Random(5))
    assert choose_move(board, Color.WHITE, "impossible", random.Random(5)) == expected  # type: ignore[arg-type]


@pytest.mark.parametrize("seed", range(5))
def test_medium_white_blocks_open_four(seed: int) -> None:
    board = place(Board.empty(), Color.BLACK, (7, 4), (7, 5), (7, 6), (7, 7))
    place(board, Color.WHITE, (6, 6), (8, 8), (9, 9))
    assert heuristic_move(board, Color.WHITE, random.Random(seed)) in {(7, 3), (7, 8)}
