"""
The Game class is the entrypoint into the domain layer for the coordinator.
It is responsible for all the rules of a turn: whose turn it is, who may move, applying the move,
and deciding when the game is over. It knows nothing about threads, sockets or the AI.
"""

from dataclasses import dataclass
from typing import Optional, Self

from src.core.exceptions import GameError, GameStateError, NotYourTurnError
from src.core.models import GameModel
from src.core.shared_types import Actor, AIDifficulty, Color, GameMode, PeerRole, Status
from src.gobang.board import Board
from src.gobang.moves import Move, color_for_ply, moves_from_notation


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY COORDINATOR ---

    board: Board
    moves: list[Move]
    turn: Color
    status: Status
    mode: GameMode
    difficulty: AIDifficulty
    local_color: Color  # vs AI: the human's color. network: the color played on this machine.
    winner: Optional[Color] = None
    peer_role: Optional[PeerRole] = None
    is_my_turn: bool = False

    @classmethod
    def new_game(
        cls,
        mode: GameMode = GameMode.LOCAL_TWO_PLAYER,
        difficulty: AIDifficulty = AIDifficulty.MEDIUM,
        local_color: Color = Color.BLACK,
        peer_role: Optional[PeerRole] = None,
    ) -> Self:
        """Empty board, black to move."""
        if mode == GameMode.NETWORK and peer_role is None:
            raise GameStateError("A network game needs to know if it is hosting or joining.")
        game = cls(
            board=Board.empty(),
            moves=[],
            turn=Color.BLACK,
            status=Status.AWAITING_MOVE,
            mode=mode,
            difficulty=difficulty,
            local_color=local_color,
            peer_role=peer_role if mode == GameMode.NETWORK else None,
        )
        game.is_my_turn = game._starts_with_my_turn()
        return game

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """
        Define how to construct a Game from a snapshot.

        The snapshot is only accepted if it is consistent: the board must be exactly what the move history produces,
        the status (and winner) must be what those moves lead to, and a running game must have the turn the move
        count implies.
        NOTE a network game cannot be resumed without the peer, so it comes back as a local two player game.
        """
        try:
            status = Status(model.status)
            mode = GameMode(model.mode)
            difficulty = AIDifficulty(model.difficulty)
            turn = Color(model.turn)
            local_color = Color(model.local_color)
            winner = Color(model.winner) if model.winner else None
        except ValueError as exc:
            raise GameStateError(f"Invalid snapshot: {exc}") from exc

        board = Board.from_rows(model.board)
        try:
            moves = moves_from_notation(model.moves)
            replayed, outcome, last_mover = _replay_outcome(moves)
        except GameError as exc:
            raise GameStateError(f"Move history cannot be replayed: {exc}") from exc
        if replayed != board:
            raise GameStateError("Board does not match the move history.")

        # the status must be the one the moves lead to. Aborted can only replace a running game.
        if status != outcome and not (
            status == Status.ABORTED and outcome == Status.AWAITING_MOVE
        ):
            raise GameStateError(
                f"Status {status!r} contradicts the board, the moves lead to {outcome!r}."
            )
        if status == Status.WIN and winner != last_mover:
            raise GameStateError(f"Winner must be {last_mover}, who completed five.")

        if model.game_over != (status != Status.AWAITING_MOVE):
            raise GameStateError(
                f"Game over flag {model.game_over} contradicts status {status!r}."
            )
        if status == Status.AWAITING_MOVE and turn != color_for_ply(len(moves)):
            raise GameStateError(
                f"It cannot be {turn}'s turn after {len(moves)} moves."
            )

        if mode == GameMode.NETWORK:
            mode = GameMode.LOCAL_TWO_PLAYER

        return cls(
            board=board,
            moves=moves,
            turn=turn,
            status=status,
            mode=mode,
            difficulty=difficulty,
            local_color=local_color,
            winner=winner if status == Status.WIN else None,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the coordinator (and the repository) uses"""
        return GameModel(
            board=self.board.to_rows(),
            moves=[move.to_notation() for move in self.moves],
            turn=self.turn.value,
            game_over=self.is_over,
            status=self.status.value,
            winner=self.winner.value if self.winner else None,
            mode=self.mode.value,
            local_color=self.local_color.value,
            difficulty=self.difficulty.value,
        )

    @property
    def is_over(self) -> bool:
        return self.status != Status.AWAITING_MOVE

    @property
    def ai_color(self) -> Optional[Color]:
        if self.mode != GameMode.LOCAL_VS_AI:
            return None
        return self.local_color.opponent()

    @property
    def is_ai_turn(self) -> bool:
        return not self.is_over and self.ai_color == self.turn

    @property
    def peer_color(self) -> Color:
        return self.local_color.opponent()

    @property
    def last_move(self) -> Optional[Move]:
        return self.moves[-1] if self.moves else None

    def submit_move(self, row: int, col: int, actor: Actor = Actor.LOCAL) -> Move:
        """
        Attempt to make a move
        -----

        1. game still running?
        2. is this actor allowed to move right now?
        3. place the stone (raises IllegalMoveError when off the board / occupied, without changing anything)
        4. record the move
        5. win? draw? otherwise pass the turn
        """
        if self.is_over:
            raise GameStateError(f"Game is over. status: {self.status}")

        self._assert_your_turn(actor)

        move = Move(row, col, self._color_for(actor))
        self.board.place(move)
        self.moves.append(move)

        if actor == Actor.LOCAL and self.mode == GameMode.NETWORK:
            self.is_my_turn = False
        elif actor == Actor.PEER:
            self.is_my_turn = True

        self._update_game_status(move)
        return move

    def undo(self) -> list[Move]:
        """
        Take back the last move. Returns the moves that were taken back (latest first).

        Against the AI, taking back only the AI's answer would hand the move straight back to the AI:
        in that case the human's move is taken back too, so it is the human's turn again.
        """
        if self.mode == GameMode.NETWORK:
            raise GameStateError("Undo is not supported in a network game.")
        if self.is_over:
            raise GameStateError(f"Cannot undo, game is over. status: {self.status}")
        if not self.moves:
            raise GameStateError("Cannot undo, no moves have been played.")

        taken_back = [self._pop_move()]
        if self.is_ai_turn and self.moves:
            taken_back.append(self._pop_move())
        return taken_back

    def restart(self) -> None:
        """Same mode, same players, empty board."""
        self.board = Board.empty()
        self.moves = []
        self.turn = Color.BLACK
        self.status = Status.AWAITING_MOVE
        self.winner = None
        self.is_my_turn = self._starts_with_my_turn()

    def start_network_game(self, local_color: Color) -> None:
        """Both sides agreed on the colors (START message): play `local_color` on an empty board."""
        if self.mode != GameMode.NETWORK:
            raise GameStateError(f"Not a network game. mode: {self.mode}")
        self.local_color = local_color
        self.restart()

    def abort(self) -> None:
        """The peer reported the game to be over, while we did not see it end."""
        if not self.is_over:
            self._change_status(Status.ABORTED)

    def leave_network(self) -> None:
        """Connection is gone: keep the board, continue as a local two player game."""
        self.mode = GameMode.LOCAL_TWO_PLAYER
        self.peer_role = None
        self.is_my_turn = False

    # -- PRIVATE HELPERS ---
    def _starts_with_my_turn(self) -> bool:
        return self.mode == GameMode.NETWORK and self.local_color == Color.BLACK

    def _color_for(self, actor: Actor) -> Color:
        """The stone color an actor is placing. A peer always plays the color opposite to ours."""
        if actor == Actor.PEER:
            return self.peer_color
        return self.turn

    def _assert_your_turn(self, actor: Actor) -> None:
        """Only the actor that owns the current turn may move."""
        match self.mode:
            case GameMode.LOCAL_TWO_PLAYER:
                allowed = actor == Actor.LOCAL
            case GameMode.LOCAL_VS_AI:
                allowed = (actor == Actor.AI) == self.is_ai_turn and actor != Actor.PEER
            case GameMode.NETWORK:
                if actor == Actor.LOCAL:
                    allowed = self.is_my_turn and self.local_color == self.turn
                elif actor == Actor.PEER:
                    allowed = not self.is_my_turn and self.peer_color == self.turn
                else:
                    allowed = False
            case _:
                allowed = False
        if not allowed:
            raise NotYourTurnError(
                f"It is not your turn ({actor}). Waiting for {self.turn} to move in a {self.mode} game."
            )

    def _update_game_status(self, move: Move) -> None:
        """Performs checks to see if game has ended and changes status accordingly. Otherwise the turn passes."""
        if self.board.check_win(move.row, move.col):
            self.winner = move.color
            self._change_status(Status.WIN)
        elif self.board.check_draw():
            self._change_status(Status.DRAW)
        else:
            self.turn = self.turn.opponent()

    def _change_status(self, new_status: Status) -> None:
        self.status = new_status

    def _pop_move(self) -> Move:
        move = self.moves.pop()
        self.board.remove(move.row, move.col)
        self.turn = move.color
        return move


def _replay_outcome(moves: list[Move]) -> tuple[Board, Status, Optional[Color]]:
    """
    Play the history on an empty board, and return the board, the status it leads to, and the color of the last mover.
    A history that goes on after a five / a full board is rejected.
    """
    board = Board.empty()
    status = Status.AWAITING_MOVE
    for move in moves:
        if status != Status.AWAITING_MOVE:
            raise GameStateError(f"Move {move.to_notation()} was played after the game ended.")
        board.place(move)
        if board.check_win(move.row, move.col):
            status = Status.WIN
        elif board.check_draw():
            status = Status.DRAW
    last_mover = moves[-1].color if moves else None
    return board, status, last_mover
