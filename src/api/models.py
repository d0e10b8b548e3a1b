"""Requests and Response models exchanged with the presentation layer"""

from typing import Optional

from pydantic import BaseModel, field_validator

from src.core.exceptions import InvalidRequestError
from src.core.shared_types import AIDifficulty, Color, GameMode, PeerRole, Status
from src.gobang.moves import BOARD_SIZE

BoardRow = str
WireMove = str


# --- REQUEST MODELS ---
class ModeRequest(BaseModel):
    """Settings chosen in the 'new game' dialog, before a session exists."""

    mode: GameMode
    difficulty: AIDifficulty = AIDifficulty.MEDIUM
    local_color: Color = Color.BLACK

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, value: GameMode) -> GameMode:
        # network games are set up by hosting/joining, because the colors are decided by the connection
        if value == GameMode.NETWORK:
            raise InvalidRequestError(
                "Host or join a game to play over the network."
            )
        return value


# --- RESPONSE MODELS ---
class GameView(BaseModel):
    """Read-only view on the session. Everything the presentation layer needs to draw the board and status bar."""

    board: list[BoardRow]
    turn: Color
    status: Status
    winner: Optional[Color]
    game_over: bool
    reason: Optional[str]
    move_history: list[WireMove]
    mode: GameMode
    difficulty: AIDifficulty
    local_color: Color
    peer_role: Optional[PeerRole]
    is_my_turn: bool
    opponent_name: Optional[str]

    @field_validator("board")
    @classmethod
    def validate_board(cls, value: list[BoardRow]) -> list[BoardRow]:
        if len(value) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in value):
            raise InvalidRequestError(
                f"Board must have {BOARD_SIZE} rows of {BOARD_SIZE} cells."
            )
        return value
