"""
Boundary layer data model(s).

These objects can be used to communicate with the Coordinator.
The persistence layer (lower) and the presentation layer (higher) both use the GameModel to send to/receive from the Coordinator
(Decouples the data model specific to the DB layer from the domain layer's Game object)
"""

from dataclasses import dataclass
from typing import Optional

# Type aliases to make GameModel easier to read
BoardRow = str  # one character per cell: '.' empty, 'b' black, 'w' white
WireMove = str  # "row,col"


@dataclass
class GameModel:
    """Transport-safe snapshot of a gobang session, used between Coordinator, DB, and Game layers."""

    board: list[BoardRow]
    moves: list[WireMove]
    turn: str
    game_over: bool
    status: str
    winner: Optional[str]
    mode: str
    local_color: str
    difficulty: str
