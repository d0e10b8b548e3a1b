"""Protocol repository (SQL Alchemy for now, could be a plain save file later)"""

from typing import Protocol
from uuid import UUID

from src.core.models import GameModel


class GameRepository(Protocol):
    """Persistence layer orchestration"""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get saved game by ID, if record exists."""
        ...

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        ...

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Overwrite an existing save."""
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a saved game."""
        ...

    def list_games(self) -> list[UUID]:
        """IDs of all saved games, most recently saved first."""
        ...
