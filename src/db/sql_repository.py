"""Implementation of (Game)Repository using SQLAlchemy"""

import logging
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.models import GameModel
from src.db.schema import DBSavedGame

logger = logging.getLogger(__name__)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get saved game by ID, if record exists."""
        game_db = self._fetch_game(game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        new_id = uuid4()
        game_db = DBSavedGame(id=new_id)
        self._copy_into(game, game_db)
        self.db.add(game_db)
        self.db.commit()
        self.db.refresh(game_db)
        logger.info("Saved new game %s (%d moves)", new_id, len(game.moves))
        return self._to_model(game_db), new_id

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Overwrite an existing save."""
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        self._copy_into(game, game_db)
        self.db.commit()
        self.db.refresh(game_db)
        logger.info("Updated saved game %s (%d moves)", game_id, len(game.moves))
        return self._to_model(game_db)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a saved game."""
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        game_model = self._to_model(game_db)
        self.db.delete(game_db)
        self.db.commit()
        return game_model

    def list_games(self) -> list[UUID]:
        """IDs of all saved games, most recently saved first."""
        query = select(DBSavedGame.id).order_by(DBSavedGame.updated_at.desc())
        return list(self.db.scalars(query))

    def _fetch_game(self, game_id: UUID) -> DBSavedGame | None:
        query = select(DBSavedGame).where(DBSavedGame.id == game_id)
        return self.db.scalar(query)

    def _copy_into(self, game: GameModel, game_db: DBSavedGame) -> None:
        # NOTE: assign new lists so SQLAlchemy notices the change on the JSON columns
        game_db.board = list(game.board)
        game_db.moves = list(game.moves)
        game_db.turn = game.turn
        game_db.game_over = game.game_over
        game_db.status = game.status
        game_db.winner = game.winner
        game_db.mode = game.mode
        game_db.local_color = game.local_color
        game_db.difficulty = game.difficulty

    def _to_model(self, game_db: DBSavedGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            board=list(game_db.board),
            moves=list(game_db.moves),
            turn=game_db.turn,
            game_over=game_db.game_over,
            status=game_db.status,
            winner=game_db.winner,
            mode=game_db.mode,
            local_color=game_db.local_color,
            difficulty=game_db.difficulty,
        )
