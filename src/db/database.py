"""Generate database session"""

from __future__ import annotations

from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import Settings
from src.db.schema import Base


def create_db_engine(settings: Settings) -> Engine:
    """Engine for the configured database. Makes sure all tables exist."""
    engine = create_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    return engine


def get_db(engine: Engine) -> Generator[Session]:
    session_local = sessionmaker(bind=engine)
    db = session_local()
    try:
        yield db
    finally:
        db.close()
