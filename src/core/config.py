"""
Application settings.

Read from a `settings.json` next to the application (if there is one). Missing file --> defaults.
"""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path("settings.json")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


class LocaleSettings(BaseModel):
    """Only stored on behalf of the presentation layer. The core never looks at it."""

    language: str = "en"
    country: str = "US"


class NetworkSettings(BaseModel):
    bind_address: str = "0.0.0.0"
    port: int = Field(default=12345, ge=1, le=65535)
    accept_timeout_seconds: float = Field(default=30.0, gt=0)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)


class Settings(BaseModel):
    player_name: str = "Player"
    # cosmetic delay before the AI answers: (difficulty level + 1) * this value
    ai_think_time_ms: int = Field(default=500, ge=0)
    database_url: str = "sqlite:///gobang.db"
    log_level: str = "INFO"
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    locale: LocaleSettings = Field(default_factory=LocaleSettings)

    def think_time_seconds(self, level: int) -> float:
        return (level + 1) * self.ai_think_time_ms / 1000


def load_settings(path: Path = SETTINGS_FILE) -> Settings:
    """Load settings from JSON. When the file does not exist, fall back to the defaults."""
    if not path.exists():
        logger.info("No settings file at %s, using defaults", path)
        return Settings()
    settings = Settings.model_validate_json(path.read_text(encoding="utf-8"))
    logger.info("Settings loaded from %s", path)
    return settings


def save_settings(settings: Settings, path: Path = SETTINGS_FILE) -> None:
    path.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Settings saved to %s", path)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
