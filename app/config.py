import logging
import sys
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas.game_engine import BotDifficulty

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEBUG: bool = False

    # Upstash Redis
    UPSTASH_REDIS_REST_URL: str
    UPSTASH_REDIS_REST_TOKEN: str
    ROOM_TTL_SECONDS: int = 86400

    # WebSocket config
    WS_HEARTBEAT_INTERVAL: int = 30
    WS_CONNECTION_TIMEOUT: int = 120
    WS_MAX_MESSAGE_BYTES: int = 64 * 1024
    WS_MAX_MESSAGES_PER_SECOND: int = 10

    # Bots
    BOT_MOVE_DELAY_MIN: float = 1.0
    BOT_MOVE_DELAY_MAX: float = 3.0
    DEFAULT_BOT_DIFFICULTY: BotDifficulty = BotDifficulty.MEDIUM

    @field_validator("UPSTASH_REDIS_REST_URL")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("UPSTASH_REDIS_REST_URL must be a valid HTTPS URL")
        return v

    @field_validator("UPSTASH_REDIS_REST_TOKEN")
    @classmethod
    def validate_redis_token(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("UPSTASH_REDIS_REST_TOKEN cannot be empty")
        return v

    @field_validator("BOT_MOVE_DELAY_MIN")
    @classmethod
    def validate_bot_delay_min(cls, v: float) -> float:
        if v < 0:
            raise ValueError("BOT_MOVE_DELAY_MIN cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_bot_delay_range(self) -> "Settings":
        if self.BOT_MOVE_DELAY_MAX < self.BOT_MOVE_DELAY_MIN:
            raise ValueError("BOT_MOVE_DELAY_MAX must be >= BOT_MOVE_DELAY_MIN")
        return self


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug(
        "Bot delay range: %.1f-%.1fs, default difficulty: %s",
        settings.BOT_MOVE_DELAY_MIN,
        settings.BOT_MOVE_DELAY_MAX,
        settings.DEFAULT_BOT_DIFFICULTY.value,
    )
    return settings
