"""
Server configuration.

Values come from the environment or a ``.env`` file via pydantic-settings.
Database credentials are never given defaults; PostgreSQL mode refuses to
start without them.
"""

from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PG_REQUIRED = ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_SERVER", "POSTGRES_DB")


class Settings(BaseSettings):
    """Settings for the Investment Tracker API process."""

    PROJECT_NAME: str = "Investment Tracker API"
    VERSION: str = "1.0.0"

    # Mount point of the investment routes; "" serves POST /inv, GET /invs, ...
    API_PREFIX: str = ""

    # In-memory SQLite instead of PostgreSQL (development and tests).
    USE_SQLITE: bool = False

    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_SERVER: str = ""
    POSTGRES_DB: str = ""
    POSTGRES_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    # Startup attempts to reach the database before running degraded.
    DB_CONNECT_RETRIES: int = 5

    CB_FAILURE_THRESHOLD: int = 5
    CB_RECOVERY_TIMEOUT: float = 30.0

    # Comma-separated.
    CORS_ORIGINS: str = "*"

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_FILE_BACKUP_COUNT: int = 5

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _postgres_needs_credentials(self) -> "Settings":
        if self.USE_SQLITE:
            return self
        missing: List[str] = [name for name in _PG_REQUIRED if not getattr(self, name)]
        if missing:
            raise ValueError(
                f"Missing database settings: {', '.join(missing)}. Set them in the "
                f"environment or .env, or run without PostgreSQL:\n"
                f"    USE_SQLITE=true uvicorn invtracker.main:app"
            )
        return self

    @property
    def DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN: in-memory aiosqlite or asyncpg."""
        if self.USE_SQLITE:
            return "sqlite+aiosqlite://"
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
