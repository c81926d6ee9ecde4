"""
Application Settings
Load from environment variables
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # ======================
    # Configuration files
    # ======================
    CONFIG_DIR: Path = Path(__file__).resolve().parents[2] / "config"

    # ======================
    # Timezone
    # ======================
    TIMEZONE: str = "Asia/Kolkata"

    # ======================
    # Quote fetching
    # ======================
    QUOTE_TIMEOUT_SECONDS: float = 20.0
    QUOTE_MAX_RETRIES: int = 2
    QUOTE_BACKOFF_BASE_SECONDS: float = 0.5
    QUOTE_MAX_CONCURRENCY: int = 8
    FUNDAMENTALS_TIMEOUT_SECONDS: float = 15.0

    # ======================
    # Refresh
    # ======================
    REFRESH_ENABLED: bool = True
    REFRESH_INTERVAL_SECONDS: int = 15
    SNAPSHOT_TTL_SECONDS: int = 15
    SNAPSHOT_CACHE_MAX_ENTRIES: int = 64

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )


settings = Settings()
