from pathlib import Path
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root

ENV_FILE = os.getenv("ENV_FILE", str(BASE_DIR / ".env"))

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, extra="ignore")

    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # primary is read first; mirror is the best-effort replica used for search
    DATABASE_URL: str = "sqlite+aiosqlite:///./formportal.db"
    MIRROR_DATABASE_URL: str = "sqlite+aiosqlite:///./formportal_mirror.db"

    CORS_ORIGINS: str = "*"  # Comma-separated list of allowed origins, or "*" for all

    # server-side page limit for location records
    LOCATION_PAGE_SIZE: int = 1000
    CLASSIFICATION_CACHE_TTL_MINUTES: int = 30

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list, handling '*' for development"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

settings = Settings()
