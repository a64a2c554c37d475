"""Configuration settings for the Row/Bike converter."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


# __file__ = src/rowbike_converter/config.py
# .parent.parent.parent = project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from ROWBIKE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROWBIKE_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Local store
    database_path: Path | None = None
    storage_backend: str = "sqlite"  # sqlite, supabase

    # Supabase (server-side store)
    supabase_url: str = ""
    supabase_service_key: str = ""

    # Remote calibration endpoint used by sync
    remote_base_url: str = "http://localhost:8000"
    remote_timeout_seconds: float = 30.0
    user_id: str = "default"
    sync_interval_minutes: int = 5

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    log_level: str = "INFO"

    def model_post_init(self, __context) -> None:
        """Set default database path after initialization."""
        if self.database_path is None:
            self.database_path = PROJECT_ROOT / "rowbike.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
