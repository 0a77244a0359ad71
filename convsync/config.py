"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/convsync"

    # ElevenLabs Conversational AI API
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1/convai"
    elevenlabs_timeout_seconds: float = 30.0

    # Sync settings
    list_page_size: int | None = 100
    max_list_pages: int = 20  # 20 pages of 100 = up to 2000 conversations per run
    page_delay_ms: int = 100
    detail_batch_size: int = 8
    detail_batch_delay_ms: int = 150
    auto_sync_interval_minutes: int = 0  # 0 disables the scheduled sync

    # API settings
    api_v1_prefix: str = "/api"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    log_level: str = "INFO"
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
