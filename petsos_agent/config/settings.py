"""
Application settings and configuration.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "PetSOS Schedule Agent"
    app_version: str = "1.0.0"
    debug: bool = False

    # Storage
    database_path: str = "petsos.db"
    session_backend: str = Field(default="memory", description="memory | sqlite")
    session_db_path: str = "petsos_sessions.db"

    # OpenAI
    openai_api_key: Optional[str] = None
    extraction_model: str = "gpt-4o-mini"
    extraction_temperature: float = 0.1
    transcription_model: str = "whisper-1"
    transcription_language: str = "uk"

    # Telegram
    telegram_bot_token: Optional[str] = None
    telegram_webhook_secret: Optional[str] = None
    telegram_api_base: str = "https://api.telegram.org"
    http_timeout: float = 15.0

    # Scheduling
    timezone: str = "Europe/Kyiv"
    planning_window_days: int = 31

    # Logging
    log_level: str = "INFO"
    event_log_path: str = "petsos_event_log.jsonl"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
