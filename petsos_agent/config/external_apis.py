"""
External API configuration.
"""

from typing import Optional
from pydantic import BaseModel

from .settings import Settings


class ExternalAPIConfig(BaseModel):
    """External API configuration settings."""

    # Telegram Bot API
    telegram_api_base: str = "https://api.telegram.org"
    telegram_bot_token: Optional[str] = None
    telegram_timeout: float = 15.0
    telegram_max_message_length: int = 4096

    # OpenAI API
    openai_api_key: Optional[str] = None
    transcription_model: str = "whisper-1"
    transcription_language: str = "uk"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExternalAPIConfig":
        return cls(
            telegram_api_base=settings.telegram_api_base.rstrip("/"),
            telegram_bot_token=settings.telegram_bot_token,
            telegram_timeout=settings.http_timeout,
            openai_api_key=settings.openai_api_key,
            transcription_model=settings.transcription_model,
            transcription_language=settings.transcription_language,
        )

    def get_telegram_method_url(self, method: str) -> str:
        """Get Bot API URL for ``method``."""
        return f"{self.telegram_api_base}/bot{self.telegram_bot_token}/{method}"

    def get_telegram_file_url(self, file_path: str) -> str:
        """Get download URL for a file returned by getFile."""
        return f"{self.telegram_api_base}/file/bot{self.telegram_bot_token}/{file_path}"

    def is_telegram_configured(self) -> bool:
        """Check if the Telegram Bot API is properly configured."""
        return bool(self.telegram_bot_token)

    def is_openai_configured(self) -> bool:
        """Check if OpenAI API is properly configured."""
        return bool(self.openai_api_key)
