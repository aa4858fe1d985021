"""
External API-related exceptions.
"""


class ExternalAPIError(Exception):
    """Base exception for external API errors."""
    pass


class TranscriptionError(ExternalAPIError):
    """Exception raised when audio could not be converted to text."""
    pass


class TelegramAPIError(ExternalAPIError):
    """Exception raised when Telegram Bot API calls fail."""
    pass
