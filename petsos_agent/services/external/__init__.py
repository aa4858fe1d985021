"""
External API service module.
"""

from .telegram import TelegramAPIService
from .transcription import TranscriptionService

__all__ = ["TelegramAPIService", "TranscriptionService"]
