"""
Custom exceptions for the PetSOS schedule agent.
"""

from .extraction import ExtractionError, ExtractionFormatError
from .external import ExternalAPIError, TranscriptionError, TelegramAPIError
from .storage import StorageError

__all__ = [
    "ExtractionError",
    "ExtractionFormatError",
    "ExternalAPIError",
    "TranscriptionError",
    "TelegramAPIError",
    "StorageError",
]
