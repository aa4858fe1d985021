"""
Service layer for the PetSOS schedule agent.
"""

from .extraction import SlotExtractor
from .storage import SlotRepository, ReconciliationService
from .session import SessionStore, InMemorySessionStore, SQLiteSessionStore, create_session_store
from .external import TelegramAPIService, TranscriptionService
from .intake import IntakeFlow

__all__ = [
    "SlotExtractor",
    "SlotRepository",
    "ReconciliationService",
    "SessionStore",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "create_session_store",
    "TelegramAPIService",
    "TranscriptionService",
    "IntakeFlow",
]
