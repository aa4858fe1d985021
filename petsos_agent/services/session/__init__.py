"""
Session state service module.
"""

from .store import SessionStore, InMemorySessionStore, SQLiteSessionStore, create_session_store

__all__ = [
    "SessionStore",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "create_session_store",
]
