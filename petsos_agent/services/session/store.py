"""
Per-user transient session state.

Holds the conversation state, the pending proposal and the pending
month-clear confirmation of each owner. The store is injected into the
intake flow, so the in-process default can be replaced by a shared
backend without touching pipeline logic. Entries never expire; they
live until the flow clears or overwrites them.
"""

from __future__ import annotations

import asyncio
import sqlite3
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple, TypeVar

from ...core.enums import ConversationState
from ...core.exceptions import StorageError
from ...core.models import PendingProposal
from ...config import Settings, get_settings
from ...utils.logging import get_logger

T = TypeVar("T")

logger = get_logger("petsos.session")

_STATE = "state"
_PROPOSAL = "proposal"
_PENDING_CLEAR = "pending_clear"


class SessionStore(ABC):
    """Typed session operations over a string key-value backend."""

    @abstractmethod
    async def _get(self, user_key: str, kind: str) -> Optional[str]:
        ...

    @abstractmethod
    async def _set(self, user_key: str, kind: str, value: str) -> None:
        ...

    @abstractmethod
    async def _delete(self, user_key: str, kind: str) -> None:
        ...

    async def get_state(self, user_key: str) -> ConversationState:
        raw = await self._get(user_key, _STATE)
        if raw is None:
            return ConversationState.IDLE
        try:
            return ConversationState(raw)
        except ValueError:
            return ConversationState.IDLE

    async def set_state(self, user_key: str, state: ConversationState) -> None:
        if state == ConversationState.IDLE:
            await self._delete(user_key, _STATE)
        else:
            await self._set(user_key, _STATE, state.value)

    async def get_proposal(self, user_key: str) -> Optional[PendingProposal]:
        raw = await self._get(user_key, _PROPOSAL)
        return PendingProposal.model_validate_json(raw) if raw else None

    async def set_proposal(self, user_key: str, proposal: PendingProposal) -> None:
        await self._set(user_key, _PROPOSAL, proposal.model_dump_json())

    async def clear_proposal(self, user_key: str) -> None:
        await self._delete(user_key, _PROPOSAL)

    async def get_pending_clear(self, user_key: str) -> Optional[str]:
        return await self._get(user_key, _PENDING_CLEAR)

    async def set_pending_clear(self, user_key: str, year_month: str) -> None:
        await self._set(user_key, _PENDING_CLEAR, year_month)

    async def clear_pending_clear(self, user_key: str) -> None:
        await self._delete(user_key, _PENDING_CLEAR)


class InMemorySessionStore(SessionStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self):
        self._data: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def _get(self, user_key: str, kind: str) -> Optional[str]:
        async with self._lock:
            return self._data.get((user_key, kind))

    async def _set(self, user_key: str, kind: str, value: str) -> None:
        async with self._lock:
            self._data[(user_key, kind)] = value

    async def _delete(self, user_key: str, kind: str) -> None:
        async with self._lock:
            self._data.pop((user_key, kind), None)


class SQLiteSessionStore(SessionStore):
    """Session rows in a SQLite file, shared by every process using it."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = asyncio.Lock()
        self._initialized = False

    def _ensure_table_sync(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                user_key TEXT NOT NULL,
                kind TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (user_key, kind)
            )
            """
        )
        conn.commit()

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``fn`` on a fresh connection in a worker thread."""

        def _call() -> T:
            conn = sqlite3.connect(self.db_path)
            try:
                if not self._initialized:
                    self._ensure_table_sync(conn)
                    self._initialized = True
                return fn(conn)
            finally:
                conn.close()

        async with self._lock:
            try:
                return await asyncio.to_thread(_call)
            except sqlite3.Error as e:
                logger.error("session store operation failed: %s", e)
                raise StorageError(str(e)) from e

    async def _get(self, user_key: str, kind: str) -> Optional[str]:
        def _fetch(conn: sqlite3.Connection) -> Optional[str]:
            row = conn.execute(
                "SELECT value FROM sessions WHERE user_key = ? AND kind = ?",
                (user_key, kind),
            ).fetchone()
            return row[0] if row else None

        return await self._run(_fetch)

    async def _set(self, user_key: str, kind: str, value: str) -> None:
        def _write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO sessions (user_key, kind, value) VALUES (?, ?, ?)",
                    (user_key, kind, value),
                )

        await self._run(_write)

    async def _delete(self, user_key: str, kind: str) -> None:
        def _remove(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    "DELETE FROM sessions WHERE user_key = ? AND kind = ?",
                    (user_key, kind),
                )

        await self._run(_remove)


def create_session_store(settings: Optional[Settings] = None) -> SessionStore:
    """Build the store selected by ``Settings.session_backend``."""
    settings = settings or get_settings()
    if settings.session_backend.lower() == "sqlite":
        return SQLiteSessionStore(settings.session_db_path)
    return InMemorySessionStore()
