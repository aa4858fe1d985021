"""
SQLite-backed persistent store for owners and availability slots.

All helpers are asynchronous and use ``asyncio.Lock`` together with
``asyncio.to_thread`` to perform the blocking SQLite operations without
blocking the event loop. Every multi-row write runs inside one
transaction, so a call either applies fully or not at all.
"""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Set, TypeVar

from ...core.exceptions import StorageError
from ...core.models import IdentityKey, Slot, StoredSlot, Vet
from ...config import get_settings
from ...utils.logging import get_logger

T = TypeVar("T")

logger = get_logger("petsos.store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS vets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    platform TEXT NOT NULL,
    platform_user_id TEXT NOT NULL,
    name TEXT,
    phone TEXT,
    is_admin INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    UNIQUE (platform, platform_user_id)
);
CREATE TABLE IF NOT EXISTS availability_slots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vet_id INTEGER NOT NULL REFERENCES vets(id) ON DELETE CASCADE,
    date TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    type TEXT NOT NULL,
    source TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (vet_id, date, start_time, type)
);
CREATE INDEX IF NOT EXISTS idx_slots_vet_date ON availability_slots (vet_id, date);
"""

_VET_COLUMNS = "id, platform, platform_user_id, name, phone, is_admin, created_at"
_SLOT_COLUMNS = "id, vet_id, date, start_time, end_time, type, source, created_at"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_vet(row: sqlite3.Row) -> Vet:
    data = dict(row)
    data["is_admin"] = bool(data["is_admin"])
    return Vet(**data)


class SlotRepository:
    """Owner and slot persistence."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or get_settings().database_path
        self._lock = asyncio.Lock()
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema_sync(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``fn`` on a fresh connection in a worker thread."""

        def _call() -> T:
            conn = self._connect()
            try:
                return fn(conn)
            finally:
                conn.close()

        async with self._lock:
            try:
                if not self._initialized:
                    await asyncio.to_thread(self._ensure_schema_sync)
                    self._initialized = True
                return await asyncio.to_thread(_call)
            except sqlite3.Error as e:
                logger.error("storage operation failed: %s", e)
                raise StorageError(str(e)) from e

    # --- owners -----------------------------------------------------------

    async def upsert_owner(
        self, platform: str, platform_user_id: str, name: Optional[str] = None
    ) -> Vet:
        """Find-or-create the owner in one atomic statement."""

        def _upsert(conn: sqlite3.Connection) -> Vet:
            with conn:
                conn.execute(
                    """
                    INSERT INTO vets (platform, platform_user_id, name, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (platform, platform_user_id)
                    DO UPDATE SET name = COALESCE(excluded.name, vets.name)
                    """,
                    (platform, platform_user_id, name, _now_iso()),
                )
                row = conn.execute(
                    f"SELECT {_VET_COLUMNS} FROM vets WHERE platform = ? AND platform_user_id = ?",
                    (platform, platform_user_id),
                ).fetchone()
            return _row_to_vet(row)

        return await self._run(_upsert)

    async def get_owner(self, platform: str, platform_user_id: str) -> Optional[Vet]:
        def _fetch(conn: sqlite3.Connection) -> Optional[Vet]:
            row = conn.execute(
                f"SELECT {_VET_COLUMNS} FROM vets WHERE platform = ? AND platform_user_id = ?",
                (platform, platform_user_id),
            ).fetchone()
            return _row_to_vet(row) if row else None

        return await self._run(_fetch)

    async def set_phone(self, platform: str, platform_user_id: str, phone: str) -> None:
        def _write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO vets (platform, platform_user_id, phone, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (platform, platform_user_id)
                    DO UPDATE SET phone = excluded.phone
                    """,
                    (platform, platform_user_id, phone, _now_iso()),
                )

        await self._run(_write)

    async def has_phone(self, platform: str, platform_user_id: str) -> bool:
        vet = await self.get_owner(platform, platform_user_id)
        return bool(vet and vet.phone)

    async def set_admin(self, platform: str, platform_user_id: str, is_admin: bool) -> None:
        def _write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO vets (platform, platform_user_id, is_admin, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (platform, platform_user_id)
                    DO UPDATE SET is_admin = excluded.is_admin
                    """,
                    (platform, platform_user_id, int(is_admin), _now_iso()),
                )

        await self._run(_write)

    async def is_admin(self, platform: str, platform_user_id: str) -> bool:
        vet = await self.get_owner(platform, platform_user_id)
        return bool(vet and vet.is_admin)

    # --- slots ------------------------------------------------------------

    async def fetch_identity_keys(self, vet_id: int) -> Set[IdentityKey]:
        """(date, start_time, type) of every slot the owner already has."""

        def _fetch(conn: sqlite3.Connection) -> Set[IdentityKey]:
            rows = conn.execute(
                "SELECT date, start_time, type FROM availability_slots WHERE vet_id = ?",
                (vet_id,),
            ).fetchall()
            return {(r["date"], r["start_time"], r["type"]) for r in rows}

        return await self._run(_fetch)

    async def insert_slots(self, vet_id: int, slots: Iterable[Slot], source: str) -> int:
        """Insert all ``slots`` in one transaction; returns the inserted count."""
        created_at = _now_iso()
        rows = [
            (vet_id, s.date, s.start_time, s.end_time, s.type.value, source, created_at)
            for s in slots
        ]
        if not rows:
            return 0

        def _write(conn: sqlite3.Connection) -> int:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO availability_slots
                        (vet_id, date, start_time, end_time, type, source, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
            return len(rows)

        return await self._run(_write)

    async def list_slots(self, vet_id: int, start_date: str, end_date: str) -> List[StoredSlot]:
        """Slots with ``start_date <= date <= end_date``, ordered by date and start."""

        def _fetch(conn: sqlite3.Connection) -> List[StoredSlot]:
            rows = conn.execute(
                f"""
                SELECT {_SLOT_COLUMNS} FROM availability_slots
                WHERE vet_id = ? AND date >= ? AND date <= ?
                ORDER BY date ASC, start_time ASC
                """,
                (vet_id, start_date, end_date),
            ).fetchall()
            return [StoredSlot(**dict(r)) for r in rows]

        return await self._run(_fetch)

    async def delete_slots_in_range(self, vet_id: int, start_date: str, end_date: str) -> int:
        """Delete slots in the closed date range in one transaction."""

        def _delete(conn: sqlite3.Connection) -> int:
            with conn:
                cur = conn.execute(
                    "DELETE FROM availability_slots WHERE vet_id = ? AND date >= ? AND date <= ?",
                    (vet_id, start_date, end_date),
                )
            return cur.rowcount

        return await self._run(_delete)
