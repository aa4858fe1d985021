"""
Reconciliation of extracted slots against persisted state.
"""

from typing import Iterable, List

from ...core.models import Slot, StoredSlot
from ...utils.date import month_bounds
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from .repository import SlotRepository

logger = get_logger("petsos.reconcile")


class ReconciliationService:
    """Single gate through which extracted slots reach storage."""

    def __init__(self, repository: SlotRepository):
        self.repository = repository

    async def save_slots(self, vet_id: int, slots: Iterable[Slot], source: str) -> int:
        """
        Insert the slots whose identity key the owner does not have yet.

        Args:
            vet_id: Owner record id
            slots: Validated candidate slots
            source: Source tag stored with every row ("voice" or "text")

        Returns:
            Number of rows actually inserted; zero when everything already exists
        """
        slots = list(slots)
        if not slots:
            return 0

        seen = await self.repository.fetch_identity_keys(vet_id)
        fresh: List[Slot] = []
        for slot in slots:
            if slot.identity_key in seen:
                continue
            seen.add(slot.identity_key)
            fresh.append(slot)

        inserted = await self.repository.insert_slots(vet_id, fresh, source) if fresh else 0
        logger.info("vet %s: %d offered, %d inserted", vet_id, len(slots), inserted)
        log_event(
            "slots_saved",
            {"vet_id": vet_id, "offered": len(slots), "inserted": inserted, "source": source},
        )
        return inserted

    async def list_month(self, vet_id: int, year_month: str) -> List[StoredSlot]:
        first, last = month_bounds(year_month)
        return await self.repository.list_slots(vet_id, first, last)

    async def delete_month(self, vet_id: int, year_month: str) -> int:
        """Delete every slot dated inside ``year_month``; returns the count removed."""
        first, last = month_bounds(year_month)
        removed = await self.repository.delete_slots_in_range(vet_id, first, last)
        logger.info("vet %s: removed %d slots for %s", vet_id, removed, year_month)
        log_event("slots_deleted", {"vet_id": vet_id, "year_month": year_month, "removed": removed})
        return removed
