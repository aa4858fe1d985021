"""
Persistent storage service module.
"""

from .repository import SlotRepository
from .reconciliation import ReconciliationService

__all__ = ["SlotRepository", "ReconciliationService"]
