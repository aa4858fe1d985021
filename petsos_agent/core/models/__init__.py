"""
Core data models for the PetSOS schedule agent.
"""

from .slot import Slot, SlotCandidate, StoredSlot, IdentityKey
from .owner import OwnerRef, Vet
from .session import PendingProposal, Button, Reply

__all__ = [
    "Slot",
    "SlotCandidate",
    "StoredSlot",
    "IdentityKey",
    "OwnerRef",
    "Vet",
    "PendingProposal",
    "Button",
    "Reply",
]
