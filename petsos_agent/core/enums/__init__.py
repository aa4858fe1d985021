"""
Enums for the PetSOS schedule agent.
"""

from .slot import SlotType, SourceType
from .conversation import ConversationState, ProposalAction

__all__ = [
    "SlotType",
    "SourceType",
    "ConversationState",
    "ProposalAction",
]
