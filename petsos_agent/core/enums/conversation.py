"""
Conversation-related enums.
"""

from enum import Enum


class ConversationState(str, Enum):
    """Position of a user in the add-availability lifecycle."""

    IDLE = "idle"
    AWAITING_INPUT = "awaiting_input"
    AWAITING_CORRECTION = "awaiting_correction"


class ProposalAction(str, Enum):
    """Button actions carried back by the messaging transport."""

    CONFIRM = "confirm"
    EDIT = "edit"
    CANCEL = "cancel"
    CLEAR_CONFIRM = "clear_confirm"
    CLEAR_CANCEL = "clear_cancel"
