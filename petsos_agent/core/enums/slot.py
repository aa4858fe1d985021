"""
Slot-related enums.
"""

from enum import Enum


class SlotType(str, Enum):
    """Availability category of a slot."""

    URGENT = "URGENT"  # short triage consultation
    VP = "VP"  # extended / specialist consultation

    @classmethod
    def values(cls) -> frozenset:
        return frozenset(member.value for member in cls)


class SourceType(str, Enum):
    """How the availability statement reached us."""

    VOICE = "voice"
    TEXT = "text"
