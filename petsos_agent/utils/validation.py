"""
Validation utilities for extracted slots.
"""

import re
from typing import Any

from ..core.enums import SlotType
from ..core.models.slot import DATE_PATTERN, TIME_PATTERN
from .date import TimeNormalizer

_DATE_RE = re.compile(DATE_PATTERN)
_TIME_RE = re.compile(TIME_PATTERN)


class SlotValidator:
    """Schema and business-rule checks for a single normalized slot.

    Pure functions: no I/O, no coercion, no defaults.
    """

    @staticmethod
    def is_valid_format(date_str: Any, start_time: Any, end_time: Any) -> bool:
        """Date must be ``YYYY-MM-DD`` and both times exactly ``HH:mm``."""
        if not all(isinstance(v, str) for v in (date_str, start_time, end_time)):
            return False
        return bool(
            _DATE_RE.match(date_str)
            and _TIME_RE.match(start_time)
            and _TIME_RE.match(end_time)
        )

    @staticmethod
    def is_valid_time_range(start_time: str, end_time: str) -> bool:
        """End must be strictly later than start, compared in minutes since midnight."""
        return TimeNormalizer.to_minutes(end_time) > TimeNormalizer.to_minutes(start_time)

    @staticmethod
    def is_valid_type(slot_type: Any) -> bool:
        """Exactly one of the enumerated type values, case-sensitive."""
        if isinstance(slot_type, SlotType):
            return True
        return isinstance(slot_type, str) and slot_type in SlotType.values()

    @classmethod
    def validate(cls, date_str: Any, start_time: Any, end_time: Any, slot_type: Any) -> bool:
        """
        Accept or reject one normalized, rounded candidate.

        Returns:
            True if the candidate may become a Slot
        """
        if not cls.is_valid_format(date_str, start_time, end_time):
            return False
        if not cls.is_valid_time_range(start_time, end_time):
            return False
        return cls.is_valid_type(slot_type)
