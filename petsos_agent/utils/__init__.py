"""
Utility modules for the PetSOS schedule agent.
"""

from .date import DateNormalizer, TimeNormalizer, month_bounds, today_in_timezone
from .validation import SlotValidator

__all__ = [
    "DateNormalizer",
    "TimeNormalizer",
    "month_bounds",
    "today_in_timezone",
    "SlotValidator",
]
