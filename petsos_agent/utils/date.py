"""
Date and time normalization utilities.

Every "today" is resolved in the single operating timezone from settings,
never in a per-user zone, so all users share the same day boundary.
"""

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple
import pytz
from dateparser import parse as parse_date

from ..config import get_settings

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_HH_MM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_BARE_HOUR_RE = re.compile(r"^\d{1,2}$")

# offset in days from today
RELATIVE_DAYS = {
    # Ukrainian
    "сьогодні": 0,
    "завтра": 1,
    "післязавтра": 2,
    "після завтра": 2,
    # Russian
    "сегодня": 0,
    "послезавтра": 2,
    "после завтра": 2,
    # English
    "today": 0,
    "tomorrow": 1,
    "after tomorrow": 2,
    "day after tomorrow": 2,
    "the day after tomorrow": 2,
}

# Python weekday numbers: Monday == 0
WEEKDAY_NAMES = {
    # Ukrainian, nominative and "on <day>" forms
    "понеділок": 0, "у понеділок": 0, "в понеділок": 0,
    "вівторок": 1, "у вівторок": 1, "в вівторок": 1,
    "середа": 2, "у середу": 2, "в середу": 2, "середу": 2,
    "четвер": 3, "у четвер": 3, "в четвер": 3,
    "п'ятниця": 4, "пʼятниця": 4, "пятниця": 4,
    "у п'ятницю": 4, "у пʼятницю": 4, "у пятницю": 4,
    "в п'ятницю": 4, "в пʼятницю": 4, "в пятницю": 4,
    "п'ятницю": 4, "пятницю": 4,
    "субота": 5, "у суботу": 5, "в суботу": 5, "суботу": 5,
    "неділя": 6, "у неділю": 6, "в неділю": 6, "неділю": 6,
    # Russian
    "понедельник": 0, "в понедельник": 0,
    "вторник": 1, "во вторник": 1,
    "среда": 2, "в среду": 2, "среду": 2,
    "четверг": 3, "в четверг": 3,
    "пятница": 4, "в пятницу": 4, "пятницу": 4,
    "суббота": 5, "в субботу": 5, "субботу": 5,
    "воскресенье": 6, "в воскресенье": 6,
    # English
    "monday": 0, "on monday": 0, "mon": 0,
    "tuesday": 1, "on tuesday": 1, "tue": 1, "tues": 1,
    "wednesday": 2, "on wednesday": 2, "wed": 2,
    "thursday": 3, "on thursday": 3, "thu": 3, "thurs": 3,
    "friday": 4, "on friday": 4, "fri": 4,
    "saturday": 5, "on saturday": 5, "sat": 5,
    "sunday": 6, "on sunday": 6, "sun": 6,
}


def today_in_timezone(tz_name: str) -> date:
    """Current civil date in ``tz_name``."""
    return datetime.now(pytz.timezone(tz_name)).date()


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence of ``weekday`` strictly after ``today``.

    A weekday equal to today's rolls forward a full week.
    """
    days_ahead = (weekday - today.weekday()) % 7
    return today + timedelta(days=days_ahead or 7)


class DateNormalizer:
    """Resolve natural-language date expressions to ``YYYY-MM-DD``."""

    def __init__(self, timezone: Optional[str] = None, window_days: Optional[int] = None):
        settings = get_settings()
        self.timezone = timezone or settings.timezone
        self.window_days = window_days if window_days is not None else settings.planning_window_days

    def today(self) -> date:
        return today_in_timezone(self.timezone)

    def normalize_date(self, text: Any, today: Optional[date] = None) -> Optional[str]:
        """
        Normalize a date expression against ``today``.

        Args:
            text: Relative word, weekday name, ISO date or other parseable date
            today: Current local date; defaults to today in the operating timezone

        Returns:
            Date in YYYY-MM-DD format or None if nothing matches
        """
        if not isinstance(text, str):
            return None
        today = today or self.today()
        lowered = " ".join(text.lower().split()).replace("’", "'")
        if not lowered:
            return None

        if lowered in RELATIVE_DAYS:
            return format_date(today + timedelta(days=RELATIVE_DAYS[lowered]))

        if lowered in WEEKDAY_NAMES:
            return format_date(next_weekday(today, WEEKDAY_NAMES[lowered]))

        stripped = text.strip()
        if ISO_DATE_RE.match(stripped):
            return stripped

        return self._parse_fallback(stripped, today)

    def _parse_fallback(self, text: str, today: date) -> Optional[str]:
        """Generic parser for other absolute date strings."""
        try:
            parsed = parse_date(
                text,
                languages=["uk", "ru", "en"],
                settings={
                    "RELATIVE_BASE": datetime(today.year, today.month, today.day),
                    "PREFER_DATES_FROM": "future",
                },
            )
        except Exception:
            return None
        if not parsed:
            return None
        return format_date(parsed.date())

    def is_within_planning_window(self, date_str: str, today: Optional[date] = None) -> bool:
        """True iff ``today <= date <= today + window_days`` (both ends inclusive)."""
        try:
            value = datetime.strptime(date_str, "%Y-%m-%d").date()
        except (TypeError, ValueError):
            return False
        today = today or self.today()
        return today <= value <= today + timedelta(days=self.window_days)

    def current_year_month(self, today: Optional[date] = None) -> str:
        today = today or self.today()
        return f"{today.year:04d}-{today.month:02d}"

    def parse_year_month(self, value: Optional[str], today: Optional[date] = None) -> str:
        """Return ``value`` if it is a valid ``YYYY-MM``, else the current month."""
        if value:
            match = YEAR_MONTH_RE.match(value.strip())
            if match and 1 <= int(match.group(2)) <= 12:
                return value.strip()
        return self.current_year_month(today)


def month_bounds(year_month: str) -> Tuple[str, str]:
    """Inclusive first and last calendar day of a ``YYYY-MM`` month."""
    match = YEAR_MONTH_RE.match(year_month or "")
    if not match:
        raise ValueError(f"Invalid year-month: {year_month!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in {year_month!r}")
    last_day = calendar.monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last_day:02d}"


class TimeNormalizer:
    """Wall-clock time normalization and hourly-grid rounding."""

    @staticmethod
    def normalize_time(text: Any) -> Optional[str]:
        """
        Accept ``HH:mm``, ``H:mm`` or a bare hour ``H``/``HH``.

        Returns:
            Time in HH:mm format or None if the value is rejected
        """
        if not isinstance(text, str):
            return None
        trimmed = text.strip()

        match = _HH_MM_RE.match(trimmed)
        if match:
            hours, minutes = int(match.group(1)), int(match.group(2))
            if hours <= 23 and minutes <= 59:
                return f"{hours:02d}:{minutes:02d}"
            return None

        if _BARE_HOUR_RE.match(trimmed):
            hours = int(trimmed)
            if 0 <= hours <= 23:
                return f"{hours:02d}:00"

        return None

    @staticmethod
    def round_start_down(time_str: str) -> str:
        """Round down to the top of the hour."""
        hours = int(time_str.split(":")[0])
        return f"{hours:02d}:00"

    @staticmethod
    def round_end_up(time_str: str) -> str:
        """Round up to the next full hour, never past 23:00."""
        hours, minutes = (int(part) for part in time_str.split(":"))
        if minutes > 0:
            hours += 1
        return f"{min(hours, 23):02d}:00"

    @staticmethod
    def to_minutes(time_str: str) -> int:
        hours, minutes = (int(part) for part in time_str.split(":"))
        return hours * 60 + minutes
