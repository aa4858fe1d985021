from datetime import date

import pytest

from petsos_agent.utils.date import DateNormalizer, TimeNormalizer, month_bounds, next_weekday

SUNDAY = date(2025, 6, 1)
WEDNESDAY = date(2025, 6, 4)


@pytest.fixture
def normalizer():
    return DateNormalizer(timezone="Europe/Kyiv", window_days=31)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("сьогодні", "2025-06-01"),
        ("завтра", "2025-06-02"),
        ("післязавтра", "2025-06-03"),
        ("Tomorrow", "2025-06-02"),
        ("послезавтра", "2025-06-03"),
    ],
)
def test_relative_words(normalizer, text, expected):
    assert normalizer.normalize_date(text, SUNDAY) == expected


def test_weekday_resolves_to_next_occurrence(normalizer):
    assert normalizer.normalize_date("понеділок", WEDNESDAY) == "2025-06-09"
    assert normalizer.normalize_date("Monday", WEDNESDAY) == "2025-06-09"
    assert normalizer.normalize_date("у п'ятницю", WEDNESDAY) == "2025-06-06"


def test_same_weekday_rolls_a_full_week(normalizer):
    assert normalizer.normalize_date("середа", WEDNESDAY) == "2025-06-11"
    assert next_weekday(WEDNESDAY, 2) == date(2025, 6, 11)


def test_iso_date_passes_through(normalizer):
    assert normalizer.normalize_date("2025-06-20", SUNDAY) == "2025-06-20"


def test_non_string_date_rejected(normalizer):
    assert normalizer.normalize_date(None, SUNDAY) is None
    assert normalizer.normalize_date(20250620, SUNDAY) is None
    assert normalizer.normalize_date("   ", SUNDAY) is None


def test_planning_window_is_inclusive(normalizer):
    assert normalizer.is_within_planning_window("2025-06-01", SUNDAY)
    assert normalizer.is_within_planning_window("2025-07-02", SUNDAY)
    assert not normalizer.is_within_planning_window("2025-07-03", SUNDAY)
    assert not normalizer.is_within_planning_window("2025-05-31", SUNDAY)
    assert not normalizer.is_within_planning_window("2025-02-30", SUNDAY)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("9", "09:00"),
        ("09", "09:00"),
        ("9:30", "09:30"),
        ("14:05", "14:05"),
        (" 7:00 ", "07:00"),
        ("24", None),
        ("25:00", None),
        ("10:75", None),
        ("10.30", None),
        ("noon", None),
        (10, None),
    ],
)
def test_normalize_time(text, expected):
    assert TimeNormalizer.normalize_time(text) == expected


def test_rounding_to_hourly_grid():
    assert TimeNormalizer.round_start_down("10:30") == "10:00"
    assert TimeNormalizer.round_start_down("10:00") == "10:00"
    assert TimeNormalizer.round_end_up("13:05") == "14:00"
    assert TimeNormalizer.round_end_up("13:00") == "13:00"
    assert TimeNormalizer.round_end_up("23:30") == "23:00"


def test_month_bounds():
    assert month_bounds("2025-02") == ("2025-02-01", "2025-02-28")
    assert month_bounds("2024-02") == ("2024-02-01", "2024-02-29")
    assert month_bounds("2025-12") == ("2025-12-01", "2025-12-31")
    with pytest.raises(ValueError):
        month_bounds("2025-13")
    with pytest.raises(ValueError):
        month_bounds("June")


def test_parse_year_month_defaults_to_current(normalizer):
    assert normalizer.parse_year_month("2025-02", SUNDAY) == "2025-02"
    assert normalizer.parse_year_month(None, SUNDAY) == "2025-06"
    assert normalizer.parse_year_month("2025-13", SUNDAY) == "2025-06"
    assert normalizer.parse_year_month("garbage", SUNDAY) == "2025-06"
