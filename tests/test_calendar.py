from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from carwash.utils.calendar import (
    format_plate,
    local_now,
    month_year_label,
    week_key,
    week_number,
    week_year,
)


@pytest.mark.parametrize(
    "day, expected",
    [
        (date(2024, 1, 1), 1),
        (date(2024, 12, 30), 1),
        (date(2021, 1, 3), 53),
        (date(2020, 12, 31), 53),
        (date(2025, 3, 13), 11),
        (date(2026, 12, 31), 53),
    ],
)
def test_week_number_known_dates(day, expected):
    assert week_number(day) == expected


def test_week_number_matches_isocalendar_for_a_decade():
    day = date(2018, 1, 1)
    while day < date(2029, 1, 1):
        iso = day.isocalendar()
        assert week_key(day) == (iso[1], iso[0]), day
        day += timedelta(days=1)


def test_time_of_day_does_not_move_the_week():
    sunday_night = datetime(2025, 3, 16, 23, 59, 59)
    monday_morning = datetime(2025, 3, 17, 0, 0)
    assert week_number(sunday_night) == 11
    assert week_number(monday_morning) == 12


def test_week_year_across_new_year():
    assert week_year(date(2024, 12, 30)) == 2025
    assert week_year(date(2021, 1, 3)) == 2020
    assert week_year(date(2025, 6, 1)) == 2025


def test_month_year_label_is_portuguese():
    assert month_year_label(date(2025, 3, 13)) == "Março de 2025"
    assert month_year_label(datetime(2024, 12, 1, 9)) == "Dezembro de 2024"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("aa-00-bb", "AA00BB"),
        (" 12 AB 34 ", "12AB34"),
        ("AA00BB", "AA00BB"),
        ("", ""),
    ],
)
def test_format_plate(raw, expected):
    assert format_plate(raw) == expected


def test_local_now_is_timezone_aware():
    now = local_now("Europe/Lisbon")
    assert now.tzinfo == ZoneInfo("Europe/Lisbon")
