from datetime import datetime

import pytest

from conftest import build_registration, build_user
from carwash.models.enums import BookingState, WindowRule
from carwash.models.settings import AppSettings
from carwash.services.quota import (
    classify,
    count_week,
    evaluate_quota,
    find_month_registration,
    find_week_registration,
    overbooked_weeks,
    weekly_remaining,
)

NOW = datetime(2025, 3, 13, 10, 0)
OPEN = AppSettings(weekly_capacity=3, manual_open_week=11, manual_open_year=2025)
CLOSED = AppSettings(weekly_capacity=3)


@pytest.fixture
def ana():
    return build_user()


def others(count, when=NOW):
    return [
        build_registration(build_user(email=f"colega{i}@empresa.pt"), when)
        for i in range(count)
    ]


@pytest.mark.parametrize(
    "has_week, has_month, remaining, window_open, expected",
    [
        (True, True, 0, False, BookingState.ALREADY_REGISTERED),
        (False, True, 0, False, BookingState.MONTHLY_CAPPED),
        (False, False, 0, True, BookingState.WEEKLY_FULL),
        (False, False, -2, False, BookingState.WEEKLY_FULL),
        (False, False, 1, False, BookingState.WINDOW_CLOSED),
        (False, False, 1, True, BookingState.ELIGIBLE),
    ],
)
def test_classify_precedence(has_week, has_month, remaining, window_open, expected):
    assert classify(has_week, has_month, remaining, window_open) == expected


def test_eligible_when_open_and_free(ana):
    snapshot = evaluate_quota(others(1), ana.id, OPEN, NOW)
    assert snapshot.state == BookingState.ELIGIBLE
    assert snapshot.window_rule == WindowRule.MANUAL_OPEN
    assert (snapshot.week_number, snapshot.week_year) == (11, 2025)
    assert snapshot.weekly_count == 1
    assert snapshot.weekly_remaining == 2


def test_registration_this_week_wins(ana):
    mine = build_registration(ana, datetime(2025, 3, 11, 9, 0))
    snapshot = evaluate_quota([mine] + others(5), ana.id, CLOSED, NOW)
    assert snapshot.state == BookingState.ALREADY_REGISTERED
    assert snapshot.registration_this_week == mine
    assert snapshot.has_registered_this_week


def test_earlier_wash_this_month_caps_the_user(ana):
    earlier = build_registration(ana, datetime(2025, 3, 5, 9, 0))  # week 10
    snapshot = evaluate_quota([earlier], ana.id, OPEN, NOW)
    assert snapshot.state == BookingState.MONTHLY_CAPPED
    assert snapshot.registration_this_week is None
    assert snapshot.registration_this_month == earlier
    assert snapshot.has_registered_this_month
    assert not snapshot.has_registered_this_week


def test_wash_last_month_does_not_cap(ana):
    february = build_registration(ana, datetime(2025, 2, 27, 9, 0))
    snapshot = evaluate_quota([february], ana.id, OPEN, NOW)
    assert snapshot.state == BookingState.ELIGIBLE


def test_full_week_beats_closed_window(ana):
    snapshot = evaluate_quota(others(3), ana.id, CLOSED, NOW)
    assert snapshot.state == BookingState.WEEKLY_FULL
    assert snapshot.is_full


def test_closed_window_with_free_slots(ana):
    snapshot = evaluate_quota(others(2), ana.id, CLOSED, NOW)
    assert snapshot.state == BookingState.WINDOW_CLOSED
    assert snapshot.window_open is False


def test_other_weeks_do_not_count():
    registrations = others(2, datetime(2025, 3, 6)) + others(1, NOW)
    assert count_week(registrations, 11, 2025) == 1
    assert weekly_remaining(registrations, OPEN, NOW) == 2


def test_remaining_can_go_negative():
    assert weekly_remaining(others(5), OPEN, NOW) == -2


def test_week_key_uses_the_iso_week_year(ana):
    # Booked on 30 Dec 2024, which is ISO week 1 of 2025.
    december = build_registration(ana, datetime(2024, 12, 30, 9, 0))
    assert december.week_year == 2025

    jan_2 = datetime(2025, 1, 2, 10, 0)
    snapshot = evaluate_quota([december], ana.id, CLOSED, jan_2)
    assert snapshot.state == BookingState.ALREADY_REGISTERED
    assert snapshot.registration_this_month is None


def test_same_week_number_a_year_earlier_is_ignored(ana):
    last_year = build_registration(ana, datetime(2024, 1, 2, 9, 0))  # week 1 of 2024
    snapshot = evaluate_quota([last_year], ana.id, CLOSED, datetime(2025, 1, 2, 10, 0))
    assert snapshot.weekly_count == 0
    assert snapshot.state == BookingState.WINDOW_CLOSED


def test_late_december_week_53_belongs_to_previous_year(ana):
    # 3 Jan 2021 is in ISO week 53 of 2020.
    registration = build_registration(ana, datetime(2021, 1, 3, 9, 0))
    assert registration.week_number == 53
    assert registration.week_year == 2020
    assert count_week([registration], 53, 2020) == 1


def test_overbooked_weeks_reports_only_excess():
    registrations = others(4, NOW) + others(2, datetime(2025, 3, 6)) + others(4, datetime(2025, 1, 2))
    weeks = overbooked_weeks(registrations, capacity=3)
    assert [(w.week_number, w.week_year, w.count) for w in weeks] == [(1, 2025, 4), (11, 2025, 4)]
    assert weeks[0].excess == 1


def test_week_and_month_lookups_split_at_the_iso_year(ana):
    # 30 Dec 2025 is in ISO week 1 of 2026 but counts for December 2025.
    mine = build_registration(ana, datetime(2025, 12, 30, 9, 0))

    assert find_week_registration([mine], ana.id, 1, 2026) is mine
    assert find_week_registration([mine], ana.id, 1, 2025) is None
    assert find_month_registration([mine], ana.id, 12, 2025) is mine
    assert find_month_registration([mine], ana.id, 1, 2026) is None
    assert find_month_registration([mine], "someone-else", 12, 2025) is None
