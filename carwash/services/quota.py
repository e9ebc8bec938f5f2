"""
Quota Evaluator.

Read-side computation over already-fetched registrations: has this user
booked this week, has the user used this month's wash, how many weekly
slots remain, and therefore which state the dashboard shows.

The weekly key is (ISO week, ISO week-year); the monthly key is the
calendar (month, year).
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from carwash.models.enums import BookingState
from carwash.models.registration import Registration
from carwash.models.service_models import OverbookedWeek, QuotaSnapshot
from carwash.models.settings import AppSettings, AutoSchedule
from carwash.services.window_policy import OPEN_RULES, window_reason
from carwash.utils.calendar import week_key

__all__ = [
    "classify",
    "count_week",
    "evaluate_quota",
    "find_month_registration",
    "find_week_registration",
    "overbooked_weeks",
    "weekly_remaining",
]


def find_week_registration(
    registrations: Iterable[Registration],
    user_id: str,
    week: int,
    week_year: int,
) -> Optional[Registration]:
    return next(
        (r for r in registrations if r.user_id == user_id and r.in_week(week, week_year)),
        None,
    )


def find_month_registration(
    registrations: Iterable[Registration],
    user_id: str,
    month: int,
    year: int,
) -> Optional[Registration]:
    return next(
        (r for r in registrations if r.user_id == user_id and r.in_month(month, year)),
        None,
    )


def count_week(registrations: Iterable[Registration], week: int, week_year: int) -> int:
    return sum(1 for r in registrations if r.in_week(week, week_year))


def weekly_remaining(
    registrations: Iterable[Registration],
    settings: AppSettings,
    now: datetime,
) -> int:
    """``weekly_capacity`` minus the registrations in *now*'s week.

    Zero or negative means the week is full.
    """
    week, week_year = week_key(now)
    return settings.weekly_capacity - count_week(registrations, week, week_year)


def classify(
    has_week: bool,
    has_month: bool,
    remaining: int,
    window_open: bool,
) -> BookingState:
    """Apply the dashboard precedence to the four independent facts."""
    if has_week:
        return BookingState.ALREADY_REGISTERED
    if has_month:
        return BookingState.MONTHLY_CAPPED
    if remaining <= 0:
        return BookingState.WEEKLY_FULL
    if not window_open:
        return BookingState.WINDOW_CLOSED
    return BookingState.ELIGIBLE


def evaluate_quota(
    registrations: list[Registration],
    user_id: str,
    settings: AppSettings,
    now: datetime,
    schedule: Optional[AutoSchedule] = None,
) -> QuotaSnapshot:
    """Compute every quota fact for *user_id* at *now*."""
    week, week_year = week_key(now)
    this_week = find_week_registration(registrations, user_id, week, week_year)
    this_month = find_month_registration(registrations, user_id, now.month, now.year)
    weekly_count = count_week(registrations, week, week_year)
    rule = window_reason(settings, now, schedule)
    window_open = rule in OPEN_RULES

    return QuotaSnapshot(
        user_id=user_id,
        week_number=week,
        week_year=week_year,
        month=now.month,
        year=now.year,
        weekly_capacity=settings.weekly_capacity,
        weekly_count=weekly_count,
        window_open=window_open,
        window_rule=rule,
        registration_this_week=this_week,
        registration_this_month=this_month,
        state=classify(
            has_week=this_week is not None,
            has_month=this_month is not None,
            remaining=settings.weekly_capacity - weekly_count,
            window_open=window_open,
        ),
    )


def overbooked_weeks(
    registrations: Iterable[Registration],
    capacity: int,
) -> list[OverbookedWeek]:
    """Weeks holding more registrations than *capacity*, oldest first."""
    counts: dict[tuple[int, int], int] = {}
    for reg in registrations:
        key = (reg.week_year, reg.week_number)
        counts[key] = counts.get(key, 0) + 1

    return [
        OverbookedWeek(week_number=week, week_year=year, count=count, capacity=capacity)
        for (year, week), count in sorted(counts.items())
        if count > capacity
    ]
