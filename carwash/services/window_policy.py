"""
Booking Window Policy.

Decides whether new registrations may be created right now.  Pure
functions over three explicit inputs: the settings row, the current local
time, and the optional automatic schedule.

Decision order (first match wins):

1. Manual close for the current (week, week-year): closed.
2. Manual open for the current (week, week-year): open.
3. Automatic schedule, when enabled: open from the opening weekday at the
   opening hour through the end of the closing weekday.
4. Closed.

Override years are ISO week-years, not calendar years, so the week of
2024-12-30 is week 1 of 2025.  Override pairs written with the calendar
year on the days where the two differ (up to three days either side of
1 January, e.g. week 1 stored as ``(1, 2024)`` on 2024-12-30) no longer
match and have to be set again from the admin screen.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from carwash.models.enums import WindowRule
from carwash.models.settings import AppSettings, AutoSchedule
from carwash.utils.calendar import week_key

__all__ = ["OPEN_RULES", "in_auto_window", "is_booking_open", "window_reason"]

OPEN_RULES: frozenset[WindowRule] = frozenset(
    {WindowRule.MANUAL_OPEN, WindowRule.AUTO_SCHEDULE}
)


def _matches(
    override_week: Optional[int],
    override_year: Optional[int],
    week: int,
    week_year: int,
) -> bool:
    if override_week is None or override_year is None:
        return False
    return int(override_week) == week and int(override_year) == week_year


def in_auto_window(now: datetime, schedule: AutoSchedule) -> bool:
    """``True`` when *now* (local time) falls inside the automatic window.

    Ignores ``schedule.enabled``; callers decide whether the schedule
    applies.  A closing weekday earlier than the opening weekday wraps
    over the week end (e.g. Saturday 10:00 through Monday).
    """
    day = now.weekday()
    start, end = schedule.open_weekday, schedule.close_weekday

    if start <= end:
        inside = start <= day <= end
    else:
        inside = day >= start or day <= end
    if not inside:
        return False

    if day == start:
        return now.hour >= schedule.open_hour
    return True


def window_reason(
    settings: Optional[AppSettings],
    now: datetime,
    schedule: Optional[AutoSchedule] = None,
) -> WindowRule:
    """Return the rule that decides the window state at *now*."""
    if settings is None:
        return WindowRule.DEFAULT_CLOSED

    week, week_year = week_key(now)

    if _matches(settings.manual_close_week, settings.manual_close_year, week, week_year):
        return WindowRule.MANUAL_CLOSE
    if _matches(settings.manual_open_week, settings.manual_open_year, week, week_year):
        return WindowRule.MANUAL_OPEN
    if schedule is not None and schedule.enabled and in_auto_window(now, schedule):
        return WindowRule.AUTO_SCHEDULE
    return WindowRule.DEFAULT_CLOSED


def is_booking_open(
    settings: Optional[AppSettings],
    now: datetime,
    schedule: Optional[AutoSchedule] = None,
) -> bool:
    """Whether new bookings are permitted at *now*."""
    return window_reason(settings, now, schedule) in OPEN_RULES
