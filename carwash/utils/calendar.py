"""
Week / Calendar Helpers.

ISO-8601 week arithmetic used by the booking window and the quota rules.
Only the calendar date of an input matters; time of day never shifts a
week boundary.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Union
from zoneinfo import ZoneInfo

__all__ = [
    "format_plate",
    "local_now",
    "month_year_label",
    "week_key",
    "week_number",
    "week_year",
]

DateLike = Union[date, datetime]

_MONTHS_PT: tuple[str, ...] = (
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
)

_RE_PLATE_UNSAFE = re.compile(r"[^A-Z0-9]")


def _as_date(moment: DateLike) -> date:
    # datetime is a subclass of date, so check it first.
    if isinstance(moment, datetime):
        return moment.date()
    return moment


def _nearest_thursday(day: date) -> date:
    """Thursday of the Monday–Sunday week containing *day*."""
    return day + timedelta(days=3 - day.weekday())


def week_number(moment: DateLike) -> int:
    """ISO-8601 week number (1..53) of *moment*.

    Week 1 is the week holding the year's first Thursday, so the number is
    the ordinal distance of this week's Thursday from January 1st of the
    Thursday's own year, in whole weeks rounded up::

        week_number(date(2024, 1, 1))   -> 1
        week_number(date(2024, 12, 30)) -> 1   # week 1 of 2025
        week_number(date(2021, 1, 3))   -> 53  # last week of 2020
    """
    thursday = _nearest_thursday(_as_date(moment))
    year_start = date(thursday.year, 1, 1)
    return math.ceil(((thursday - year_start).days + 1) / 7)


def week_year(moment: DateLike) -> int:
    """ISO week-numbering year: the year that owns *moment*'s week."""
    return _nearest_thursday(_as_date(moment)).year


def week_key(moment: DateLike) -> tuple[int, int]:
    """``(week_number, week_year)`` pair identifying *moment*'s week."""
    return week_number(moment), week_year(moment)


def month_year_label(moment: DateLike) -> str:
    """Portuguese month label, e.g. ``"Março de 2025"``."""
    day = _as_date(moment)
    return f"{_MONTHS_PT[day.month - 1]} de {day.year}"


def format_plate(plate: str) -> str:
    """Normalise a licence plate: uppercase, letters and digits only."""
    return _RE_PLATE_UNSAFE.sub("", plate.upper())


def local_now(tz_name: str) -> datetime:
    """Timezone-aware current time in the configured business timezone."""
    return datetime.now(ZoneInfo(tz_name))
