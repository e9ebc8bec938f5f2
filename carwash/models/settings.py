"""
Booking Settings Models.

``AppSettings`` is the single row of the remote ``settings`` table and is
always passed explicitly to the policy functions.  ``AutoSchedule`` comes
from ``AppConfig`` and describes the optional weekly automatic window.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

SETTINGS_ROW_ID: int = 1


class AppSettings(BaseModel):
    """Global booking configuration controlled by administrators.

    Manual overrides are (week, ISO week-year) pairs.  Blank strings and
    ``0`` coming back from the store mean "not set".
    """

    weekly_capacity: int = Field(default=10, ge=0)
    manual_open_week: Optional[int] = Field(default=None, ge=1, le=53)
    manual_open_year: Optional[int] = None
    manual_close_week: Optional[int] = Field(default=None, ge=1, le=53)
    manual_close_year: Optional[int] = None
    login_image_url: Optional[str] = None

    @field_validator(
        "manual_open_week",
        "manual_open_year",
        "manual_close_week",
        "manual_close_year",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: Union[int, str, None]) -> Union[int, str, None]:
        if v in ("", 0, "0"):
            return None
        return v

    model_config = {"from_attributes": True}


class AutoSchedule(BaseModel):
    """Automatic weekly window.

    Weekdays follow ``datetime.weekday()`` (Monday = 0).  The window opens
    on ``open_weekday`` at ``open_hour`` local time and stays open through
    the whole of ``close_weekday``.
    """

    enabled: bool = False
    open_weekday: int = Field(default=3, ge=0, le=6)
    open_hour: int = Field(default=8, ge=0, le=23)
    close_weekday: int = Field(default=5, ge=0, le=6)
