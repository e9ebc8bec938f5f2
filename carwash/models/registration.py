"""
Registration Model.

One booking of the shared weekly wash for one user's car.  ``user_name``
and ``car_details`` are snapshots taken at booking time so history keeps
reading correctly after the user or car is edited or deleted.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Registration(BaseModel):
    """A single weekly booking.

    ``year`` is the calendar year of ``date`` and keys the monthly quota.
    The weekly key is (``week_number``, ``week_year``), where
    ``week_year`` is derived below: ISO week 1 can start in late December
    and weeks 52/53 can run into early January.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    car_id: str
    user_name: str
    car_details: str
    date: datetime
    week_number: int = Field(ge=1, le=53)
    month: int = Field(ge=1, le=12)
    year: int
    parking_spot: Optional[str] = None

    @property
    def week_year(self) -> int:
        """ISO week-numbering year of the registration's week."""
        if self.week_number >= 52 and self.month == 1:
            return self.year - 1
        if self.week_number == 1 and self.month == 12:
            return self.year + 1
        return self.year

    def in_week(self, week: int, week_year: int) -> bool:
        return self.week_number == week and self.week_year == week_year

    def in_month(self, month: int, year: int) -> bool:
        return self.month == month and self.year == year

    model_config = {"from_attributes": True}
