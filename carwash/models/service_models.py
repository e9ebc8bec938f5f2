"""
Service Layer Data Transfer Objects.

Pydantic models for validated input/output at service boundaries.
Replaces raw dict passing between layers.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from carwash.models.enums import BookingState, LocationType, WindowRule
from carwash.models.registration import Registration

T = TypeVar("T")

__all__ = [
    "BookingErrorCode",
    "BookingRequest",
    "BookingResult",
    "ExportFile",
    "OverbookedWeek",
    "QuotaSnapshot",
    "ServiceResult",
]


# ---------------------------------------------------------------------------
# Quota evaluation
# ---------------------------------------------------------------------------

class QuotaSnapshot(BaseModel):
    """Read-side facts about one user and the current week.

    Produced by ``evaluate_quota`` from already-fetched collections.
    ``state`` applies the dashboard precedence: already registered,
    monthly cap, weekly capacity, window, eligible.
    """

    user_id: str
    week_number: int
    week_year: int
    month: int
    year: int
    weekly_capacity: int
    weekly_count: int
    window_open: bool
    window_rule: WindowRule
    registration_this_week: Optional[Registration] = None
    registration_this_month: Optional[Registration] = None
    state: BookingState

    @property
    def weekly_remaining(self) -> int:
        return self.weekly_capacity - self.weekly_count

    @property
    def is_full(self) -> bool:
        return self.weekly_remaining <= 0

    @property
    def has_registered_this_week(self) -> bool:
        return self.registration_this_week is not None

    @property
    def has_registered_this_month(self) -> bool:
        return self.registration_this_month is not None


class OverbookedWeek(BaseModel):
    """A (week, week-year) holding more registrations than the capacity."""

    week_number: int
    week_year: int
    count: int
    capacity: int

    @property
    def excess(self) -> int:
        return self.count - self.capacity


# ---------------------------------------------------------------------------
# Registration transaction
# ---------------------------------------------------------------------------

class BookingRequest(BaseModel):
    """What the booking form submits.

    ``car_id`` and ``location_type`` may be empty here; the transaction
    rejects them locally before touching the store.
    """

    car_id: Optional[str] = None
    location_type: Optional[LocationType] = None
    parking_spot: str = ""

    def spot_text(self) -> str:
        """Stored ``parking_spot`` text, e.g. ``Garagem: Lugar 102, Piso -2``."""
        detail = self.parking_spot.strip()
        if self.location_type is None:
            return detail
        if not detail:
            return self.location_type.label
        return f"{self.location_type.label}: {detail}"


class BookingErrorCode(StrEnum):
    """Why a booking attempt did not produce a registration."""

    VALIDATION_ERROR = "validation_error"
    ALREADY_REGISTERED = "already_registered"
    MONTHLY_CAPPED = "monthly_capped"
    WEEKLY_FULL = "weekly_full"
    WINDOW_CLOSED = "window_closed"
    STORE_ERROR = "store_error"
    TIMEOUT_ERROR = "timeout_error"


class BookingResult(BaseModel):
    """Outcome of ``BookingService.submit_registration``.

    On failure ``snapshot`` carries the freshly fetched state (when the
    fetch itself succeeded) so the caller can re-render.  ``overbooked``
    is set when the post-write check finds the week above capacity.
    """

    success: bool
    registration: Optional[Registration] = None
    snapshot: Optional[QuotaSnapshot] = None
    error_code: Optional[BookingErrorCode] = None
    error_message: Optional[str] = None
    overbooked: bool = False


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    All service methods return this, providing a consistent contract
    for the view layer.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200


class ExportFile(BaseModel):
    """A generated download: file name, raw bytes and media type."""

    filename: str
    content: bytes
    media_type: str
