"""
Shared Enumerations for the Booking Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so rows coming back from the remote store (``role == 'admin'``)
validate without any mapping.
"""

from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    """Valid user roles in the system."""

    ADMIN = "admin"
    USER = "user"


class BookingState(StrEnum):
    """What the booking dashboard shows a user for the current week.

    Values double as the status codes displayed in the UI footer.
    """

    ALREADY_REGISTERED = "SLOT_CONFIRMED"
    MONTHLY_CAPPED = "MONTHLY_QUOTA_EXHAUSTED"
    WEEKLY_FULL = "WEEKLY_SLOTS_FULL"
    WINDOW_CLOSED = "AWAITING_ADMIN_ACTION"
    ELIGIBLE = "REGISTRATIONS_OPEN"


class WindowRule(StrEnum):
    """Which rule decided the booking window state."""

    MANUAL_CLOSE = "MANUAL_CLOSE"
    MANUAL_OPEN = "MANUAL_OPEN"
    AUTO_SCHEDULE = "AUTO_SCHEDULE"
    DEFAULT_CLOSED = "DEFAULT_CLOSED"


class LocationType(StrEnum):
    """Where the car is parked on wash day."""

    GARAGE = "GARAGE"
    OUTDOOR = "OUTDOOR"

    @property
    def label(self) -> str:
        return _LOCATION_LABELS[self]


_LOCATION_LABELS: dict[str, str] = {
    LocationType.GARAGE: "Garagem",
    LocationType.OUTDOOR: "Exterior",
}


class ExportFormat(StrEnum):
    """Supported weekly export formats."""

    CSV = "csv"
    XLSX = "xlsx"
