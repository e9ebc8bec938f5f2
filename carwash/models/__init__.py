"""
Data Models Package.

Re-exports all Pydantic models:
    from carwash.models import User, Car, Registration, AppSettings
    from carwash.models import UserRole, BookingState
"""

from carwash.models.enums import (
    BookingState,
    ExportFormat,
    LocationType,
    UserRole,
    WindowRule,
)
from carwash.models.registration import Registration
from carwash.models.service_models import (
    BookingErrorCode,
    BookingRequest,
    BookingResult,
    ExportFile,
    OverbookedWeek,
    QuotaSnapshot,
    ServiceResult,
)
from carwash.models.settings import AppSettings, AutoSchedule
from carwash.models.user import Car, User

__all__ = [
    "AppSettings",
    "AutoSchedule",
    "BookingErrorCode",
    "BookingRequest",
    "BookingResult",
    "ExportFile",
    "BookingState",
    "Car",
    "ExportFormat",
    "LocationType",
    "OverbookedWeek",
    "QuotaSnapshot",
    "Registration",
    "ServiceResult",
    "User",
    "UserRole",
    "WindowRule",
]
