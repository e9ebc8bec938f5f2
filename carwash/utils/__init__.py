"""Shared utility functions.

Convenience re-exports so consumers can import directly from
``carwash.utils`` while full module imports remain supported.
"""

from carwash.utils.audit import AuditAction, AuditEvent, log_audit_event
from carwash.utils.calendar import (
    format_plate,
    local_now,
    month_year_label,
    week_key,
    week_number,
    week_year,
)
from carwash.utils.string_helpers import (
    denormalize_keys,
    normalize_keys,
    to_camel_case,
    to_snake_case,
)

__all__ = [
    "AuditAction",
    "AuditEvent",
    "denormalize_keys",
    "format_plate",
    "local_now",
    "log_audit_event",
    "month_year_label",
    "normalize_keys",
    "to_camel_case",
    "to_snake_case",
    "week_key",
    "week_number",
    "week_year",
]
