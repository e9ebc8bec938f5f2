"""
Audit trail.

Every state change is written as one ``AUDIT`` log line whose payload is
an :class:`AuditEvent`.  Unknown actions or entity types fail validation
where the event is produced.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional, Union

from pydantic import BaseModel, Field

from carwash.logger import StructuredLogger

__all__ = ["AuditAction", "AuditEntity", "AuditEvent", "log_audit_event"]

DetailValue = Union[str, int, float, bool, None]


class AuditAction(StrEnum):
    BOOK = "BOOK"
    CANCEL = "CANCEL"
    UPDATE_SPOT = "UPDATE_SPOT"
    OPEN_WEEK = "OPEN_WEEK"
    CLOSE_WEEK = "CLOSE_WEEK"
    CLEAR_OVERRIDES = "CLEAR_OVERRIDES"
    SET_CAPACITY = "SET_CAPACITY"
    SET_LOGIN_IMAGE = "SET_LOGIN_IMAGE"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    RESET_PASSWORD = "RESET_PASSWORD"
    DELETE_USER = "DELETE_USER"
    UPDATE_PROFILE = "UPDATE_PROFILE"
    CHANGE_PASSWORD = "CHANGE_PASSWORD"
    MIGRATE_PASSWORD = "MIGRATE_PASSWORD"
    EXPORT = "EXPORT"


class AuditEntity(StrEnum):
    REGISTRATION = "Registration"
    SETTINGS = "Settings"
    USER = "User"


class AuditEvent(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: AuditAction
    entity_type: AuditEntity
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Validate and log one audit event, returning it.

    *user_id* is the actor; *entity_id* is the row that changed (``"1"``
    for the settings singleton).  *details* holds flat before/after
    values such as ``{"weekly_capacity": 12}``.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info("AUDIT: %s", event.model_dump_json(), extra={"event": "AUDIT"})
    return event
