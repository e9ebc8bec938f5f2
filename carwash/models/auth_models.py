"""
Authentication result models shared by ``AuthService`` and the login view.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from carwash.models.user import User


class AuthErrorCode(StrEnum):
    INVALID_CREDENTIALS = "invalid_credentials"
    NETWORK_ERROR = "network_error"
    TIMEOUT_ERROR = "timeout_error"
    RATE_LIMITED = "rate_limited"
    VALIDATION_ERROR = "validation_error"


class ValidationResult(BaseModel):
    """Outcome of one local field check; no store call is involved."""

    is_valid: bool
    error_message: Optional[str] = None


class AuthResult(BaseModel):
    """Login or password-change outcome.

    On success ``user`` is the signed-in account without credential
    fields.  A ``RATE_LIMITED`` failure carries ``retry_after_s``.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    user: Optional[User] = None
    retry_after_s: Optional[int] = None

    @classmethod
    def failed(
        cls, code: AuthErrorCode, message: str, *, retry_after_s: Optional[int] = None,
    ) -> "AuthResult":
        return cls(
            success=False, error_code=code, error_message=message, retry_after_s=retry_after_s,
        )


class LoginAttempts(BaseModel):
    """Failed-login counter for one email address."""

    failures: int = 0
    locked_until: Optional[datetime] = None

    def seconds_left(self, now: datetime) -> int:
        """Whole seconds of lockout remaining at *now*, rounded up; 0 if none."""
        if self.locked_until is None or now >= self.locked_until:
            return 0
        return math.ceil((self.locked_until - now).total_seconds())
