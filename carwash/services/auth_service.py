"""
Authentication Service.

Login, logout, password change and the per-email login throttle.
Accounts live in the ``users`` table; a row is fetched by normalised
email and checked by :class:`CredentialVerifier`.  Every method returns
an ``AuthResult`` or ``ValidationResult``; store exceptions never reach
the login view.
"""

from __future__ import annotations

import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from carwash.auth import SessionManager
from carwash.database import StoreError, StoreTimeoutError
from carwash.logger import StructuredLogger
from carwash.models.auth_models import (
    AuthErrorCode,
    AuthResult,
    LoginAttempts,
    ValidationResult,
)
from carwash.models.user import User
from carwash.repositories.user_repository import UserRepository
from carwash.services.credentials import CredentialVerifier
from carwash.utils.audit import log_audit_event

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# (check, message) pairs, evaluated in order; the first failure is reported.
_PASSWORD_RULES: tuple[tuple[Callable[[str], object], str], ...] = (
    (lambda pw: len(pw) >= 8, "A palavra-passe deve ter pelo menos 8 caracteres."),
    (re.compile(r"[A-Z]").search, "A palavra-passe deve conter pelo menos uma letra maiúscula."),
    (re.compile(r"[a-z]").search, "A palavra-passe deve conter pelo menos uma letra minúscula."),
    (re.compile(r"\d").search, "A palavra-passe deve conter pelo menos um algarismo."),
)

MAX_FAILED_ATTEMPTS = 3
LOCKOUT = timedelta(seconds=30)

INVALID_CREDENTIALS_MESSAGE = "Credenciais inválidas. Tente novamente."
NETWORK_ERROR_MESSAGE = "Erro ao conectar ao servidor. Verifique a sua ligação."
TIMEOUT_MESSAGE = "O servidor não respondeu a tempo. Tente novamente."


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class LoginThrottle:
    """Per-email failure counter with a temporary lockout.

    Lives in memory only, so a restart lifts every lockout.
    """

    def __init__(
        self,
        max_failures: int = MAX_FAILED_ATTEMPTS,
        lockout: timedelta = LOCKOUT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._max_failures = max_failures
        self._lockout = lockout
        self._clock = clock
        self._attempts: dict[str, LoginAttempts] = {}
        self._lock = threading.Lock()

    def seconds_left(self, email: str) -> int:
        with self._lock:
            attempts = self._attempts.get(email)
            if attempts is None or attempts.locked_until is None:
                return 0
            remaining = attempts.seconds_left(self._clock())
            if remaining == 0:
                del self._attempts[email]
            return remaining

    def record_failure(self, email: str) -> bool:
        """Count a failure; ``True`` when this one engaged the lockout."""
        with self._lock:
            attempts = self._attempts.setdefault(email, LoginAttempts())
            attempts.failures += 1
            if attempts.failures < self._max_failures:
                return False
            attempts.locked_until = self._clock() + self._lockout
            return True

    def reset(self, email: str) -> None:
        with self._lock:
            self._attempts.pop(email, None)


class AuthService:
    """Authenticates staff accounts and owns the session lifecycle.

    Parameters
    ----------
    user_repo:
        Data access for the ``users`` table.
    session:
        Receives the signed-in user.
    verifier:
        Password hashing and verification.
    logger:
        Structured logger instance.
    throttle:
        Login throttle; a fresh in-memory one by default.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        session: SessionManager,
        verifier: CredentialVerifier,
        logger: StructuredLogger,
        throttle: Optional[LoginThrottle] = None,
    ) -> None:
        self._user_repo = user_repo
        self._session = session
        self._verifier = verifier
        self._logger = logger
        self._throttle = throttle or LoginThrottle()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        email = email.strip()
        if not email:
            return ValidationResult(is_valid=False, error_message="O email é obrigatório.")
        if not _EMAIL_RE.match(email):
            return ValidationResult(is_valid=False, error_message="Introduza um email válido.")
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_password(password: str) -> ValidationResult:
        """At least 8 characters with an uppercase letter, a lowercase
        letter and a digit."""
        for check, message in _PASSWORD_RULES:
            if not check(password):
                return ValidationResult(is_valid=False, error_message=message)
        return ValidationResult(is_valid=True)

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    def check_rate_limit(self, email: str) -> tuple[bool, int]:
        """``(locked, seconds_left)`` for a normalised *email*."""
        remaining = self._throttle.seconds_left(email)
        return remaining > 0, remaining

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Check *password* for *email* and start a session.

        A row still holding a legacy plaintext password is re-saved with
        a salted hash right after a successful check.
        """
        email = self.normalize_email(email)
        if not email or not password:
            return AuthResult.failed(
                AuthErrorCode.VALIDATION_ERROR, "Preencha o email e a palavra-passe.",
            )

        locked, remaining = self.check_rate_limit(email)
        if locked:
            return AuthResult.failed(
                AuthErrorCode.RATE_LIMITED,
                f"Demasiadas tentativas falhadas. Aguarde {remaining} segundos.",
                retry_after_s=remaining,
            )

        try:
            user = self._user_repo.get_by_email(email)
        except StoreError as exc:
            return self._store_failure(exc, "login")

        if user is None or not self._verifier.verify(user, password):
            self._logger.warning("Login failed for %s.", email, extra={"event": "LOGIN_FAILED"})
            if self._throttle.record_failure(email):
                self._logger.warning(
                    "Login locked for %s for %ds.", email, int(LOCKOUT.total_seconds()),
                )
            return AuthResult.failed(
                AuthErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE,
            )

        if self._verifier.needs_migration(user):
            self._migrate_legacy_password(user, password)

        public = self._without_secrets(user)
        self._session.set_current_user(public)
        self._throttle.reset(email)
        self._logger.info(
            "Signed in: %s (%s)", user.email, user.role,
            extra={"event": "LOGIN", "user_id": user.id},
        )
        return AuthResult(success=True, user=public)

    def logout(self) -> None:
        if not self._session.is_authenticated:
            return
        user = self._session.get_current_user()
        self._session.clear()
        self._logger.info(
            "Signed out: %s", user.email, extra={"event": "LOGOUT", "user_id": user.id},
        )

    # ------------------------------------------------------------------
    # Password change
    # ------------------------------------------------------------------

    def change_password(self, current_password: str, new_password: str) -> AuthResult:
        """Re-verify the signed-in user's password, then replace it."""
        if not self._session.is_authenticated:
            return AuthResult.failed(
                AuthErrorCode.INVALID_CREDENTIALS, "Inicie sessão para alterar a palavra-passe.",
            )

        policy = self.validate_password(new_password)
        if not policy.is_valid:
            return AuthResult.failed(AuthErrorCode.VALIDATION_ERROR, policy.error_message or "")

        signed_in = self._session.get_current_user()
        try:
            user = self._user_repo.get_by_id(signed_in.id)
        except StoreError as exc:
            return self._store_failure(exc, "change_password")

        if user is None or not self._verifier.verify(user, current_password):
            self._throttle.record_failure(signed_in.email)
            return AuthResult.failed(
                AuthErrorCode.INVALID_CREDENTIALS, "A palavra-passe atual está incorreta.",
            )

        try:
            self._user_repo.upsert(self._with_password(user, new_password))
        except StoreError as exc:
            return self._store_failure(exc, "change_password")

        log_audit_event(
            logger=self._logger,
            action="CHANGE_PASSWORD",
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
        )
        return AuthResult(success=True, user=self._without_secrets(user))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _migrate_legacy_password(self, user: User, password: str) -> None:
        """Best effort: a failed write leaves the row for the next login."""
        try:
            self._user_repo.upsert(self._with_password(user, password))
        except StoreError as exc:
            self._logger.warning("Password migration for %s failed: %s", user.email, exc)
            return
        log_audit_event(
            logger=self._logger,
            action="MIGRATE_PASSWORD",
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
        )

    def _with_password(self, user: User, password: str) -> User:
        pw_hash, pw_salt = self._verifier.hash_password(password)
        return user.model_copy(
            update={"password_hash": pw_hash, "password_salt": pw_salt, "password": None},
        )

    @staticmethod
    def _without_secrets(user: User) -> User:
        return user.model_copy(
            update={"password_hash": None, "password_salt": None, "password": None},
        )

    def _store_failure(self, exc: StoreError, operation: str) -> AuthResult:
        self._logger.warning(
            "Store error during %s: %s", operation, exc, extra={"event": "AUTH_STORE_ERROR"},
        )
        if isinstance(exc, StoreTimeoutError):
            return AuthResult.failed(AuthErrorCode.TIMEOUT_ERROR, TIMEOUT_MESSAGE)
        return AuthResult.failed(AuthErrorCode.NETWORK_ERROR, NETWORK_ERROR_MESSAGE)
