"""
Booking Settings Service.

Administrative control of the booking window and weekly capacity.  The
settings row is always re-read from the store before a change is applied
so two administrators editing at once do not overwrite each other's
unrelated fields.

Every change is recorded as a structured audit event.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Union

from carwash.config import AppConfig
from carwash.database import StoreError, StoreTimeoutError
from carwash.logger import StructuredLogger
from carwash.models.enums import WindowRule
from carwash.models.service_models import OverbookedWeek, ServiceResult
from carwash.models.settings import AppSettings
from carwash.models.user import User
from carwash.repositories.registration_repository import RegistrationRepository
from carwash.repositories.settings_repository import SettingsRepository
from carwash.services.base_service import BaseService
from carwash.services.quota import overbooked_weeks
from carwash.services.window_policy import window_reason
from carwash.utils.audit import log_audit_event
from carwash.utils.calendar import week_key

SettingValue = Union[int, str, None]

STORE_UNAVAILABLE_MESSAGE: str = (
    "Erro ao conectar ao servidor. Verifique a sua ligação."
)
STORE_TIMEOUT_MESSAGE: str = (
    "O servidor não respondeu a tempo. Tente novamente."
)


def store_failure(exc: StoreError) -> ServiceResult:
    """Map a repository failure onto the standard result envelope."""
    if isinstance(exc, StoreTimeoutError):
        return ServiceResult(success=False, error=STORE_TIMEOUT_MESSAGE, status_code=504)
    return ServiceResult(success=False, error=STORE_UNAVAILABLE_MESSAGE, status_code=503)


def forbidden(action: str) -> ServiceResult:
    return ServiceResult(
        success=False,
        error=f"Apenas administradores podem {action}.",
        status_code=403,
    )


class SettingsService(BaseService):
    """Reads and administers the ``settings`` singleton.

    Parameters
    ----------
    repo:
        Settings repository.
    registration_repo:
        Used by :meth:`find_overbooked_weeks`.
    config:
        Supplies first-run defaults.
    logger:
        Structured logger instance.
    clock:
        Returns the current local time.
    """

    def __init__(
        self,
        repo: SettingsRepository,
        registration_repo: RegistrationRepository,
        config: AppConfig,
        logger: StructuredLogger,
        clock: Callable[[], datetime],
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._registration_repo = registration_repo
        self._config = config
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def defaults(self) -> AppSettings:
        """Settings used when the remote row does not exist yet."""
        return AppSettings(
            weekly_capacity=self._config.DEFAULT_WEEKLY_CAPACITY,
            login_image_url=self._config.DEFAULT_LOGIN_IMAGE_URL,
        )

    def fetch_settings(self) -> AppSettings:
        """Fresh read of the settings row, falling back to defaults.

        Raises:
            StoreError: When the store cannot be read.
        """
        settings = self._repo.get()
        return settings if settings is not None else self.defaults()

    def get_settings(self) -> ServiceResult[AppSettings]:
        try:
            return ServiceResult(success=True, data=self.fetch_settings())
        except StoreError as exc:
            return store_failure(exc)

    def current_window(
        self, now: Optional[datetime] = None,
    ) -> ServiceResult[WindowRule]:
        """Which rule decides this week's window; readable before login."""
        try:
            settings = self.fetch_settings()
        except StoreError as exc:
            return store_failure(exc)
        rule = window_reason(settings, now or self._clock(), self._config.auto_schedule)
        return ServiceResult(success=True, data=rule)

    def ensure_settings(self) -> ServiceResult[AppSettings]:
        """Persist the defaults on first run; return the effective settings."""
        try:
            existing = self._repo.get()
            if existing is not None:
                return ServiceResult(success=True, data=existing)
            created = self._repo.save(self.defaults())
        except StoreError as exc:
            return store_failure(exc)

        self._logger.info(
            "Settings row created with defaults (capacity %d).",
            created.weekly_capacity,
        )
        return ServiceResult(success=True, data=created, status_code=201)

    # ------------------------------------------------------------------
    # Window control
    # ------------------------------------------------------------------

    def open_current_week(
        self, current_user: User, now: Optional[datetime] = None,
    ) -> ServiceResult[AppSettings]:
        """Open bookings for the current week.

        Also lifts a manual close placed on the same week, otherwise the
        close rule would keep winning.
        """
        if not current_user.is_admin:
            return forbidden("abrir as marcações")

        week, week_year = week_key(now or self._clock())

        def _changes(current: AppSettings) -> dict[str, SettingValue]:
            changes: dict[str, SettingValue] = {
                "manual_open_week": week,
                "manual_open_year": week_year,
            }
            if (current.manual_close_week, current.manual_close_year) == (week, week_year):
                changes["manual_close_week"] = None
                changes["manual_close_year"] = None
            return changes

        return self._apply(_changes, current_user, action="OPEN_WEEK")

    def close_current_week(
        self, current_user: User, now: Optional[datetime] = None,
    ) -> ServiceResult[AppSettings]:
        """Lock bookings for the current week, overriding any open rule."""
        if not current_user.is_admin:
            return forbidden("fechar as marcações")

        week, week_year = week_key(now or self._clock())
        return self._apply(
            lambda _current: {"manual_close_week": week, "manual_close_year": week_year},
            current_user,
            action="CLOSE_WEEK",
        )

    def clear_overrides(self, current_user: User) -> ServiceResult[AppSettings]:
        """Remove both manual overrides."""
        if not current_user.is_admin:
            return forbidden("repor o calendário automático")

        return self._apply(
            lambda _current: {
                "manual_open_week": None,
                "manual_open_year": None,
                "manual_close_week": None,
                "manual_close_year": None,
            },
            current_user,
            action="CLEAR_OVERRIDES",
        )

    # ------------------------------------------------------------------
    # Capacity and cosmetics
    # ------------------------------------------------------------------

    def set_weekly_capacity(
        self, capacity: int, current_user: User,
    ) -> ServiceResult[AppSettings]:
        if not current_user.is_admin:
            return forbidden("alterar a capacidade semanal")
        if capacity < 1:
            return ServiceResult(
                success=False,
                error="A capacidade semanal deve ser pelo menos 1.",
                status_code=400,
            )

        return self._apply(
            lambda _current: {"weekly_capacity": capacity},
            current_user,
            action="SET_CAPACITY",
        )

    def set_login_image_url(
        self, url: str, current_user: User,
    ) -> ServiceResult[AppSettings]:
        if not current_user.is_admin:
            return forbidden("alterar a imagem de entrada")

        cleaned = url.strip()
        if cleaned and not cleaned.startswith(("https://", "http://")):
            return ServiceResult(
                success=False,
                error="O URL da imagem deve começar por http:// ou https://.",
                status_code=400,
            )

        return self._apply(
            lambda _current: {"login_image_url": cleaned or None},
            current_user,
            action="SET_LOGIN_IMAGE",
        )

    # ------------------------------------------------------------------
    # Over-capacity reconciliation
    # ------------------------------------------------------------------

    def find_overbooked_weeks(
        self, current_user: User,
    ) -> ServiceResult[list[OverbookedWeek]]:
        """Weeks holding more registrations than the current capacity.

        Capacity is enforced by counting rows before each write, so two
        simultaneous bookings can both pass the check.  This report is how
        administrators see the result.
        """
        if not current_user.is_admin:
            return forbidden("ver o relatório de excesso de capacidade")

        try:
            settings = self.fetch_settings()
            registrations = self._registration_repo.get_all()
        except StoreError as exc:
            return store_failure(exc)

        weeks = overbooked_weeks(registrations, settings.weekly_capacity)
        for item in weeks:
            self._logger.warning(
                "Week %02d/%d is over capacity: %d of %d.",
                item.week_number,
                item.week_year,
                item.count,
                item.capacity,
            )
        return ServiceResult(success=True, data=weeks)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _apply(
        self,
        changes_for: Callable[[AppSettings], dict[str, SettingValue]],
        current_user: User,
        *,
        action: str,
    ) -> ServiceResult[AppSettings]:
        """Re-read, patch, and save the settings row."""
        try:
            current = self.fetch_settings()
            changes = changes_for(current)
            updated = current.model_copy(update=changes)
            self._repo.save(updated)
        except StoreError as exc:
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type="Settings",
            entity_id="1",
            user_id=current_user.id,
            details={
                key: value if value is None else str(value)
                for key, value in changes.items()
            },
        )
        return ServiceResult(success=True, data=updated)
