"""
Booking Service (registration transaction).

The write path that turns a booking intent into a stored registration:

1. Validate the form locally (car selected and owned, location chosen).
2. Re-read registrations and settings from the store.
3. Re-evaluate the quota on that fresh data and refuse when blocked.
4. Upsert the new registration.
5. Re-count the week and flag it when concurrent writers overbooked it.

Capacity is a derived count, not an atomic guard, so step 5 is the only
protection against two sessions passing step 3 at the same time.

Also serves the read side of the booking dashboard, cancellation,
parking spot edits and the history list.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from carwash.database import StoreError, StoreTimeoutError
from carwash.logger import StructuredLogger
from carwash.models.enums import BookingState
from carwash.models.registration import Registration
from carwash.models.service_models import (
    BookingErrorCode,
    BookingRequest,
    BookingResult,
    QuotaSnapshot,
    ServiceResult,
)
from carwash.models.settings import AutoSchedule
from carwash.models.user import User
from carwash.repositories.registration_repository import RegistrationRepository
from carwash.services.base_service import BaseService
from carwash.services.quota import evaluate_quota
from carwash.services.settings_service import (
    STORE_TIMEOUT_MESSAGE,
    STORE_UNAVAILABLE_MESSAGE,
    SettingsService,
    store_failure,
)
from carwash.utils.audit import log_audit_event
from carwash.utils.calendar import month_year_label
from carwash.utils.string_helpers import fold_for_search, sanitize_search_term

MAX_SPOT_LENGTH = 120
SPOT_TOO_LONG_MESSAGE = f"A localização não pode exceder {MAX_SPOT_LENGTH} caracteres."

_STATE_ERRORS: dict[BookingState, BookingErrorCode] = {
    BookingState.ALREADY_REGISTERED: BookingErrorCode.ALREADY_REGISTERED,
    BookingState.MONTHLY_CAPPED: BookingErrorCode.MONTHLY_CAPPED,
    BookingState.WEEKLY_FULL: BookingErrorCode.WEEKLY_FULL,
    BookingState.WINDOW_CLOSED: BookingErrorCode.WINDOW_CLOSED,
}


def blocked_message(snapshot: QuotaSnapshot, now: datetime) -> str:
    """User-facing explanation for a non-eligible booking state."""
    if snapshot.state == BookingState.ALREADY_REGISTERED:
        return "Já tem uma lavagem agendada para esta semana."
    if snapshot.state == BookingState.MONTHLY_CAPPED:
        return (
            f"Já beneficiou da sua lavagem mensal em {month_year_label(now)}. "
            "Deverá aguardar pelo próximo mês para uma nova inscrição."
        )
    if snapshot.state == BookingState.WEEKLY_FULL:
        return (
            "Infelizmente não conseguiu um lugar nesta semana. "
            "Poderá tentar novamente na próxima semana."
        )
    return (
        "As inscrições para a lavagem desta semana ainda não abriram. "
        "Aguarde pela abertura das inscrições."
    )


class BookingService(BaseService):
    """Quota-validated registration flow.

    Parameters
    ----------
    registration_repo:
        Registration data access.
    settings_service:
        Supplies fresh settings for every decision.
    schedule:
        Automatic window configuration (may be disabled).
    logger:
        Structured logger instance.
    clock:
        Returns the current local time.
    """

    def __init__(
        self,
        registration_repo: RegistrationRepository,
        settings_service: SettingsService,
        schedule: AutoSchedule,
        logger: StructuredLogger,
        clock: Callable[[], datetime],
    ) -> None:
        super().__init__(logger)
        self._repo = registration_repo
        self._settings = settings_service
        self._schedule = schedule
        self._clock = clock

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_dashboard(
        self, user: User, now: Optional[datetime] = None,
    ) -> ServiceResult[QuotaSnapshot]:
        """Quota facts and presentation state for *user* at *now*."""
        now = now or self._clock()
        try:
            snapshot = self._fresh_snapshot(user, now)
        except StoreError as exc:
            self._logger.error("Dashboard refresh failed: %s", exc)
            return store_failure(exc)
        return ServiceResult(success=True, data=snapshot)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def submit_registration(
        self,
        request: BookingRequest,
        user: User,
        now: Optional[datetime] = None,
    ) -> BookingResult:
        """Validate, re-check against fresh data, and persist a booking."""
        car = user.find_car(request.car_id) if request.car_id else None
        if car is None:
            return BookingResult(
                success=False,
                error_code=BookingErrorCode.VALIDATION_ERROR,
                error_message="Selecione um veículo do seu perfil.",
            )
        if request.location_type is None:
            return BookingResult(
                success=False,
                error_code=BookingErrorCode.VALIDATION_ERROR,
                error_message="Indique o tipo de localização do carro.",
            )
        # Measured on the stored text, label prefix included.
        if len(request.spot_text()) > MAX_SPOT_LENGTH:
            return BookingResult(
                success=False,
                error_code=BookingErrorCode.VALIDATION_ERROR,
                error_message=SPOT_TOO_LONG_MESSAGE,
            )

        now = now or self._clock()

        try:
            snapshot = self._fresh_snapshot(user, now)
        except StoreError as exc:
            self._logger.error("Booking re-validation read failed: %s", exc)
            return self._store_failure_result(exc)

        if snapshot.state != BookingState.ELIGIBLE:
            self._logger.info(
                "Booking refused for user %s: %s (week %02d/%d, %d of %d taken).",
                user.id,
                snapshot.state.name,
                snapshot.week_number,
                snapshot.week_year,
                snapshot.weekly_count,
                snapshot.weekly_capacity,
            )
            return BookingResult(
                success=False,
                snapshot=snapshot,
                error_code=_STATE_ERRORS[snapshot.state],
                error_message=blocked_message(snapshot, now),
            )

        registration = Registration(
            user_id=user.id,
            car_id=car.id,
            user_name=user.full_name,
            car_details=car.description,
            date=now,
            week_number=snapshot.week_number,
            month=now.month,
            year=now.year,
            parking_spot=request.spot_text() or None,
        )

        try:
            saved = self._repo.upsert(registration)
        except StoreError as exc:
            self._logger.error("Booking write failed: %s", exc)
            return self._store_failure_result(exc, snapshot)

        log_audit_event(
            logger=self._logger,
            action="BOOK",
            entity_type="Registration",
            entity_id=saved.id,
            user_id=user.id,
            details={
                "week": f"{snapshot.week_number:02d}/{snapshot.week_year}",
                "car": saved.car_details,
            },
        )

        return self._confirm(saved, user, now, snapshot)

    def cancel_registration(
        self, registration_id: str, current_user: User,
    ) -> ServiceResult[Registration]:
        """Delete one registration.  Owners and administrators only."""
        try:
            registration = self._repo.get_by_id(registration_id)
            if registration is None:
                return ServiceResult(
                    success=False,
                    error="Inscrição não encontrada.",
                    status_code=404,
                )
            if registration.user_id != current_user.id and not current_user.is_admin:
                return ServiceResult(
                    success=False,
                    error="Só o próprio ou um administrador pode cancelar esta inscrição.",
                    status_code=403,
                )
            self._repo.delete(registration_id)
        except StoreError as exc:
            self._logger.error("Cancellation failed for %s: %s", registration_id, exc)
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action="CANCEL",
            entity_type="Registration",
            entity_id=registration_id,
            user_id=current_user.id,
            details={"owner": registration.user_id},
        )
        return ServiceResult(success=True, data=registration)

    def update_parking_spot(
        self,
        registration_id: str,
        parking_spot: str,
        current_user: User,
    ) -> ServiceResult[Registration]:
        """Change where the car is parked; nothing else on the row moves."""
        cleaned = parking_spot.strip()
        if len(cleaned) > MAX_SPOT_LENGTH:
            return ServiceResult(
                success=False,
                error=SPOT_TOO_LONG_MESSAGE,
                status_code=400,
            )

        try:
            registration = self._repo.get_by_id(registration_id)
            if registration is None:
                return ServiceResult(
                    success=False,
                    error="Inscrição não encontrada.",
                    status_code=404,
                )
            if registration.user_id != current_user.id and not current_user.is_admin:
                return ServiceResult(
                    success=False,
                    error="Só o próprio ou um administrador pode alterar esta inscrição.",
                    status_code=403,
                )
            updated = self._repo.update_parking_spot(registration_id, cleaned or None)
        except StoreError as exc:
            self._logger.error("Parking spot update failed for %s: %s", registration_id, exc)
            return store_failure(exc)

        if updated is None:
            updated = registration.model_copy(update={"parking_spot": cleaned or None})

        log_audit_event(
            logger=self._logger,
            action="UPDATE_SPOT",
            entity_type="Registration",
            entity_id=registration_id,
            user_id=current_user.id,
            details={"parking_spot": cleaned},
        )
        return ServiceResult(success=True, data=updated)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def list_history(
        self, current_user: User, search: str = "",
    ) -> ServiceResult[list[Registration]]:
        """Registrations visible to *current_user*, newest first.

        Administrators see every row; other users see only their own.
        *search* matches ``user_name`` or ``car_details`` ignoring case
        and accents.
        """
        try:
            registrations = self._repo.get_all()
        except StoreError as exc:
            self._logger.error("History fetch failed: %s", exc)
            return store_failure(exc)

        if not current_user.is_admin:
            registrations = [r for r in registrations if r.user_id == current_user.id]

        term = sanitize_search_term(search)
        if term:
            registrations = [
                r for r in registrations
                if term in fold_for_search(r.user_name) or term in fold_for_search(r.car_details)
            ]

        registrations.sort(key=lambda r: r.date, reverse=True)
        return ServiceResult(success=True, data=registrations)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fresh_snapshot(self, user: User, now: datetime) -> QuotaSnapshot:
        registrations = self._repo.get_all()
        settings = self._settings.fetch_settings()
        return evaluate_quota(registrations, user.id, settings, now, self._schedule)

    def _confirm(
        self,
        saved: Registration,
        user: User,
        now: datetime,
        before: QuotaSnapshot,
    ) -> BookingResult:
        """Post-write recount.  A failed re-read does not undo the booking."""
        try:
            snapshot = self._fresh_snapshot(user, now)
        except StoreError as exc:
            self._logger.warning(
                "Booking %s saved but the post-write recount failed: %s",
                saved.id,
                exc,
            )
            return BookingResult(success=True, registration=saved, snapshot=before)

        overbooked = snapshot.weekly_count > snapshot.weekly_capacity
        if overbooked:
            self._logger.warning(
                "Week %02d/%d is over capacity after booking %s: %d of %d.",
                snapshot.week_number,
                snapshot.week_year,
                saved.id,
                snapshot.weekly_count,
                snapshot.weekly_capacity,
            )
        return BookingResult(
            success=True,
            registration=saved,
            snapshot=snapshot,
            overbooked=overbooked,
        )

    @staticmethod
    def _store_failure_result(
        exc: StoreError, snapshot: Optional[QuotaSnapshot] = None,
    ) -> BookingResult:
        if isinstance(exc, StoreTimeoutError):
            return BookingResult(
                success=False,
                snapshot=snapshot,
                error_code=BookingErrorCode.TIMEOUT_ERROR,
                error_message=STORE_TIMEOUT_MESSAGE,
            )
        return BookingResult(
            success=False,
            snapshot=snapshot,
            error_code=BookingErrorCode.STORE_ERROR,
            error_message=STORE_UNAVAILABLE_MESSAGE,
        )
