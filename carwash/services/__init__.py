"""
Business Logic Services Package.

Services depend on the Repository layer for data access and on the
``SessionManager`` for user context.  The booking rules themselves live
in the pure ``window_policy`` and ``quota`` modules.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the UI layer can consume without knowing the
internal dependency graph.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, TypedDict

from carwash.auth import SessionManager
from carwash.config import AppConfig
from carwash.database import DatabaseManager
from carwash.logger import StructuredLogger, get_logger
from carwash.repositories.registration_repository import RegistrationRepository
from carwash.repositories.settings_repository import SettingsRepository
from carwash.repositories.user_repository import UserRepository
from carwash.services.auth_service import AuthService
from carwash.services.booking_service import BookingService
from carwash.services.credentials import CredentialVerifier
from carwash.services.export_service import ExportService
from carwash.services.settings_service import SettingsService
from carwash.services.users import UserService
from carwash.utils.calendar import local_now


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    auth_service: AuthService
    booking_service: BookingService
    settings_service: SettingsService
    user_service: UserService
    export_service: ExportService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    logger: Optional[StructuredLogger] = None,
    clock: Optional[Callable[[], datetime]] = None,
    verifier: Optional[CredentialVerifier] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup and passes the
    returned dict to the views.

    Args:
        db: Initialised DatabaseManager.
        config: Application configuration.
        session: Holder of the logged-in user.
        logger: Defaults to the ``services`` structured logger.
        clock: Current local time; defaults to now in ``config.TIMEZONE``.
        verifier: Password hashing; defaults to the production iteration count.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("services")
    clock = clock or (lambda: local_now(config.TIMEZONE))
    verifier = verifier or CredentialVerifier()

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(db=db, logger=logger)
    registration_repo = RegistrationRepository(db=db, logger=logger)
    settings_repo = SettingsRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services (no service dependencies)
    # ------------------------------------------------------------------
    settings_service = SettingsService(
        repo=settings_repo,
        registration_repo=registration_repo,
        config=config,
        logger=logger,
        clock=clock,
    )
    auth_service = AuthService(
        user_repo=user_repo,
        session=session,
        verifier=verifier,
        logger=logger,
    )
    user_service = UserService(
        repo=user_repo,
        verifier=verifier,
        config=config,
        logger=logger,
    )
    export_service = ExportService(
        registration_repo=registration_repo,
        logger=logger,
        clock=clock,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    booking_service = BookingService(
        registration_repo=registration_repo,
        settings_service=settings_service,
        schedule=config.auto_schedule,
        logger=logger,
        clock=clock,
    )

    logger.info("Service layer initialised.")

    return ServiceContainer(
        auth_service=auth_service,
        booking_service=booking_service,
        settings_service=settings_service,
        user_service=user_service,
        export_service=export_service,
    )
