"""
Car Wash Booking Board: Desktop Application Entry Point.

Bootstraps the dependency graph via constructor injection, makes sure
the settings row and a first administrator exist, and launches the
CustomTkinter GUI.  Every subsystem is wired here; no module-level
globals.

Usage::

    python main.py
"""

from __future__ import annotations

import sys
import traceback
from functools import partial

from carwash import __version__
from carwash.auth import SessionManager
from carwash.config import get_config
from carwash.database import DatabaseManager
from carwash.logger import StructuredLogger, get_logger
from carwash.services import ServiceContainer, create_services
from carwash.ui.app_shell import AppShell
from carwash.ui.module_registry import ADMIN_ONLY, ModuleRegistry
from carwash.ui.views.admin_view import AdminView
from carwash.ui.views.booking_view import BookingView
from carwash.ui.views.history_view import HistoryView
from carwash.ui.views.profile_view import ProfileView
from carwash.utils.calendar import local_now


def main() -> None:
    """Application entry point: wire dependencies and launch the GUI."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting car wash booking board v%s...", __version__)

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (Supabase is the only store)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
        timeout_s=config.REMOTE_TIMEOUT_S,
    )

    # ------------------------------------------------------------------
    # 3. Session Manager + Service Container (single composition root)
    # ------------------------------------------------------------------
    clock = partial(local_now, config.TIMEZONE)
    session = SessionManager(clock=clock)
    services = create_services(db=db, config=config, session=session, clock=clock)

    # ------------------------------------------------------------------
    # 4. First-run data (settings row, first administrator)
    # ------------------------------------------------------------------
    if db.is_configured:
        _ensure_first_run_data(services, config.BOOTSTRAP_ADMIN_EMAIL, logger)
    else:
        logger.warning("Store not configured; skipping first-run checks.")

    # ------------------------------------------------------------------
    # 5. Module Registry (plug-and-play modules)
    # ------------------------------------------------------------------
    registry = ModuleRegistry(logger=get_logger("modules"))

    registry.register(
        module_id="booking",
        display_name="Lavagem",
        icon="\U0001F697",  # Car
        factory=lambda parent: BookingView(
            parent=parent,
            booking_service=services["booking_service"],
            session=session,
            logger=get_logger("booking"),
        ),
        default=True,
    )

    registry.register(
        module_id="history",
        display_name="Histórico",
        icon="\U0001F4C5",  # Calendar
        factory=lambda parent: HistoryView(
            parent=parent,
            booking_service=services["booking_service"],
            session=session,
            logger=get_logger("history"),
        ),
    )

    registry.register(
        module_id="profile",
        display_name="Perfil",
        icon="\U0001F464",  # Bust
        factory=lambda parent: ProfileView(
            parent=parent,
            user_service=services["user_service"],
            session=session,
            logger=get_logger("profile"),
            on_saved=lambda: app.refresh_identity(),
        ),
    )

    registry.register(
        module_id="admin",
        display_name="Administração",
        icon="⚙",  # Gear
        factory=lambda parent: AdminView(
            parent=parent,
            services=services,
            session=session,
            logger=get_logger("admin"),
        ),
        required_roles=ADMIN_ONLY,
    )

    # ------------------------------------------------------------------
    # 6. Launch the GUI (blocks until window closes)
    # ------------------------------------------------------------------
    logger.info("Launching GUI...")
    app = AppShell(
        session=session,
        services=services,
        registry=registry,
        clock=clock,
        logger=get_logger("ui"),
    )
    app.mainloop()
    logger.info("Car wash booking board shut down.")


def _ensure_first_run_data(
    services: ServiceContainer, admin_email: str, logger: StructuredLogger,
) -> None:
    settings_result = services["settings_service"].ensure_settings()
    if not settings_result.success:
        logger.warning("Settings row not verified: %s", settings_result.error)

    admin_result = services["user_service"].ensure_bootstrap_admin()
    if not admin_result.success:
        logger.warning("Administrator bootstrap skipped: %s", admin_result.error)
    elif admin_result.data:
        logger.warning(
            "Temporary administrator password for %s: %s (change it after login)",
            admin_email,
            admin_result.data,
        )


def _show_fatal_error(exc: BaseException) -> None:
    """Display a fatal-error dialog so double-click users get feedback.

    Uses ``tkinter.messagebox`` (stdlib) rather than CustomTkinter so
    the dialog works even when CTk initialisation itself is the thing
    that failed.
    """
    detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    try:
        import tkinter
        from tkinter import messagebox

        root = tkinter.Tk()
        root.withdraw()
        messagebox.showerror(
            title="Lavagem semanal: erro fatal",
            message=(
                "A aplicação encontrou um erro inesperado e não pode "
                "continuar.\n\n"
                f"{type(exc).__name__}: {exc}"
            ),
            detail=detail,
        )
        root.destroy()
    except Exception:
        # Headless or missing Tcl/Tk: stderr is the last resort.
        sys.stderr.write(
            f"FATAL: {type(exc).__name__}: {exc}\n{detail}"
        )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        _show_fatal_error(exc)
        sys.exit(1)
