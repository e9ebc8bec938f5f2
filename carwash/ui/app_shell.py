"""Top-level window: login screen, then sidebar plus module area.

Module frames are built on first visit and kept until logout; every
visit calls the frame's ``refresh()`` so it re-reads the store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import customtkinter as ctk

from carwash import __version__
from carwash.auth import SessionManager
from carwash.logger import StructuredLogger
from carwash.services import ServiceContainer
from carwash.ui.login_view import LoginView
from carwash.ui.module_registry import ModuleRegistry
from carwash.ui.sidebar import SidebarNav
from carwash.ui.theme import (
    CONTENT_BG,
    FONT_BODY,
    LOGIN_WINDOW_HEIGHT,
    LOGIN_WINDOW_WIDTH,
    MAIN_WINDOW_HEIGHT,
    MAIN_WINDOW_WIDTH,
    TEXT_SECONDARY,
)


class AppShell(ctk.CTk):
    """Main window.

    Parameters
    ----------
    session:
        Holder of the signed-in user.
    services:
        Wired service container.
    registry:
        Modules registered by ``main``.
    clock:
        Business-timezone clock, used for the sidebar week label.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        session: SessionManager,
        services: ServiceContainer,
        registry: ModuleRegistry,
        clock: Callable[[], datetime],
        logger: StructuredLogger,
    ) -> None:
        super().__init__()
        self._session = session
        self._services = services
        self._registry = registry
        self._clock = clock
        self._logger = logger

        self._frames: dict[str, ctk.CTkFrame] = {}
        self._active: Optional[str] = None
        self._login: Optional[LoginView] = None
        self._sidebar: Optional[SidebarNav] = None
        self._content: Optional[ctk.CTkFrame] = None

        self.title("Vai dar banho · Lavagem semanal")
        ctk.set_appearance_mode("light")
        ctk.set_default_color_theme("blue")
        self.protocol("WM_DELETE_WINDOW", self._on_close)

        self._show_login()

    # ------------------------------------------------------------------
    # Screens
    # ------------------------------------------------------------------

    def _show_login(self) -> None:
        self._teardown()
        self.geometry(f"{LOGIN_WINDOW_WIDTH}x{LOGIN_WINDOW_HEIGHT}")
        self.minsize(LOGIN_WINDOW_WIDTH, LOGIN_WINDOW_HEIGHT)

        self._login = LoginView(
            parent=self,
            auth_service=self._services["auth_service"],
            settings_service=self._services["settings_service"],
            on_login_success=self._on_signed_in,
            logger=self._logger,
        )
        self._login.pack(fill="both", expand=True)

    def _show_workspace(self) -> None:
        user = self._session.get_current_user()
        self.geometry(f"{MAIN_WINDOW_WIDTH}x{MAIN_WINDOW_HEIGHT}")
        self.minsize(800, 500)

        self._sidebar = SidebarNav(
            parent=self,
            session=self._session,
            clock=self._clock,
            on_module_selected=self.open_module,
            on_logout=self._on_logout,
            version=__version__,
        )
        self._sidebar.pack(side="left", fill="y")
        for title, entries in self._registry.sections_for(user):
            self._sidebar.add_section(title, entries)

        self._content = ctk.CTkFrame(self, fg_color=CONTENT_BG)
        self._content.pack(side="top", fill="both", expand=True)

        landing = self._registry.landing_module_for(user)
        if landing is None:
            self._logger.warning("No modules available for %s (%s).", user.email, user.role)
            ctk.CTkLabel(
                self._content,
                text="Sem módulos disponíveis. Contacte o administrador.",
                font=FONT_BODY,
                text_color=TEXT_SECONDARY,
            ).place(relx=0.5, rely=0.5, anchor="center")
            return
        self.open_module(landing)

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def open_module(self, module_id: str) -> None:
        if module_id == self._active or self._content is None:
            return
        try:
            entry = self._registry.get(module_id)
        except KeyError:
            self._logger.error("Cannot open unregistered module: %s", module_id)
            return
        if not entry.visible_to(self._session.get_current_user()):
            self._logger.warning("Module %s is not available to this user.", module_id)
            return

        if self._active in self._frames:
            self._frames[self._active].pack_forget()
        frame = self._frames.get(module_id)
        if frame is None:
            frame = self._frames[module_id] = entry.factory(self._content)
        frame.pack(fill="both", expand=True)
        self._active = module_id

        refresh = getattr(frame, "refresh", None)
        if callable(refresh):
            refresh()
        if self._sidebar is not None:
            self._sidebar.set_active(module_id)
            self._sidebar.refresh_week()

    def refresh_identity(self) -> None:
        """Profile saved: update the sidebar's name and car count."""
        if self._sidebar is not None:
            self._sidebar.refresh_identity()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _on_signed_in(self) -> None:
        if self._login is not None:
            self._login.destroy()
            self._login = None
        self._logger.info("Signed in: %s", self._session.get_current_user().email)
        self._show_workspace()

    def _on_logout(self) -> None:
        self._services["auth_service"].logout()
        self._show_login()

    def _teardown(self) -> None:
        for frame in self._frames.values():
            frame.destroy()
        self._frames.clear()
        self._active = None
        for widget in (self._sidebar, self._content):
            if widget is not None:
                widget.destroy()
        self._sidebar = None
        self._content = None

    def _on_close(self) -> None:
        if self._session.is_authenticated:
            self._services["auth_service"].logout()
        self.destroy()
