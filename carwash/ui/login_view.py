"""Login screen.

Shows this week's booking status (readable without a session) above the
email/password form.  Both the status read and the login run off the Tk
thread; results come back through ``run_threaded``.
"""

from __future__ import annotations

import tkinter as tk
from typing import Callable, Optional

import customtkinter as ctk

from carwash.logger import StructuredLogger
from carwash.models.auth_models import AuthErrorCode, AuthResult
from carwash.models.enums import WindowRule
from carwash.models.service_models import ServiceResult
from carwash.services.auth_service import AuthService
from carwash.services.settings_service import SettingsService
from carwash.services.window_policy import OPEN_RULES
from carwash.ui.module_frame import run_threaded
from carwash.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CONTENT_BG,
    CONTENT_CARD_BG,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BRAND,
    FONT_BUTTON,
    FONT_LABEL,
    FONT_SMALL,
    FONT_SUBTITLE,
    INPUT_BG,
    INPUT_BORDER,
    INPUT_HEIGHT,
    PADDING_LG,
    PADDING_SM,
    STATE_CONFIRMED,
    STATE_WAITING,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

_CARD_WIDTH = 420
_FIELD_WIDTH = _CARD_WIDTH - 72

_WINDOW_BANNERS: dict[WindowRule, str] = {
    WindowRule.MANUAL_OPEN: "Marcações abertas para esta semana.",
    WindowRule.AUTO_SCHEDULE: "Marcações abertas até sábado.",
    WindowRule.MANUAL_CLOSE: "Marcações encerradas esta semana.",
    WindowRule.DEFAULT_CLOSED: "Marcações ainda não abertas esta semana.",
}


class LoginView(ctk.CTkFrame):
    def __init__(
        self,
        parent: ctk.CTk,
        auth_service: AuthService,
        settings_service: SettingsService,
        on_login_success: Callable[[], None],
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)
        self._auth = auth_service
        self._settings = settings_service
        self._on_login_success = on_login_success
        self._logger = logger
        self._countdown_job: Optional[str] = None

        self.grid_rowconfigure((0, 2), weight=1)
        self.grid_columnconfigure(0, weight=1)

        card = ctk.CTkFrame(
            self,
            width=_CARD_WIDTH,
            fg_color=CONTENT_CARD_BG,
            corner_radius=16,
            border_width=1,
            border_color=INPUT_BORDER,
        )
        card.grid(row=1, column=0)
        inner = ctk.CTkFrame(card, fg_color="transparent")
        inner.pack(fill="both", expand=True, padx=36, pady=28)

        self._build_brand(inner)
        self._window_label = ctk.CTkLabel(
            inner,
            text="A verificar o estado das marcações…",
            font=FONT_SMALL,
            text_color=TEXT_LIGHT,
            fg_color=STATE_WAITING,
            corner_radius=6,
            height=28,
        )
        self._window_label.pack(fill="x", pady=(0, PADDING_LG))

        self._email_entry = self._field(inner, "EMAIL", placeholder="nome@empresa.pt")
        self._password_entry = self._field(inner, "PALAVRA-PASSE", show="•")
        for entry in (self._email_entry, self._password_entry):
            entry.bind("<Return>", self._on_enter_key)

        self._error_label = ctk.CTkLabel(
            inner, text="", font=FONT_SMALL, text_color=ERROR_TEXT, wraplength=_FIELD_WIDTH,
        )
        self._error_label.pack(fill="x")

        self._login_button = ctk.CTkButton(
            inner,
            text="ENTRAR",
            height=48,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            command=self._handle_login,
        )
        self._login_button.pack(fill="x", pady=(PADDING_SM, 0))

        run_threaded(
            self,
            self._settings.current_window,
            self._show_window,
            lambda exc: self._logger.warning("Window status unavailable: %s", exc),
            name="login-window",
        )

    # ------------------------------------------------------------------
    # Layout helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_brand(parent: ctk.CTkFrame) -> None:
        badge = ctk.CTkFrame(parent, width=56, height=56, corner_radius=14, fg_color=ACCENT_PRIMARY)
        badge.pack(pady=(0, 12))
        badge.pack_propagate(False)
        ctk.CTkLabel(
            badge, text="🚗", font=("Segoe UI", 24, "bold"), text_color=TEXT_LIGHT,
        ).place(relx=0.5, rely=0.5, anchor="center")
        ctk.CTkLabel(parent, text="Vai dar banho", font=FONT_BRAND, text_color=TEXT_PRIMARY).pack(
            pady=(0, 2)
        )
        ctk.CTkLabel(
            parent,
            text="Lavagem semanal de viaturas",
            font=FONT_SUBTITLE,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, PADDING_SM))

    @staticmethod
    def _field(parent: ctk.CTkFrame, label: str, **entry_options: str) -> ctk.CTkEntry:
        ctk.CTkLabel(parent, text=label, font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w").pack(
            fill="x"
        )
        placeholder = entry_options.pop("placeholder", None)
        entry = ctk.CTkEntry(
            parent,
            height=INPUT_HEIGHT,
            width=_FIELD_WIDTH,
            font=FONT_BODY,
            fg_color=INPUT_BG,
            border_color=INPUT_BORDER,
            placeholder_text=placeholder,
            **entry_options,
        )
        entry.pack(fill="x", pady=(4, PADDING_SM))
        return entry

    # ------------------------------------------------------------------
    # Window status
    # ------------------------------------------------------------------

    def _show_window(self, result: ServiceResult[WindowRule]) -> None:
        if not result.success or result.data is None:
            self._window_label.configure(text=result.error or "Estado das marcações indisponível.")
            return
        self._window_label.configure(
            text=_WINDOW_BANNERS[result.data],
            fg_color=STATE_CONFIRMED if result.data in OPEN_RULES else STATE_WAITING,
        )

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def _on_enter_key(self, _event: tk.Event) -> None:
        self._handle_login()

    def _handle_login(self) -> None:
        email = self._auth.normalize_email(self._email_entry.get())
        password = self._password_entry.get()
        if not email or not password:
            self._error_label.configure(text="Preencha o email e a palavra-passe.")
            return

        locked, remaining = self._auth.check_rate_limit(email)
        if locked:
            self._start_countdown(remaining)
            return

        self._set_loading(True)
        self._error_label.configure(text="")
        run_threaded(
            self,
            lambda: self._auth.login(email, password),
            self._on_login_result,
            self._on_login_crash,
            name="login",
        )

    def _on_login_result(self, result: AuthResult) -> None:
        self._set_loading(False)
        if result.success:
            self._on_login_success()
        elif result.error_code == AuthErrorCode.RATE_LIMITED:
            self._start_countdown(result.retry_after_s or 0)
        else:
            self._error_label.configure(text=result.error_message or "Falha na autenticação.")

    def _on_login_crash(self, exc: Exception) -> None:
        self._logger.error(
            "Login crashed: %s", exc, exc_info=(type(exc), exc, exc.__traceback__),
        )
        self._set_loading(False)
        self._error_label.configure(text=f"Falha na autenticação: {exc}")

    def _start_countdown(self, seconds: int) -> None:
        if self._countdown_job is not None:
            self.after_cancel(self._countdown_job)
            self._countdown_job = None

        def tick(remaining: int) -> None:
            if remaining <= 0:
                self._error_label.configure(text="")
                self._countdown_job = None
                return
            self._error_label.configure(
                text=f"Demasiadas tentativas falhadas. Aguarde {remaining} segundos."
            )
            self._countdown_job = self.after(1000, tick, remaining - 1)

        tick(seconds)

    def _set_loading(self, loading: bool) -> None:
        self._login_button.configure(
            state="disabled" if loading else "normal",
            text="A VERIFICAR…" if loading else "ENTRAR",
        )

    def destroy(self) -> None:
        if self._countdown_job is not None:
            self.after_cancel(self._countdown_job)
            self._countdown_job = None
        super().destroy()
