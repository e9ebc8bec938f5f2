"""Admin View: booking window, capacity, users and weekly export.

Only registered for administrators; every service call still checks the
role and answers 403 otherwise.  Temporary passwords returned by user
creation and resets are shown once in a dialog.
"""

from __future__ import annotations

from pathlib import Path
from tkinter import filedialog, messagebox
from typing import Optional

import customtkinter as ctk

from carwash.auth import SessionManager
from carwash.logger import StructuredLogger
from carwash.models.enums import ExportFormat, UserRole
from carwash.models.service_models import (
    ExportFile,
    OverbookedWeek,
    QuotaSnapshot,
    ServiceResult,
)
from carwash.models.settings import AppSettings
from carwash.models.user import User
from carwash.services import ServiceContainer
from carwash.services.window_policy import OPEN_RULES
from carwash.ui.module_frame import ModuleFrame
from carwash.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BUTTON,
    FONT_LABEL,
    FONT_SMALL,
    INPUT_HEIGHT,
    PADDING_MD,
    PADDING_SM,
    STATE_BLOCKED,
    STATE_CONFIRMED,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

_ROLE_CHOICES: dict[str, UserRole] = {
    "Colaborador": UserRole.USER,
    "Administrador": UserRole.ADMIN,
}


class AdminView(ModuleFrame):
    """Administration panel."""

    def __init__(
        self,
        parent: ctk.CTkFrame,
        services: ServiceContainer,
        session: SessionManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, title="Administração", logger=logger)
        self._settings = services["settings_service"]
        self._booking = services["booking_service"]
        self._users = services["user_service"]
        self._export = services["export_service"]
        self._session = session

        self._users_list: Optional[ctk.CTkFrame] = None
        self._report_label: Optional[ctk.CTkLabel] = None

        scroll = ctk.CTkScrollableFrame(self.body, fg_color="transparent")
        scroll.pack(fill="both", expand=True)

        self._build_window_card(scroll)
        self._build_settings_card(scroll)
        self._build_export_card(scroll)
        self._build_users_card(scroll)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @staticmethod
    def _card(parent: ctk.CTkFrame, title: str) -> ctk.CTkFrame:
        card = ctk.CTkFrame(parent, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        card.pack(fill="x", pady=(0, PADDING_MD))
        ctk.CTkLabel(
            card, text=title, font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 4))
        return card

    @staticmethod
    def _button(parent: ctk.CTkFrame, text: str, command, *, danger: bool = False) -> ctk.CTkButton:
        button = ctk.CTkButton(
            parent,
            text=text,
            height=36,
            font=FONT_BUTTON,
            fg_color=STATE_BLOCKED if danger else ACCENT_PRIMARY,
            hover_color=ERROR_TEXT if danger else ACCENT_HOVER,
            command=command,
        )
        button.pack(side="left", padx=(0, PADDING_SM))
        return button

    def _build_window_card(self, parent: ctk.CTkFrame) -> None:
        card = self._card(parent, "JANELA DE INSCRIÇÕES")
        self._window_label = ctk.CTkLabel(
            card, text="", font=FONT_BODY, text_color=TEXT_PRIMARY, anchor="w",
        )
        self._window_label.pack(fill="x", padx=PADDING_MD)

        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x", padx=PADDING_MD, pady=PADDING_MD)
        self._button(row, "Abrir esta semana", lambda: self._settings_call(
            lambda user: self._settings.open_current_week(user), "Inscrições abertas.",
        ))
        self._button(row, "Fechar esta semana", lambda: self._settings_call(
            lambda user: self._settings.close_current_week(user), "Inscrições fechadas.",
        ), danger=True)
        self._button(row, "Repor automático", lambda: self._settings_call(
            lambda user: self._settings.clear_overrides(user), "Regras manuais removidas.",
        ))

    def _build_settings_card(self, parent: ctk.CTkFrame) -> None:
        card = self._card(parent, "CONFIGURAÇÃO")

        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_SM))
        ctk.CTkLabel(row, text="Lugares por semana", font=FONT_BODY, width=180, anchor="w").pack(side="left")
        self._capacity_entry = ctk.CTkEntry(row, width=80, height=INPUT_HEIGHT, font=FONT_BODY)
        self._capacity_entry.pack(side="left", padx=(0, PADDING_SM))
        self._button(row, "Guardar", self._save_capacity)

        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_SM))
        ctk.CTkLabel(row, text="Imagem do login (URL)", font=FONT_BODY, width=180, anchor="w").pack(side="left")
        self._image_entry = ctk.CTkEntry(row, height=INPUT_HEIGHT, font=FONT_BODY)
        self._image_entry.pack(side="left", fill="x", expand=True, padx=(0, PADDING_SM))
        self._button(row, "Guardar", self._save_image_url)

        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_MD))
        self._button(row, "Verificar excesso de inscrições", self._check_overbooked)
        self._report_label = ctk.CTkLabel(row, text="", font=FONT_SMALL, text_color=TEXT_SECONDARY)
        self._report_label.pack(side="left")

    def _build_export_card(self, parent: ctk.CTkFrame) -> None:
        card = self._card(parent, "EXPORTAR SEMANA ATUAL")
        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_MD))
        self._button(row, "Exportar CSV", lambda: self._export_week(ExportFormat.CSV))
        self._button(row, "Exportar Excel", lambda: self._export_week(ExportFormat.XLSX))

    def _build_users_card(self, parent: ctk.CTkFrame) -> None:
        card = self._card(parent, "UTILIZADORES")

        form = ctk.CTkFrame(card, fg_color="transparent")
        form.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_SM))
        self._new_first = ctk.CTkEntry(form, height=INPUT_HEIGHT, width=140, font=FONT_BODY, placeholder_text="Nome")
        self._new_last = ctk.CTkEntry(form, height=INPUT_HEIGHT, width=140, font=FONT_BODY, placeholder_text="Apelido")
        self._new_email = ctk.CTkEntry(form, height=INPUT_HEIGHT, font=FONT_BODY, placeholder_text="Email")
        self._new_role = ctk.CTkOptionMenu(form, values=list(_ROLE_CHOICES), height=INPUT_HEIGHT, font=FONT_BODY)
        self._new_first.pack(side="left", padx=(0, PADDING_SM))
        self._new_last.pack(side="left", padx=(0, PADDING_SM))
        self._new_email.pack(side="left", fill="x", expand=True, padx=(0, PADDING_SM))
        self._new_role.pack(side="left", padx=(0, PADDING_SM))
        self._button(form, "Criar", self._create_user)

        self._users_list = ctk.CTkFrame(card, fg_color="transparent")
        self._users_list.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_MD))

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        user = self._session.get_current_user()
        self.run_in_background(self._settings.get_settings, self._on_settings, name="admin-settings")
        self.run_in_background(
            lambda: self._booking.get_dashboard(user), self._on_window, name="admin-window",
        )
        self.run_in_background(
            lambda: self._users.list_users(user), self._on_users, name="admin-users",
        )

    def _on_settings(self, result: ServiceResult[AppSettings]) -> None:
        if not result.success or result.data is None:
            self.show_status(result.error, error=True)
            return
        settings = result.data
        self._capacity_entry.delete(0, "end")
        self._capacity_entry.insert(0, str(settings.weekly_capacity))
        self._image_entry.delete(0, "end")
        self._image_entry.insert(0, settings.login_image_url or "")

    def _on_window(self, result: ServiceResult[QuotaSnapshot]) -> None:
        if not result.success or result.data is None:
            self.show_status(result.error, error=True)
            return
        snapshot = result.data
        is_open = snapshot.window_rule in OPEN_RULES
        self._window_label.configure(
            text=(
                f"Semana {snapshot.week_number}/{snapshot.week_year}: "
                f"{'ABERTA' if is_open else 'FECHADA'} ({snapshot.window_rule.value})  ·  "
                f"{snapshot.weekly_count} de {snapshot.weekly_capacity} lugares ocupados"
            ),
            text_color=STATE_CONFIRMED if is_open else STATE_BLOCKED,
        )

    def _on_users(self, result: ServiceResult[list[User]]) -> None:
        for child in self._users_list.winfo_children():
            child.destroy()
        if not result.success:
            self.show_status(result.error, error=True)
            return

        current_id = self._session.get_current_user().id
        for user in result.data or []:
            row = ctk.CTkFrame(self._users_list, fg_color="transparent")
            row.pack(fill="x", pady=1)
            role = "Administrador" if user.is_admin else "Colaborador"
            ctk.CTkLabel(
                row,
                text=f"{user.full_name or '—'}  ·  {user.email}  ·  {role}  ·  {len(user.cars)} carro(s)",
                font=FONT_SMALL,
                text_color=TEXT_PRIMARY,
                anchor="w",
            ).pack(side="left", fill="x", expand=True)
            if user.id == current_id:
                continue
            ctk.CTkButton(
                row, text="Apagar", width=80, height=28, font=FONT_SMALL,
                fg_color="transparent", text_color=ERROR_TEXT, hover_color="#fee2e2",
                command=lambda u=user: self._delete_user(u),
            ).pack(side="right")
            ctk.CTkButton(
                row, text="Repor palavra-passe", width=150, height=28, font=FONT_SMALL,
                fg_color="transparent", text_color=ACCENT_PRIMARY, hover_color="#ecfeff",
                command=lambda u=user: self._reset_password(u),
            ).pack(side="right", padx=(0, PADDING_SM))

    # ------------------------------------------------------------------
    # Settings actions
    # ------------------------------------------------------------------

    def _settings_call(self, call, success_message: str) -> None:
        user = self._session.get_current_user()

        def _done(result: ServiceResult[AppSettings]) -> None:
            if not result.success:
                self.show_status(result.error, error=True)
                return
            self.show_status(success_message)
            self.refresh()

        self.run_in_background(lambda: call(user), _done, name="admin-settings-change")

    def _save_capacity(self) -> None:
        raw = self._capacity_entry.get().strip()
        if not raw.isdigit():
            self.show_status("Indique um número inteiro de lugares.", error=True)
            return
        capacity = int(raw)
        self._settings_call(
            lambda user: self._settings.set_weekly_capacity(capacity, user),
            "Capacidade atualizada.",
        )

    def _save_image_url(self) -> None:
        url = self._image_entry.get()
        self._settings_call(
            lambda user: self._settings.set_login_image_url(url, user),
            "Imagem atualizada.",
        )

    def _check_overbooked(self) -> None:
        user = self._session.get_current_user()
        self.run_in_background(
            lambda: self._settings.find_overbooked_weeks(user),
            self._on_overbooked,
            name="admin-overbooked",
        )

    def _on_overbooked(self, result: ServiceResult[list[OverbookedWeek]]) -> None:
        if not result.success:
            self.show_status(result.error, error=True)
            return
        weeks = result.data or []
        if not weeks:
            self._report_label.configure(text="Nenhuma semana acima da capacidade.", text_color=TEXT_SECONDARY)
            return
        summary = ", ".join(
            f"semana {w.week_number}/{w.week_year}: {w.count}/{w.capacity}" for w in weeks
        )
        self._report_label.configure(text=summary, text_color=ERROR_TEXT)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _export_week(self, fmt: ExportFormat) -> None:
        user = self._session.get_current_user()
        self.run_in_background(
            lambda: self._export.export_week(user, fmt),
            self._on_export,
            name="admin-export",
        )

    def _on_export(self, result: ServiceResult[ExportFile]) -> None:
        if not result.success or result.data is None:
            self.show_status(result.error, error=True)
            return
        export = result.data
        path = filedialog.asksaveasfilename(
            initialfile=export.filename,
            defaultextension=Path(export.filename).suffix,
        )
        if not path:
            return
        try:
            Path(path).write_bytes(export.content)
        except OSError as exc:
            self._logger.error("Could not write export to %s: %s", path, exc)
            self.show_status(f"Não foi possível guardar o ficheiro: {exc}", error=True)
            return
        self.show_status(f"Exportado para {Path(path).name}.")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def _create_user(self) -> None:
        admin = self._session.get_current_user()
        first = self._new_first.get()
        last = self._new_last.get()
        email = self._new_email.get()
        role = _ROLE_CHOICES[self._new_role.get()]

        def _done(result: ServiceResult[tuple[User, str]]) -> None:
            if not result.success or result.data is None:
                self.show_status(result.error, error=True)
                return
            created, temp_password = result.data
            for entry in (self._new_first, self._new_last, self._new_email):
                entry.delete(0, "end")
            messagebox.showinfo(
                "Utilizador criado",
                f"Palavra-passe temporária de {created.email}:\n\n{temp_password}",
            )
            self.refresh()

        self.run_in_background(
            lambda: self._users.create_user(first, last, email, admin, role=role),
            _done,
            name="admin-create-user",
        )

    def _reset_password(self, user: User) -> None:
        if not messagebox.askyesno(
            "Repor palavra-passe", f"Gerar nova palavra-passe para {user.email}?",
        ):
            return
        admin = self._session.get_current_user()

        def _done(result: ServiceResult[str]) -> None:
            if not result.success:
                self.show_status(result.error, error=True)
                return
            messagebox.showinfo(
                "Palavra-passe reposta",
                f"Nova palavra-passe temporária de {user.email}:\n\n{result.data}",
            )

        self.run_in_background(
            lambda: self._users.reset_password(user.id, admin), _done, name="admin-reset",
        )

    def _delete_user(self, user: User) -> None:
        if not messagebox.askyesno(
            "Apagar utilizador",
            f"Apagar {user.email}? As inscrições passadas mantêm-se no histórico.",
        ):
            return
        admin = self._session.get_current_user()

        def _done(result: ServiceResult[str]) -> None:
            if not result.success:
                self.show_status(result.error, error=True)
                return
            self.show_status("Utilizador apagado.")
            self.refresh()

        self.run_in_background(
            lambda: self._users.delete_user(user.id, admin), _done, name="admin-delete",
        )
