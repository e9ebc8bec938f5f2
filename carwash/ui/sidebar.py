"""Sidebar: current week, signed-in user, module sections and logout.

Purely visual.  Module switches and logout go through the callbacks the
shell passes in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import customtkinter as ctk

from carwash.auth import SessionManager
from carwash.models.user import User
from carwash.ui.module_registry import ModuleEntry
from carwash.ui.theme import (
    ACCENT_PRIMARY,
    FONT_BODY,
    FONT_LABEL,
    FONT_SIDEBAR,
    FONT_SIDEBAR_ACTIVE,
    FONT_SMALL,
    LOGOUT_HOVER,
    LOGOUT_PRIMARY,
    PADDING_MD,
    PADDING_SM,
    SIDEBAR_ACTIVE,
    SIDEBAR_BG,
    SIDEBAR_HOVER,
    SIDEBAR_TEXT,
    SIDEBAR_WIDTH,
    TEXT_LIGHT,
)
from carwash.utils.calendar import month_year_label, week_number

_ROLE_LABELS: dict[str, str] = {"admin": "Administrador", "user": "Colaborador"}
_AVATAR = 40


def initials(full_name: str) -> str:
    """``"Ana Maria Silva"`` -> ``"AS"``; ``"?"`` for an empty name."""
    parts = full_name.split()
    if not parts:
        return "?"
    return (parts[0][0] + (parts[-1][0] if len(parts) > 1 else "")).upper()


def cars_caption(user: User) -> str:
    count = len(user.cars)
    if count == 0:
        return "Sem viaturas registadas"
    return "1 viatura" if count == 1 else f"{count} viaturas"


class SidebarNav(ctk.CTkFrame):
    def __init__(
        self,
        parent: ctk.CTk,
        session: SessionManager,
        clock: Callable[[], datetime],
        on_module_selected: Callable[[str], None],
        on_logout: Callable[[], None],
        version: str,
    ) -> None:
        super().__init__(parent, width=SIDEBAR_WIDTH, fg_color=SIDEBAR_BG)
        self.pack_propagate(False)

        self._session = session
        self._clock = clock
        self._on_module_selected = on_module_selected

        self._buttons: dict[str, ctk.CTkButton] = {}
        self._active: Optional[str] = None

        self._week_label = ctk.CTkLabel(
            self, text="", font=FONT_LABEL, text_color=ACCENT_PRIMARY, anchor="w"
        )
        self._week_label.pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 0))

        identity = ctk.CTkFrame(self, fg_color="transparent")
        identity.pack(fill="x", padx=PADDING_MD, pady=PADDING_SM)
        avatar = ctk.CTkFrame(
            identity, width=_AVATAR, height=_AVATAR,
            corner_radius=_AVATAR // 2, fg_color=ACCENT_PRIMARY,
        )
        avatar.pack(side="left", padx=(0, 10))
        avatar.pack_propagate(False)
        self._avatar_label = ctk.CTkLabel(
            avatar, text="", font=FONT_SIDEBAR_ACTIVE, text_color=TEXT_LIGHT
        )
        self._avatar_label.place(relx=0.5, rely=0.5, anchor="center")

        lines = ctk.CTkFrame(identity, fg_color="transparent")
        lines.pack(side="left", fill="x", expand=True)
        self._name_label = ctk.CTkLabel(
            lines, text="", font=FONT_SIDEBAR_ACTIVE, text_color=TEXT_LIGHT, anchor="w"
        )
        self._name_label.pack(fill="x")
        self._detail_label = ctk.CTkLabel(
            lines, text="", font=FONT_SMALL, text_color=SIDEBAR_TEXT, anchor="w", justify="left"
        )
        self._detail_label.pack(fill="x")

        self._sections = ctk.CTkFrame(self, fg_color="transparent")
        self._sections.pack(fill="both", expand=True, pady=PADDING_SM)

        signed_in = session.signed_in_at
        footer = f"v{version}"
        if signed_in is not None:
            footer += f"  ·  sessão desde {signed_in:%H:%M}"
        ctk.CTkLabel(self, text=footer, font=FONT_SMALL, text_color=SIDEBAR_TEXT).pack(
            side="bottom", pady=(0, PADDING_SM)
        )
        ctk.CTkButton(
            self,
            text="  ⏻   Terminar sessão",
            font=FONT_BODY,
            fg_color="transparent",
            hover_color=LOGOUT_HOVER,
            text_color=LOGOUT_PRIMARY,
            anchor="w",
            height=36,
            corner_radius=6,
            command=on_logout,
        ).pack(side="bottom", fill="x", padx=PADDING_SM, pady=PADDING_SM)

        self.refresh_identity()
        self.refresh_week()

    def add_section(self, title: str, entries: list[ModuleEntry]) -> None:
        ctk.CTkLabel(
            self._sections, text=title.upper(), font=FONT_SMALL,
            text_color=SIDEBAR_TEXT, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_SM, 2))
        for entry in entries:
            button = ctk.CTkButton(
                self._sections,
                text=f"  {entry.icon}   {entry.display_name}",
                anchor="w",
                font=FONT_SIDEBAR,
                text_color=SIDEBAR_TEXT,
                fg_color="transparent",
                hover_color=SIDEBAR_HOVER,
                height=40,
                corner_radius=6,
                command=lambda module_id=entry.module_id: self._on_module_selected(module_id),
            )
            button.pack(fill="x", padx=PADDING_SM, pady=2)
            self._buttons[entry.module_id] = button

    def set_active(self, module_id: str) -> None:
        previous = self._buttons.get(self._active or "")
        if previous is not None:
            previous.configure(fg_color="transparent", font=FONT_SIDEBAR)
        current = self._buttons.get(module_id)
        if current is not None:
            current.configure(fg_color=SIDEBAR_ACTIVE, font=FONT_SIDEBAR_ACTIVE)
        self._active = module_id

    def refresh_week(self) -> None:
        """Re-read the clock; the shell calls this on every module switch."""
        now = self._clock()
        self._week_label.configure(text=f"SEMANA {week_number(now)}  ·  {month_year_label(now)}")

    def refresh_identity(self) -> None:
        user = self._session.get_current_user()
        self._avatar_label.configure(text=initials(user.full_name))
        self._name_label.configure(text=user.full_name or user.email)
        role = _ROLE_LABELS.get(str(user.role), str(user.role))
        self._detail_label.configure(text=f"{role}\n{cars_caption(user)}")
