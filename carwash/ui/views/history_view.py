"""History View: past registrations.

Administrators see every registration, other users their own.  The
search box filters by name or car on the service side.
"""

from __future__ import annotations

from typing import Optional

import customtkinter as ctk

from carwash.auth import SessionManager
from carwash.logger import StructuredLogger
from carwash.models.registration import Registration
from carwash.models.service_models import ServiceResult
from carwash.services.booking_service import BookingService
from carwash.ui.module_frame import ModuleFrame
from carwash.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    FONT_BODY,
    FONT_BUTTON,
    FONT_LABEL,
    FONT_SMALL,
    INPUT_HEIGHT,
    PADDING_MD,
    PADDING_SM,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

_COLUMNS: tuple[tuple[str, int], ...] = (
    ("DATA", 110),
    ("SEMANA", 80),
    ("COLABORADOR", 200),
    ("VIATURA", 240),
    ("LOCALIZAÇÃO", 260),
)


class HistoryView(ModuleFrame):
    """Searchable list of registrations."""

    def __init__(
        self,
        parent: ctk.CTkFrame,
        booking_service: BookingService,
        session: SessionManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, title="Histórico", logger=logger)
        self._booking = booking_service
        self._session = session
        self._table: Optional[ctk.CTkScrollableFrame] = None

        toolbar = ctk.CTkFrame(self.body, fg_color="transparent")
        toolbar.pack(fill="x", pady=(0, PADDING_SM))

        self._search_entry = ctk.CTkEntry(
            toolbar,
            height=INPUT_HEIGHT,
            font=FONT_BODY,
            placeholder_text="Pesquisar por nome ou viatura",
        )
        self._search_entry.pack(side="left", fill="x", expand=True, padx=(0, PADDING_SM))
        self._search_entry.bind("<Return>", lambda _event: self.refresh())

        ctk.CTkButton(
            toolbar,
            text="Pesquisar",
            width=120,
            height=INPUT_HEIGHT,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            command=self.refresh,
        ).pack(side="left")

        header = ctk.CTkFrame(self.body, fg_color="transparent")
        header.pack(fill="x")
        for text, width in _COLUMNS:
            ctk.CTkLabel(
                header, text=text, width=width, font=FONT_LABEL,
                text_color=TEXT_SECONDARY, anchor="w",
            ).pack(side="left", padx=(PADDING_SM, 0))

    def refresh(self) -> None:
        user = self._session.get_current_user()
        search = self._search_entry.get()
        self.run_in_background(
            lambda: self._booking.list_history(user, search),
            self._on_history,
            name="history",
        )

    def _on_history(self, result: ServiceResult[list[Registration]]) -> None:
        if self._table is not None:
            self._table.destroy()
        self._table = ctk.CTkScrollableFrame(
            self.body, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS,
        )
        self._table.pack(fill="both", expand=True)

        if not result.success:
            self.show_status(result.error, error=True)
            return

        registrations = result.data or []
        self.show_status(f"{len(registrations)} registos")
        if not registrations:
            ctk.CTkLabel(
                self._table,
                text="Sem registos.",
                font=FONT_BODY,
                text_color=TEXT_SECONDARY,
            ).pack(pady=PADDING_MD)
            return

        for registration in registrations:
            self._add_row(registration)

    def _add_row(self, registration: Registration) -> None:
        row = ctk.CTkFrame(self._table, fg_color="transparent")
        row.pack(fill="x", pady=1)
        values = (
            registration.date.strftime("%d/%m/%Y"),
            f"{registration.week_number:02d}/{registration.week_year}",
            registration.user_name,
            registration.car_details,
            registration.parking_spot or "—",
        )
        for value, (_, width) in zip(values, _COLUMNS):
            ctk.CTkLabel(
                row, text=value, width=width, font=FONT_SMALL,
                text_color=TEXT_PRIMARY, anchor="w",
            ).pack(side="left", padx=(PADDING_SM, 0))
