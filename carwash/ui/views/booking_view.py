"""Booking View: the weekly wash dashboard.

Renders the state computed by ``BookingService.get_dashboard``: slot
confirmed, monthly limit reached, slots full, awaiting the window, or
the booking form.  Submitting goes through
``BookingService.submit_registration``, which re-checks everything
against fresh data; a refused booking re-renders from the snapshot it
returns.

**Thin UI Rule**: only reads and displays service results.
"""

from __future__ import annotations

from tkinter import messagebox
from typing import Optional

import customtkinter as ctk

from carwash.auth import SessionManager
from carwash.logger import StructuredLogger
from carwash.models.enums import BookingState, LocationType
from carwash.models.service_models import (
    BookingRequest,
    BookingResult,
    QuotaSnapshot,
    ServiceResult,
)
from carwash.services.booking_service import BookingService
from carwash.ui.module_frame import ModuleFrame
from carwash.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BUTTON,
    FONT_HEADING,
    FONT_LABEL,
    FONT_MONO,
    FONT_SMALL,
    INPUT_HEIGHT,
    PADDING_MD,
    PADDING_SM,
    STATE_BLOCKED,
    STATE_CONFIRMED,
    STATE_WAITING,
    STATE_WARNING,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

_BLOCKED_COPY: dict[BookingState, tuple[str, str, str]] = {
    BookingState.MONTHLY_CAPPED: (
        "Limite Mensal Atingido",
        "Já beneficiou da sua lavagem mensal. Deverá aguardar pelo próximo "
        "mês para uma nova inscrição.",
        STATE_WARNING,
    ),
    BookingState.WEEKLY_FULL: (
        "Inscrições Esgotadas",
        "Infelizmente não conseguiu um lugar nesta semana. Mas não desista, "
        "poderá tentar novamente na próxima semana!",
        STATE_BLOCKED,
    ),
    BookingState.WINDOW_CLOSED: (
        "Inscrições Indisponíveis",
        "As inscrições para a lavagem desta semana ainda não abriram. "
        "Aguarde até à abertura das inscrições.",
        STATE_WAITING,
    ),
}

_GUIDELINES: tuple[str, ...] = (
    "Quota mensal limitada a 1 lavagem por colaborador.",
    "As chaves devem ser depositadas na receção até às 09:30.",
    "Remova bens pessoais valiosos do interior do habitáculo.",
    "O cancelamento tardio pode resultar em suspensão da quota.",
)


class BookingView(ModuleFrame):
    """Weekly booking dashboard.

    Parameters
    ----------
    parent:
        Content container provided by the Host Shell.
    booking_service:
        Read side and write path of the booking flow.
    session:
        Supplies the logged-in user.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        parent: ctk.CTkFrame,
        booking_service: BookingService,
        session: SessionManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, title="Lavagem da Semana", logger=logger)
        self._booking = booking_service
        self._session = session

        self._content: Optional[ctk.CTkFrame] = None
        self._car_var = ctk.StringVar(value="")
        self._location_var = ctk.StringVar(value="")
        self._spot_entry: Optional[ctk.CTkEntry] = None
        self._form_error: Optional[ctk.CTkLabel] = None
        self._submit_button: Optional[ctk.CTkButton] = None

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        user = self._session.get_current_user()
        self.run_in_background(
            lambda: self._booking.get_dashboard(user),
            self._on_dashboard,
            name="booking-dashboard",
        )

    def _on_dashboard(self, result: ServiceResult[QuotaSnapshot]) -> None:
        if not result.success or result.data is None:
            self._render_message(
                "Sem ligação", result.error or "Não foi possível carregar.", STATE_BLOCKED,
            )
            self.show_status(result.error, error=True)
            return
        self.show_status(None)
        self._render(result.data)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _reset_content(self, snapshot: Optional[QuotaSnapshot] = None) -> ctk.CTkFrame:
        if self._content is not None:
            self._content.destroy()
        self._content = ctk.CTkScrollableFrame(self.body, fg_color="transparent")
        self._content.pack(fill="both", expand=True)

        if snapshot is not None:
            ctk.CTkLabel(
                self._content,
                text=(
                    f"Semana {snapshot.week_number} de {snapshot.week_year}  ·  "
                    f"{snapshot.weekly_count} de {snapshot.weekly_capacity} lugares ocupados"
                ),
                font=FONT_SMALL,
                text_color=TEXT_SECONDARY,
                anchor="w",
            ).pack(fill="x", pady=(0, PADDING_SM))
        return self._content

    def _render(self, snapshot: QuotaSnapshot) -> None:
        if snapshot.state == BookingState.ALREADY_REGISTERED:
            self._render_confirmed(snapshot)
        elif snapshot.state == BookingState.ELIGIBLE:
            self._render_form(snapshot)
        else:
            title, text, colour = _BLOCKED_COPY[snapshot.state]
            self._render_message(title, text, colour, snapshot)

    def _banner(self, parent: ctk.CTkFrame, title: str, text: str, colour: str) -> ctk.CTkFrame:
        card = ctk.CTkFrame(parent, fg_color=colour, corner_radius=CORNER_RADIUS)
        card.pack(fill="x", pady=(0, PADDING_MD))
        ctk.CTkLabel(
            card, text=title, font=FONT_HEADING, text_color=TEXT_LIGHT,
        ).pack(padx=PADDING_MD, pady=(PADDING_MD, 4))
        ctk.CTkLabel(
            card, text=text, font=FONT_BODY, text_color=TEXT_LIGHT, wraplength=560,
        ).pack(padx=PADDING_MD, pady=(0, PADDING_MD))
        return card

    def _render_message(
        self,
        title: str,
        text: str,
        colour: str,
        snapshot: Optional[QuotaSnapshot] = None,
    ) -> None:
        content = self._reset_content(snapshot)
        self._banner(content, title, text, colour)
        if snapshot is not None:
            ctk.CTkLabel(
                content,
                text=f"STATUS_CODE: {snapshot.state.value}",
                font=FONT_MONO,
                text_color=TEXT_SECONDARY,
            ).pack(pady=(0, PADDING_MD))

    def _render_confirmed(self, snapshot: QuotaSnapshot) -> None:
        registration = snapshot.registration_this_week
        content = self._reset_content(snapshot)
        self._banner(
            content,
            "Lavagem Agendada!",
            "O seu lugar está garantido para esta semana. No dia da lavagem, deve "
            "deixar a chave na receção e indicar onde o carro está estacionado.",
            STATE_CONFIRMED,
        )

        card = ctk.CTkFrame(content, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        card.pack(fill="x", pady=(0, PADDING_MD))

        ctk.CTkLabel(
            card, text="VIATURA", font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 0))
        ctk.CTkLabel(
            card, text=registration.car_details, font=FONT_BODY, text_color=TEXT_PRIMARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD)

        ctk.CTkLabel(
            card, text="LOCALIZAÇÃO", font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_SM, 0))
        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_MD))

        spot_entry = ctk.CTkEntry(row, height=INPUT_HEIGHT, font=FONT_BODY)
        spot_entry.insert(0, registration.parking_spot or "")
        spot_entry.pack(side="left", fill="x", expand=True, padx=(0, PADDING_SM))
        ctk.CTkButton(
            row,
            text="Guardar",
            width=100,
            height=INPUT_HEIGHT,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            command=lambda: self._save_spot(registration.id, spot_entry.get()),
        ).pack(side="left")

        ctk.CTkButton(
            content,
            text="CANCELAR INSCRIÇÃO",
            font=FONT_BUTTON,
            fg_color="transparent",
            border_width=1,
            border_color=ERROR_TEXT,
            text_color=ERROR_TEXT,
            hover_color="#fee2e2",
            command=lambda: self._cancel(registration.id),
        ).pack(anchor="e")

    def _render_form(self, snapshot: QuotaSnapshot) -> None:
        user = self._session.get_current_user()
        content = self._reset_content(snapshot)
        self._banner(
            content,
            "Inscrições Abertas!",
            f"Garanta agora o seu lugar. Restam {snapshot.weekly_remaining} lugares.",
            ACCENT_PRIMARY,
        )

        card = ctk.CTkFrame(content, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        card.pack(fill="x", pady=(0, PADDING_MD))

        ctk.CTkLabel(
            card, text="SELECIONAR VEÍCULO", font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 4))
        if user.cars:
            if not self._car_var.get() or user.find_car(self._car_var.get()) is None:
                self._car_var.set(user.cars[0].id)
            for car in user.cars:
                ctk.CTkRadioButton(
                    card,
                    text=car.description,
                    value=car.id,
                    variable=self._car_var,
                    font=FONT_BODY,
                ).pack(anchor="w", padx=PADDING_MD, pady=2)
        else:
            self._car_var.set("")
            ctk.CTkLabel(
                card,
                text="Nenhum carro registado no seu perfil.",
                font=FONT_BODY,
                text_color=ERROR_TEXT,
                anchor="w",
            ).pack(fill="x", padx=PADDING_MD)

        ctk.CTkLabel(
            card, text="TIPO DE LOCALIZAÇÃO", font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_SM, 4))
        location_row = ctk.CTkFrame(card, fg_color="transparent")
        location_row.pack(fill="x", padx=PADDING_MD)
        for location in LocationType:
            ctk.CTkRadioButton(
                location_row,
                text=location.label,
                value=location.value,
                variable=self._location_var,
                font=FONT_BODY,
            ).pack(side="left", padx=(0, PADDING_MD))

        ctk.CTkLabel(
            card, text="ONDE ESTÁ O CARRO?", font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_SM, 4))
        self._spot_entry = ctk.CTkEntry(
            card, height=INPUT_HEIGHT, font=FONT_BODY, placeholder_text="Ex: Lugar 102, Piso -2",
        )
        self._spot_entry.pack(fill="x", padx=PADDING_MD)

        self._form_error = ctk.CTkLabel(card, text="", font=FONT_SMALL, text_color=ERROR_TEXT)
        self._form_error.pack(fill="x", padx=PADDING_MD, pady=(4, 0))

        self._submit_button = ctk.CTkButton(
            card,
            text="CONFIRMAR AGENDAMENTO",
            height=44,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            state="normal" if user.cars else "disabled",
            command=self._submit,
        )
        self._submit_button.pack(fill="x", padx=PADDING_MD, pady=PADDING_MD)

        guidelines = ctk.CTkFrame(content, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        guidelines.pack(fill="x")
        ctk.CTkLabel(
            guidelines, text="Directivas de Serviço", font=FONT_LABEL, text_color=TEXT_PRIMARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 4))
        for line in _GUIDELINES:
            ctk.CTkLabel(
                guidelines, text=f"•  {line}", font=FONT_SMALL, text_color=TEXT_SECONDARY, anchor="w",
            ).pack(fill="x", padx=PADDING_MD)
        ctk.CTkFrame(guidelines, height=PADDING_SM, fg_color="transparent").pack()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _submit(self) -> None:
        if self.is_busy:
            return
        location = self._location_var.get()
        request = BookingRequest(
            car_id=self._car_var.get() or None,
            location_type=LocationType(location) if location else None,
            parking_spot=self._spot_entry.get() if self._spot_entry else "",
        )
        user = self._session.get_current_user()
        self._submit_button.configure(state="disabled", text="A CONFIRMAR…")
        self.run_in_background(
            lambda: self._booking.submit_registration(request, user),
            self._on_submitted,
            name="booking-submit",
        )

    def _on_submitted(self, result: BookingResult) -> None:
        if result.success:
            self.show_status("Inscrição confirmada.")
            if result.snapshot is not None:
                self._render(result.snapshot)
            else:
                self.refresh()
            return

        if result.snapshot is not None:
            self._render(result.snapshot)
            self.show_status(result.error_message, error=True)
            return

        # Validation or store error: the form is still on screen.
        if self._submit_button is not None and self._submit_button.winfo_exists():
            self._submit_button.configure(state="normal", text="CONFIRMAR AGENDAMENTO")
        if self._form_error is not None and self._form_error.winfo_exists():
            self._form_error.configure(text=result.error_message or "")
        self.show_status(result.error_message, error=True)

    def _cancel(self, registration_id: str) -> None:
        if not messagebox.askyesno(
            "Cancelar inscrição",
            "Tem a certeza que deseja cancelar a sua inscrição de lavagem para esta semana?",
        ):
            return
        user = self._session.get_current_user()
        self.run_in_background(
            lambda: self._booking.cancel_registration(registration_id, user),
            self._on_changed,
            name="booking-cancel",
        )

    def _save_spot(self, registration_id: str, spot: str) -> None:
        user = self._session.get_current_user()
        self.run_in_background(
            lambda: self._booking.update_parking_spot(registration_id, spot, user),
            self._on_changed,
            name="booking-spot",
        )

    def _on_changed(self, result: ServiceResult) -> None:
        if not result.success:
            self.show_status(result.error, error=True)
            return
        self.show_status("Alterações guardadas.")
        self.refresh()
