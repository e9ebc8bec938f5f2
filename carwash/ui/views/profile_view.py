"""Profile View: the logged-in user's own details and cars.

Saving goes through ``UserService.update_profile``; the returned user
replaces the session user so the booking form sees new cars at once.
"""

from __future__ import annotations

from typing import Callable, Optional

import customtkinter as ctk

from carwash.auth import SessionManager
from carwash.logger import StructuredLogger
from carwash.models.service_models import ServiceResult
from carwash.models.user import Car, User
from carwash.services.users import UserService
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
    INPUT_HEIGHT,
    PADDING_MD,
    PADDING_SM,
    TEXT_SECONDARY,
)


class _CarRow(ctk.CTkFrame):
    """Editable brand / model / plate row.  Keeps the car id across edits."""

    def __init__(
        self,
        parent: ctk.CTkFrame,
        car: Car,
        on_remove: Callable[["_CarRow"], None],
    ) -> None:
        super().__init__(parent, fg_color="transparent")
        self._car_id = car.id

        self._brand = ctk.CTkEntry(self, height=INPUT_HEIGHT, font=FONT_BODY, placeholder_text="Marca")
        self._model = ctk.CTkEntry(self, height=INPUT_HEIGHT, font=FONT_BODY, placeholder_text="Modelo")
        self._plate = ctk.CTkEntry(
            self, height=INPUT_HEIGHT, width=130, font=FONT_BODY, placeholder_text="Matrícula",
        )
        for entry, value in (
            (self._brand, car.brand),
            (self._model, car.model),
            (self._plate, car.license_plate),
        ):
            if value:
                entry.insert(0, value)

        self._brand.pack(side="left", fill="x", expand=True, padx=(0, PADDING_SM))
        self._model.pack(side="left", fill="x", expand=True, padx=(0, PADDING_SM))
        self._plate.pack(side="left", padx=(0, PADDING_SM))
        ctk.CTkButton(
            self,
            text="✕",
            width=INPUT_HEIGHT,
            height=INPUT_HEIGHT,
            fg_color="transparent",
            text_color=ERROR_TEXT,
            hover_color="#fee2e2",
            command=lambda: on_remove(self),
        ).pack(side="left")

    def to_car(self) -> Car:
        return Car(
            id=self._car_id,
            brand=self._brand.get(),
            model=self._model.get(),
            license_plate=self._plate.get(),
        )


class ProfileView(ModuleFrame):
    """Self-service profile editor.

    ``on_saved`` is called on the main thread after the session user has
    been replaced, so the shell can refresh the sidebar identity.
    """

    def __init__(
        self,
        parent: ctk.CTkFrame,
        user_service: UserService,
        session: SessionManager,
        logger: StructuredLogger,
        on_saved: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__(parent, title="O Meu Perfil", logger=logger)
        self._users = user_service
        self._session = session
        self._on_saved = on_saved
        self._car_rows: list[_CarRow] = []

        card = ctk.CTkScrollableFrame(self.body, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        card.pack(fill="both", expand=True)

        self._first_name = self._field(card, "NOME")
        self._last_name = self._field(card, "APELIDO")
        self._phone = self._field(card, "TELEFONE")

        ctk.CTkLabel(
            card, text="OS MEUS CARROS", font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 4))
        self._cars_frame = ctk.CTkFrame(card, fg_color="transparent")
        self._cars_frame.pack(fill="x", padx=PADDING_MD)
        ctk.CTkButton(
            card,
            text="+ Adicionar carro",
            font=FONT_BODY,
            fg_color="transparent",
            border_width=1,
            border_color=ACCENT_PRIMARY,
            text_color=ACCENT_PRIMARY,
            hover_color="#ecfeff",
            command=lambda: self._add_car_row(Car()),
        ).pack(anchor="w", padx=PADDING_MD, pady=PADDING_SM)

        self._new_password = self._field(card, "NOVA PALAVRA-PASSE (OPCIONAL)", show="•")

        self._error_label = ctk.CTkLabel(card, text="", font=FONT_BODY, text_color=ERROR_TEXT)
        self._error_label.pack(fill="x", padx=PADDING_MD)

        self._save_button = ctk.CTkButton(
            card,
            text="GUARDAR PERFIL",
            height=44,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            command=self._save,
        )
        self._save_button.pack(fill="x", padx=PADDING_MD, pady=PADDING_MD)

    @staticmethod
    def _field(parent: ctk.CTkFrame, label: str, show: str = "") -> ctk.CTkEntry:
        ctk.CTkLabel(
            parent, text=label, font=FONT_LABEL, text_color=TEXT_SECONDARY, anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_SM, 4))
        entry = ctk.CTkEntry(parent, height=INPUT_HEIGHT, font=FONT_BODY, show=show)
        entry.pack(fill="x", padx=PADDING_MD)
        return entry

    # ------------------------------------------------------------------
    # Populate
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        user = self._session.get_current_user()
        for entry, value in (
            (self._first_name, user.first_name),
            (self._last_name, user.last_name),
            (self._phone, user.phone),
        ):
            entry.delete(0, "end")
            entry.insert(0, value)
        self._new_password.delete(0, "end")
        self._error_label.configure(text="")

        for row in self._car_rows:
            row.destroy()
        self._car_rows.clear()
        for car in user.cars:
            self._add_car_row(car)

    def _add_car_row(self, car: Car) -> None:
        row = _CarRow(self._cars_frame, car, on_remove=self._remove_car_row)
        row.pack(fill="x", pady=2)
        self._car_rows.append(row)

    def _remove_car_row(self, row: _CarRow) -> None:
        self._car_rows.remove(row)
        row.destroy()

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _save(self) -> None:
        if self.is_busy:
            return
        user = self._session.get_current_user()
        first_name = self._first_name.get()
        last_name = self._last_name.get()
        phone = self._phone.get()
        cars = [row.to_car() for row in self._car_rows]
        new_password = self._new_password.get() or None

        self._save_button.configure(state="disabled")
        self.run_in_background(
            lambda: self._users.update_profile(
                user, first_name, last_name, phone, cars, new_password=new_password,
            ),
            self._on_saved_result,
            name="profile-save",
        )

    def _on_saved_result(self, result: ServiceResult[User]) -> None:
        self._save_button.configure(state="normal")
        if not result.success or result.data is None:
            self._error_label.configure(text=result.error or "")
            self.show_status(result.error, error=True)
            return

        self._session.set_current_user(result.data)
        self.refresh()
        self.show_status("Perfil atualizado.")
        if self._on_saved is not None:
            self._on_saved()
