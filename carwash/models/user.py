"""
User and Car Models.

A user owns an ordered list of cars (composition).  Cars are never
referenced by foreign key elsewhere: registrations keep a text snapshot.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from carwash.models.enums import UserRole


def _new_id() -> str:
    return str(uuid.uuid4())


class Car(BaseModel):
    """A vehicle owned by a user."""

    id: str = Field(default_factory=_new_id)
    brand: str = ""
    model: str = ""
    license_plate: str = ""

    @field_validator("brand", "model", "license_plate", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Optional[str]) -> str:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @property
    def description(self) -> str:
        """Text snapshot stored on registrations, e.g. ``Seat Ibiza (AA00BB)``."""
        return f"{self.brand} {self.model} ({self.license_plate})"

    model_config = {"from_attributes": True}


class User(BaseModel):
    """Represents a staff account.

    ``email`` is the login identifier and is normalised (stripped,
    lowercased) on every construction.  ``password`` is the legacy
    plaintext column; it is only read to migrate a row to
    ``password_hash`` / ``password_salt`` and is never written back.
    """

    id: str = Field(default_factory=_new_id)
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str
    role: UserRole = UserRole.USER
    cars: list[Car] = Field(default_factory=list)
    password_hash: Optional[str] = Field(default=None, repr=False)
    password_salt: Optional[str] = Field(default=None, repr=False)
    password: Optional[str] = Field(default=None, repr=False)

    @field_validator("first_name", "last_name", "phone", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Optional[str]) -> str:
        return "" if v is None else v

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("cars", mode="before")
    @classmethod
    def _none_to_list(cls, v: Optional[list[dict[str, str]]]) -> list[dict[str, str]]:
        return [] if v is None else v

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def find_car(self, car_id: str) -> Optional[Car]:
        """Return the owned car with *car_id*, or ``None``."""
        return next((car for car in self.cars if car.id == car_id), None)

    model_config = {"from_attributes": True}
