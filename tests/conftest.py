"""Shared fixtures: an in-memory stand-in for the Supabase client and a
fully wired service container running against it."""

from __future__ import annotations

import copy
import re
from datetime import datetime
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

import pytest

from carwash.auth import SessionManager
from carwash.config import AppConfig
from carwash.database import DatabaseManager
from carwash.logger import StructuredLogger
from carwash.models.enums import UserRole
from carwash.models.registration import Registration
from carwash.models.settings import SETTINGS_ROW_ID, AppSettings
from carwash.models.user import Car, User
from carwash.services import ServiceContainer, create_services
from carwash.services.credentials import CredentialVerifier
from carwash.utils.calendar import week_number
from carwash.utils.string_helpers import denormalize_keys

LISBON = ZoneInfo("Europe/Lisbon")

# Thursday of ISO week 11, 2025.
NOW = datetime(2025, 3, 13, 10, 0, tzinfo=LISBON)


# ---------------------------------------------------------------------------
# Fake PostgREST client
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


def _like_to_regex(pattern: str) -> str:
    """PostgREST LIKE pattern to a regex: `%` and `*` are any run, `_` any
    single character, a backslash makes the next character literal."""
    parts = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif ch in "%*":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


class FakeQuery:
    """Chainable query recording filters until ``execute()``."""

    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self._client = client
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list[tuple[str, Callable[[Any], bool]]] = []
        self._limit: Optional[int] = None

    def select(self, _columns: str = "*") -> "FakeQuery":
        self._op = "select"
        return self

    def upsert(self, payload: Any) -> "FakeQuery":
        self._op = "upsert"
        self._payload = payload
        return self

    def update(self, values: dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = values
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, lambda cell: cell == value))
        return self

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        regex = re.compile(_like_to_regex(pattern), re.IGNORECASE | re.DOTALL)
        self._filters.append(
            (column, lambda cell: isinstance(cell, str) and regex.fullmatch(cell) is not None)
        )
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        return all(test(row.get(column)) for column, test in self._filters)

    def execute(self) -> FakeResponse:
        self._client.before_execute(self._table, self._op)
        rows = self._client.tables.setdefault(self._table, [])

        if self._op == "select":
            found = [copy.deepcopy(r) for r in rows if self._matches(r)]
            if self._limit is not None:
                found = found[: self._limit]
            return FakeResponse(found)

        if self._op == "upsert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            saved = []
            for item in payload:
                item = copy.deepcopy(item)
                for index, existing in enumerate(rows):
                    if existing.get("id") == item.get("id"):
                        rows[index] = {**existing, **item}
                        saved.append(copy.deepcopy(rows[index]))
                        break
                else:
                    rows.append(item)
                    saved.append(copy.deepcopy(item))
            return FakeResponse(saved)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self._payload))
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        removed = [r for r in rows if self._matches(r)]
        self._client.tables[self._table] = [r for r in rows if not self._matches(r)]
        return FakeResponse(removed)


class FakeSupabase:
    """Just enough of ``supabase.Client`` for the repositories.

    ``fail_all`` makes every request raise; ``fail_on(n, exc)`` makes
    only the *n*-th request from now raise.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.executed: list[tuple[str, str]] = []
        self._down: Optional[Exception] = None
        self._scheduled: dict[int, Exception] = {}
        self.hooks: list[Callable[[str, str], None]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    # --- failure injection -------------------------------------------------

    def fail_all(self, exc: Optional[Exception]) -> None:
        self._down = exc

    def fail_on(self, nth: int, exc: Exception) -> None:
        self._scheduled[len(self.executed) + nth] = exc

    def before_execute(self, table: str, op: str) -> None:
        self.executed.append((table, op))
        for hook in list(self.hooks):
            hook(table, op)
        if self._down is not None:
            raise self._down
        exc = self._scheduled.pop(len(self.executed), None)
        if exc is not None:
            raise exc

    # --- seeding -----------------------------------------------------------

    def seed_user(self, user: User) -> User:
        row = denormalize_keys(user.model_dump(mode="json"))
        self.tables.setdefault("users", []).append(row)
        return user

    def seed_registration(self, registration: Registration) -> Registration:
        row = denormalize_keys(registration.model_dump(mode="json"))
        self.tables.setdefault("registrations", []).append(row)
        return registration

    def seed_settings(self, settings: AppSettings) -> AppSettings:
        row = {"id": SETTINGS_ROW_ID, **denormalize_keys(settings.model_dump(mode="json"))}
        self.tables["settings"] = [row]
        return settings

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.get(table, [])


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def build_user(
    email: str = "ana.silva@empresa.pt",
    role: UserRole = UserRole.USER,
    cars: Optional[list[Car]] = None,
    **fields: Any,
) -> User:
    return User(
        first_name=fields.pop("first_name", "Ana"),
        last_name=fields.pop("last_name", "Silva"),
        email=email,
        role=role,
        cars=cars if cars is not None else [Car(brand="Seat", model="Ibiza", license_plate="AA00BB")],
        **fields,
    )


def build_registration(
    user: User,
    when: datetime,
    parking_spot: Optional[str] = None,
) -> Registration:
    car = user.cars[0] if user.cars else Car(brand="?", model="?", license_plate="?")
    return Registration(
        user_id=user.id,
        car_id=car.id,
        user_name=user.full_name,
        car_details=car.description,
        date=when,
        week_number=week_number(when),
        month=when.month,
        year=when.year,
        parking_spot=parking_spot,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(name="carwash.tests", log_file="")


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(_env_file=None, SUPABASE_URL="", AUTO_SCHEDULE_ENABLED=False)


@pytest.fixture
def verifier() -> CredentialVerifier:
    return CredentialVerifier(iterations=1_000)


@pytest.fixture
def fake_client() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def db(fake_client: FakeSupabase, logger: StructuredLogger) -> DatabaseManager:
    return DatabaseManager(
        supabase_url="",
        supabase_key="",
        logger=logger,
        client=fake_client,
    )


@pytest.fixture
def session(clock: Callable[[], datetime]) -> SessionManager:
    return SessionManager(clock=clock)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    logger: StructuredLogger,
    clock: Callable[[], datetime],
    verifier: CredentialVerifier,
) -> ServiceContainer:
    return create_services(
        db=db,
        config=config,
        session=session,
        logger=logger,
        clock=clock,
        verifier=verifier,
    )


@pytest.fixture
def user(fake_client: FakeSupabase) -> User:
    return fake_client.seed_user(build_user())


@pytest.fixture
def admin(fake_client: FakeSupabase) -> User:
    return fake_client.seed_user(
        build_user(
            email="gestor@empresa.pt",
            role=UserRole.ADMIN,
            first_name="Rui",
            last_name="Costa",
        )
    )


@pytest.fixture
def open_week(fake_client: FakeSupabase) -> AppSettings:
    """Settings with a manual open on the current week and capacity 10."""
    return fake_client.seed_settings(
        AppSettings(weekly_capacity=10, manual_open_week=11, manual_open_year=2025)
    )
