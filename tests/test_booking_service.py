from datetime import datetime

import httpx
import pytest

from conftest import LISBON, NOW, build_registration, build_user
from carwash.models.enums import BookingState, LocationType
from carwash.models.service_models import BookingErrorCode, BookingRequest
from carwash.models.settings import AppSettings
from carwash.models.user import Car


@pytest.fixture
def booking(services):
    return services["booking_service"]


def request_for(user, location=LocationType.GARAGE, spot="Lugar 102, Piso -2"):
    return BookingRequest(car_id=user.cars[0].id, location_type=location, parking_spot=spot)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def test_dashboard_eligible(booking, user, open_week):
    result = booking.get_dashboard(user)
    assert result.success
    assert result.data.state == BookingState.ELIGIBLE
    assert result.data.weekly_remaining == 10


def test_dashboard_without_settings_row_uses_closed_defaults(booking, user):
    result = booking.get_dashboard(user)
    assert result.data.state == BookingState.WINDOW_CLOSED
    assert result.data.weekly_capacity == 10


def test_dashboard_store_down(booking, user, fake_client):
    fake_client.fail_all(httpx.ConnectError("offline"))
    result = booking.get_dashboard(user)
    assert not result.success
    assert result.status_code == 503


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------

def test_submit_stores_a_snapshot_registration(booking, user, open_week, fake_client):
    result = booking.submit_registration(request_for(user), user)

    assert result.success
    assert result.overbooked is False
    assert result.snapshot.state == BookingState.ALREADY_REGISTERED

    rows = fake_client.rows("registrations")
    assert len(rows) == 1
    row = rows[0]
    assert row["userId"] == user.id
    assert row["userName"] == "Ana Silva"
    assert row["carDetails"] == "Seat Ibiza (AA00BB)"
    assert row["weekNumber"] == 11
    assert (row["month"], row["year"]) == (3, 2025)
    assert row["parkingSpot"] == "Garagem: Lugar 102, Piso -2"


def test_submit_without_spot_detail_stores_location_label(booking, user, open_week, fake_client):
    booking.submit_registration(request_for(user, LocationType.OUTDOOR, spot="  "), user)
    assert fake_client.rows("registrations")[0]["parkingSpot"] == "Exterior"


@pytest.mark.parametrize(
    "request_kwargs, message",
    [
        ({"car_id": None, "location_type": LocationType.GARAGE}, "Selecione um veículo do seu perfil."),
        ({"car_id": "not-my-car", "location_type": LocationType.GARAGE}, "Selecione um veículo do seu perfil."),
        ({"location_type": None}, "Indique o tipo de localização do carro."),
        (
            # "Garagem: " + 112 characters is 121 stored characters.
            {"location_type": LocationType.GARAGE, "parking_spot": "x" * 112},
            "A localização não pode exceder 120 caracteres.",
        ),
    ],
)
def test_local_validation_makes_no_store_calls(booking, user, fake_client, request_kwargs, message):
    kwargs = {"car_id": user.cars[0].id, **request_kwargs}
    result = booking.submit_registration(BookingRequest(**kwargs), user)

    assert not result.success
    assert result.error_code == BookingErrorCode.VALIDATION_ERROR
    assert result.error_message == message
    assert fake_client.executed == []


def test_spot_at_the_limit_can_be_saved_again(booking, user, open_week, fake_client):
    result = booking.submit_registration(request_for(user, spot="x" * 111), user)
    assert result.success

    stored = fake_client.rows("registrations")[0]["parkingSpot"]
    assert len(stored) == 120
    assert booking.update_parking_spot(result.registration.id, stored, user).success


def test_user_without_cars_cannot_book(booking, fake_client, open_week):
    carless = fake_client.seed_user(build_user(email="sem.carro@empresa.pt", cars=[]))
    result = booking.submit_registration(
        BookingRequest(car_id=None, location_type=LocationType.GARAGE), carless,
    )
    assert result.error_code == BookingErrorCode.VALIDATION_ERROR


def test_closed_window_refuses_and_writes_nothing(booking, user, fake_client):
    fake_client.seed_settings(AppSettings(weekly_capacity=10))
    result = booking.submit_registration(request_for(user), user)

    assert not result.success
    assert result.error_code == BookingErrorCode.WINDOW_CLOSED
    assert result.snapshot.state == BookingState.WINDOW_CLOSED
    assert fake_client.rows("registrations") == []


def test_second_booking_same_week_is_refused(booking, user, open_week, fake_client):
    assert booking.submit_registration(request_for(user), user).success
    again = booking.submit_registration(request_for(user), user)

    assert again.error_code == BookingErrorCode.ALREADY_REGISTERED
    assert len(fake_client.rows("registrations")) == 1


def test_monthly_cap_blocks_a_later_week(booking, user, open_week, fake_client):
    fake_client.seed_registration(build_registration(user, datetime(2025, 3, 4, 9, 0, tzinfo=LISBON)))
    result = booking.submit_registration(request_for(user), user)

    assert result.error_code == BookingErrorCode.MONTHLY_CAPPED
    assert "Março de 2025" in result.error_message


def test_capacity_one_end_to_end(booking, user, fake_client):
    fake_client.seed_settings(
        AppSettings(weekly_capacity=1, manual_open_week=11, manual_open_year=2025)
    )
    colleague = fake_client.seed_user(build_user(email="joao@empresa.pt", first_name="João"))

    first = booking.submit_registration(request_for(user), user)
    second = booking.submit_registration(request_for(colleague), colleague)

    assert first.success
    assert not second.success
    assert second.error_code == BookingErrorCode.WEEKLY_FULL
    assert second.snapshot.weekly_count == 1
    assert len(fake_client.rows("registrations")) == 1


def test_concurrent_booking_is_flagged_as_overbooked(booking, user, fake_client):
    fake_client.seed_settings(
        AppSettings(weekly_capacity=1, manual_open_week=11, manual_open_year=2025)
    )
    rival = build_user(email="rival@empresa.pt")

    def sneak_in(table, op):
        if (table, op) == ("registrations", "upsert"):
            fake_client.hooks.clear()
            fake_client.seed_registration(build_registration(rival, NOW))

    fake_client.hooks.append(sneak_in)
    result = booking.submit_registration(request_for(user), user)

    assert result.success
    assert result.overbooked is True
    assert result.snapshot.weekly_count == 2
    assert len(fake_client.rows("registrations")) == 2


def test_read_failure_maps_to_store_error(booking, user, open_week, fake_client):
    fake_client.fail_all(httpx.ConnectError("offline"))
    result = booking.submit_registration(request_for(user), user)

    assert result.error_code == BookingErrorCode.STORE_ERROR
    assert result.snapshot is None


def test_timeout_maps_to_timeout_error(booking, user, open_week, fake_client):
    fake_client.fail_all(httpx.ReadTimeout("slow"))
    result = booking.submit_registration(request_for(user), user)
    assert result.error_code == BookingErrorCode.TIMEOUT_ERROR


def test_write_failure_keeps_the_fresh_snapshot(booking, user, open_week, fake_client):
    # 1: registrations read, 2: settings read, 3: upsert
    fake_client.fail_on(3, httpx.ConnectError("dropped"))
    result = booking.submit_registration(request_for(user), user)

    assert result.error_code == BookingErrorCode.STORE_ERROR
    assert result.snapshot.state == BookingState.ELIGIBLE
    assert fake_client.rows("registrations") == []


def test_failed_recount_still_reports_success(booking, user, open_week, fake_client):
    fake_client.fail_on(4, httpx.ConnectError("dropped"))
    result = booking.submit_registration(request_for(user), user)

    assert result.success
    assert result.registration is not None
    assert result.snapshot.state == BookingState.ELIGIBLE
    assert len(fake_client.rows("registrations")) == 1


# ---------------------------------------------------------------------------
# Cancel and parking spot
# ---------------------------------------------------------------------------

def test_owner_can_cancel(booking, user, fake_client):
    mine = fake_client.seed_registration(build_registration(user, NOW))
    kept = fake_client.seed_registration(build_registration(build_user(email="b@empresa.pt"), NOW))

    result = booking.cancel_registration(mine.id, user)

    assert result.success
    assert [r["id"] for r in fake_client.rows("registrations")] == [kept.id]


def test_cancel_frees_the_week(booking, user, open_week, fake_client):
    booked = booking.submit_registration(request_for(user), user)
    booking.cancel_registration(booked.registration.id, user)
    assert booking.get_dashboard(user).data.state == BookingState.ELIGIBLE


def test_other_user_cannot_cancel(booking, user, fake_client):
    mine = fake_client.seed_registration(build_registration(user, NOW))
    stranger = build_user(email="outro@empresa.pt")

    result = booking.cancel_registration(mine.id, stranger)

    assert result.status_code == 403
    assert len(fake_client.rows("registrations")) == 1


def test_admin_can_cancel_anyone(booking, user, admin, fake_client):
    mine = fake_client.seed_registration(build_registration(user, NOW))
    assert booking.cancel_registration(mine.id, admin).success
    assert fake_client.rows("registrations") == []


def test_cancel_missing_registration(booking, user):
    assert booking.cancel_registration("nope", user).status_code == 404


def test_update_parking_spot(booking, user, fake_client):
    mine = fake_client.seed_registration(build_registration(user, NOW, parking_spot="Garagem"))
    result = booking.update_parking_spot(mine.id, "  Exterior: junto à entrada ", user)

    assert result.success
    assert result.data.parking_spot == "Exterior: junto à entrada"
    rows = fake_client.rows("registrations")
    assert len(rows) == 1
    row = rows[0]
    assert row["parkingSpot"] == "Exterior: junto à entrada"
    assert row["id"] == mine.id
    assert row["userId"] == mine.user_id
    assert row["carId"] == mine.car_id
    assert row["carDetails"] == mine.car_details
    assert row["weekNumber"] == mine.week_number == 11
    assert (row["month"], row["year"]) == (mine.month, mine.year) == (3, 2025)


def test_update_parking_spot_rejects_long_text(booking, user, fake_client):
    mine = fake_client.seed_registration(build_registration(user, NOW))
    result = booking.update_parking_spot(mine.id, "x" * 121, user)
    assert result.status_code == 400
    assert fake_client.executed == []


def test_update_parking_spot_of_someone_else(booking, user, fake_client):
    mine = fake_client.seed_registration(build_registration(user, NOW))
    result = booking.update_parking_spot(mine.id, "Lugar 1", build_user(email="x@empresa.pt"))
    assert result.status_code == 403


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def test_history_is_scoped_and_sorted(booking, user, admin, fake_client):
    colleague = build_user(
        email="joao@empresa.pt",
        first_name="João",
        last_name="Pereira",
        cars=[Car(brand="Renault", model="Clio", license_plate="11AA22")],
    )
    older = fake_client.seed_registration(build_registration(user, datetime(2025, 2, 6, 9, 0, tzinfo=LISBON)))
    newer = fake_client.seed_registration(build_registration(user, NOW))
    theirs = fake_client.seed_registration(build_registration(colleague, datetime(2025, 3, 6, 9, 0, tzinfo=LISBON)))

    own = booking.list_history(user)
    assert [r.id for r in own.data] == [newer.id, older.id]

    everything = booking.list_history(admin)
    assert [r.id for r in everything.data] == [newer.id, theirs.id, older.id]

    by_car = booking.list_history(admin, search="  CLIO ")
    assert [r.id for r in by_car.data] == [theirs.id]

    by_name = booking.list_history(admin, search="joão")
    assert [r.id for r in by_name.data] == [theirs.id]

    unaccented = booking.list_history(admin, search="JOAO pereira")
    assert [r.id for r in unaccented.data] == [theirs.id]
