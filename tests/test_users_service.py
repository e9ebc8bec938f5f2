import pytest
from pydantic import SecretStr

from conftest import NOW, build_registration, build_user
from carwash.config import AppConfig
from carwash.models.enums import UserRole
from carwash.models.user import Car
from carwash.services import create_services


@pytest.fixture
def users(services):
    return services["user_service"]


@pytest.fixture
def auth(services):
    return services["auth_service"]


def test_list_users_is_admin_only(users, user):
    assert users.list_users(user).status_code == 403


def test_list_users_sorted_without_secrets(users, admin, fake_client, verifier):
    pw_hash, pw_salt = verifier.hash_password("Qualquer1")
    fake_client.seed_user(
        build_user(email="bea@empresa.pt", first_name="Beatriz", password_hash=pw_hash, password_salt=pw_salt)
    )
    result = users.list_users(admin)

    assert [u.first_name for u in result.data] == ["Beatriz", "Rui"]
    assert all(u.password_hash is None and u.password_salt is None for u in result.data)


def test_create_user_returns_a_working_temporary_password(users, auth, admin, fake_client):
    result = users.create_user("Carla", "Mendes", "Carla.Mendes@Empresa.pt", admin)

    assert result.status_code == 201
    created, temporary = result.data
    assert created.email == "carla.mendes@empresa.pt"
    assert created.role == UserRole.USER
    assert created.password_hash is None
    assert temporary and temporary != "123"
    assert auth.login("carla.mendes@empresa.pt", temporary).success


def test_create_user_rejects_duplicates_and_bad_input(users, admin, user):
    assert users.create_user("Ana", "Outra", user.email, admin).status_code == 409
    assert users.create_user("Ana", "Outra", "sem-arroba", admin).status_code == 400
    assert users.create_user(" ", "Outra", "nova@empresa.pt", admin).status_code == 400


def test_create_user_is_admin_only(users, user):
    assert users.create_user("X", "Y", "x@empresa.pt", user).status_code == 403


def test_reset_password(users, auth, admin, fake_client, verifier):
    pw_hash, pw_salt = verifier.hash_password("Antiga2024")
    target = fake_client.seed_user(
        build_user(email="reset@empresa.pt", password_hash=pw_hash, password_salt=pw_salt)
    )

    result = users.reset_password(target.id, admin)

    assert result.success
    assert not auth.login("reset@empresa.pt", "Antiga2024").success
    assert auth.login("reset@empresa.pt", result.data).success


def test_reset_password_unknown_user(users, admin):
    assert users.reset_password("missing", admin).status_code == 404


def test_delete_user_keeps_registrations(users, admin, user, fake_client):
    fake_client.seed_registration(build_registration(user, NOW))

    assert users.delete_user(user.id, admin).success
    assert [row["id"] for row in fake_client.rows("users")] == [admin.id]
    assert len(fake_client.rows("registrations")) == 1


def test_admin_cannot_delete_self(users, admin):
    assert users.delete_user(admin.id, admin).status_code == 400


def test_update_user(users, admin, user, fake_client):
    result = users.update_user(user.id, admin, phone=" 912345678 ", role=UserRole.ADMIN)

    assert result.data.phone == "912345678"
    assert result.data.role == UserRole.ADMIN
    row = next(r for r in fake_client.rows("users") if r["id"] == user.id)
    assert row["role"] == "admin"
    assert row["cars"][0]["licensePlate"] == "AA00BB"


def test_update_user_guards(users, admin, user):
    assert users.update_user(admin.id, admin, role=UserRole.USER).status_code == 400
    assert users.update_user(user.id, admin, email=admin.email).status_code == 409
    assert users.update_user("missing", admin, phone="1").status_code == 404


def test_admin_edit_preserves_a_legacy_password(users, auth, admin, fake_client):
    legacy = fake_client.seed_user(build_user(email="legado@empresa.pt", password="segredo"))
    users.update_user(legacy.id, admin, first_name="Renamed")
    assert auth.login("legado@empresa.pt", "segredo").success


def test_update_profile_normalises_plates(users, user, fake_client):
    cars = [
        user.cars[0],
        Car(brand="Renault", model="Clio", license_plate="11-aa-22"),
    ]
    result = users.update_profile(user, "Ana", "Silva", "", cars)

    assert result.success
    assert [c.license_plate for c in result.data.cars] == ["AA00BB", "11AA22"]
    assert result.data.cars[0].id == user.cars[0].id
    assert fake_client.rows("users")[0]["cars"][1]["licensePlate"] == "11AA22"


def test_update_profile_rejects_incomplete_cars(users, user):
    result = users.update_profile(user, "Ana", "Silva", "", [Car(brand="Fiat", license_plate="XX")])
    assert result.status_code == 400


def test_update_profile_password(users, auth, user):
    assert users.update_profile(user, "Ana", "Silva", "", user.cars, new_password="fraca").status_code == 400

    assert users.update_profile(user, "Ana", "Silva", "", user.cars, new_password="Limpeza2025").success
    assert auth.login(user.email, "Limpeza2025").success


def test_bootstrap_admin_on_empty_store(users, auth, fake_client, config):
    result = users.ensure_bootstrap_admin()

    assert result.status_code == 201
    assert result.data
    rows = fake_client.rows("users")
    assert len(rows) == 1
    assert rows[0]["role"] == "admin"
    assert auth.login(config.BOOTSTRAP_ADMIN_EMAIL, result.data).success


def test_bootstrap_admin_is_a_no_op_when_users_exist(users, user, fake_client):
    result = users.ensure_bootstrap_admin()
    assert result.data is None
    assert len(fake_client.rows("users")) == 1


def test_bootstrap_admin_with_configured_password(db, session, logger, clock, verifier, fake_client):
    config = AppConfig(_env_file=None, BOOTSTRAP_ADMIN_PASSWORD=SecretStr("Inicial2025"))
    services = create_services(db, config, session, logger=logger, clock=clock, verifier=verifier)

    result = services["user_service"].ensure_bootstrap_admin()

    assert result.status_code == 201
    assert result.data is None
    assert services["auth_service"].login(config.BOOTSTRAP_ADMIN_EMAIL, "Inicial2025").success
