import httpx
import pytest

from conftest import build_user
from carwash.models.auth_models import AuthErrorCode


@pytest.fixture
def auth(services):
    return services["auth_service"]


@pytest.fixture
def hashed_user(fake_client, verifier):
    pw_hash, pw_salt = verifier.hash_password("Lavagem2025")
    return fake_client.seed_user(
        build_user(email="marta@empresa.pt", password_hash=pw_hash, password_salt=pw_salt)
    )


@pytest.fixture
def legacy_user(fake_client):
    return fake_client.seed_user(build_user(email="antigo@empresa.pt", password="123"))


def test_login_success_sets_session_without_secrets(auth, session, hashed_user):
    result = auth.login("  Marta@Empresa.PT ", "Lavagem2025")

    assert result.success
    assert result.user.id == hashed_user.id
    assert result.user.password_hash is None
    current = session.get_current_user()
    assert current.email == "marta@empresa.pt"
    assert current.password_hash is None
    assert current.password_salt is None


@pytest.mark.parametrize("email", ["marta@empresa.pt", "ninguem@empresa.pt"])
def test_wrong_password_and_unknown_email_look_the_same(auth, session, hashed_user, email):
    result = auth.login(email, "errada")

    assert result.error_code == AuthErrorCode.INVALID_CREDENTIALS
    assert result.error_message == "Credenciais inválidas. Tente novamente."
    assert not session.is_authenticated


def test_empty_fields_are_rejected_before_the_store(auth, fake_client):
    result = auth.login("", "x")
    assert result.error_code == AuthErrorCode.VALIDATION_ERROR
    assert fake_client.executed == []


def test_lockout_after_three_failures(auth, hashed_user):
    for _ in range(3):
        auth.login("marta@empresa.pt", "errada")

    locked, remaining = auth.check_rate_limit("marta@empresa.pt")
    assert locked
    assert 0 < remaining <= 31

    result = auth.login("marta@empresa.pt", "Lavagem2025")
    assert result.error_code == AuthErrorCode.RATE_LIMITED


def test_success_resets_the_failure_count(auth, hashed_user):
    auth.login("marta@empresa.pt", "errada")
    auth.login("marta@empresa.pt", "errada")
    assert auth.login("marta@empresa.pt", "Lavagem2025").success

    auth.login("marta@empresa.pt", "errada")
    assert auth.check_rate_limit("marta@empresa.pt") == (False, 0)


def test_legacy_plaintext_row_is_migrated(auth, legacy_user, fake_client, verifier):
    assert auth.login("antigo@empresa.pt", "123").success

    row = fake_client.rows("users")[0]
    assert row["password"] is None
    assert row["passwordHash"] and row["passwordSalt"]

    auth.logout()
    assert auth.login("antigo@empresa.pt", "123").success


def test_mixed_case_legacy_row_can_log_in_and_is_migrated(auth, session, fake_client):
    fake_client.tables["users"] = [
        {"id": "u-antiga", "firstName": "Ana", "lastName": "Antiga",
         "email": "Ana.Antiga@Empresa.pt", "role": "user", "cars": [], "password": "123"},
    ]

    result = auth.login("Ana.Antiga@Empresa.pt", "123")

    assert result.success
    assert session.get_current_user().id == "u-antiga"
    row = fake_client.rows("users")[0]
    assert row["email"] == "ana.antiga@empresa.pt"
    assert row["password"] is None
    assert row["passwordHash"]


def test_failed_migration_does_not_block_login(auth, legacy_user, fake_client):
    # 1: lookup by email, 2: upsert with the new hash
    fake_client.fail_on(2, httpx.ConnectError("dropped"))
    assert auth.login("antigo@empresa.pt", "123").success
    assert fake_client.rows("users")[0]["password"] == "123"


@pytest.mark.parametrize(
    "exc, code",
    [
        (httpx.ConnectError("offline"), AuthErrorCode.NETWORK_ERROR),
        (httpx.ReadTimeout("slow"), AuthErrorCode.TIMEOUT_ERROR),
    ],
)
def test_store_failures(auth, hashed_user, fake_client, exc, code):
    fake_client.fail_all(exc)
    result = auth.login("marta@empresa.pt", "Lavagem2025")
    assert result.error_code == code
    assert auth.check_rate_limit("marta@empresa.pt") == (False, 0)


def test_logout_clears_the_session(auth, session, hashed_user):
    auth.login("marta@empresa.pt", "Lavagem2025")
    auth.logout()
    assert not session.is_authenticated


@pytest.mark.parametrize(
    "password, valid",
    [
        ("Lavagem2025", True),
        ("curta1A", False),
        ("semmaiusculas1", False),
        ("SEMMINUSCULAS1", False),
        ("SemAlgarismos", False),
    ],
)
def test_password_policy(auth, password, valid):
    assert auth.validate_password(password).is_valid is valid


def test_validate_email(auth):
    assert auth.validate_email("ana@empresa.pt").is_valid
    assert not auth.validate_email("ana@").is_valid
    assert auth.validate_email("").error_message == "O email é obrigatório."
    assert auth.normalize_email("  Ana@Empresa.PT ") == "ana@empresa.pt"


def test_change_password(auth, hashed_user):
    auth.login("marta@empresa.pt", "Lavagem2025")

    wrong = auth.change_password("errada", "NovaSenha99")
    assert wrong.error_code == AuthErrorCode.INVALID_CREDENTIALS

    weak = auth.change_password("Lavagem2025", "fraca")
    assert weak.error_code == AuthErrorCode.VALIDATION_ERROR

    assert auth.change_password("Lavagem2025", "NovaSenha99").success
    auth.logout()
    assert not auth.login("marta@empresa.pt", "Lavagem2025").success
    assert auth.login("marta@empresa.pt", "NovaSenha99").success


def test_change_password_requires_a_session(auth):
    result = auth.change_password("x", "NovaSenha99")
    assert result.error_code == AuthErrorCode.INVALID_CREDENTIALS


def test_rate_limited_result_reports_the_wait(auth, hashed_user):
    for _ in range(3):
        auth.login("marta@empresa.pt", "errada")

    result = auth.login("marta@empresa.pt", "Lavagem2025")
    assert result.error_code == AuthErrorCode.RATE_LIMITED
    assert 0 < result.retry_after_s <= 30
