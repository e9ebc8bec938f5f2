"""
User Management Service.

Administrative account operations (listing, creation, edits, password
resets, deletion) plus the self-service profile update.

Architectural notes:
    - Every write re-reads the target row first so credential columns
      and fields the caller did not edit are carried over unchanged.
    - Deleting a user leaves registrations alone; they keep their own
      name and car snapshot.
    - Generated passwords are returned once in the result and never
      logged.
"""

from __future__ import annotations

from typing import Optional

from carwash.config import AppConfig
from carwash.database import StoreError
from carwash.logger import StructuredLogger
from carwash.models.enums import UserRole
from carwash.models.service_models import ServiceResult
from carwash.models.user import Car, User
from carwash.repositories.user_repository import UserRepository
from carwash.services.auth_service import AuthService
from carwash.services.base_service import BaseService
from carwash.services.credentials import CredentialVerifier, generate_temporary_password
from carwash.services.settings_service import forbidden, store_failure
from carwash.utils.audit import log_audit_event
from carwash.utils.calendar import format_plate


class UserService(BaseService):
    """Service layer for user management operations."""

    def __init__(
        self,
        repo: UserRepository,
        verifier: CredentialVerifier,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._verifier = verifier
        self._config = config

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def list_users(self, current_user: User) -> ServiceResult[list[User]]:
        """All accounts, sorted by name, without credential fields."""
        if not current_user.is_admin:
            return forbidden("consultar os utilizadores")

        try:
            users = self._repo.get_all()
        except StoreError as exc:
            self._logger.error("Failed to fetch users: %s", exc)
            return store_failure(exc)

        users.sort(key=lambda u: u.full_name.casefold())
        return ServiceResult(success=True, data=[_strip_secrets(u) for u in users])

    def create_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        current_user: User,
        phone: str = "",
        role: UserRole = UserRole.USER,
    ) -> ServiceResult[tuple[User, str]]:
        """Create an account with a generated temporary password.

        ``data`` is ``(user, temporary_password)``; the password is shown
        to the administrator once and must be passed on to the user.
        """
        if not current_user.is_admin:
            return forbidden("criar utilizadores")

        email_check = AuthService.validate_email(email)
        if not email_check.is_valid:
            return ServiceResult(success=False, error=email_check.error_message, status_code=400)
        if not first_name.strip():
            return ServiceResult(success=False, error="O nome é obrigatório.", status_code=400)

        try:
            if self._repo.get_by_email(email) is not None:
                return ServiceResult(
                    success=False,
                    error="Já existe um utilizador com este email.",
                    status_code=409,
                )

            temporary_password = generate_temporary_password()
            pw_hash, pw_salt = self._verifier.hash_password(temporary_password)
            created = self._repo.upsert(
                User(
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                    phone=phone.strip(),
                    email=email,
                    role=role,
                    password_hash=pw_hash,
                    password_salt=pw_salt,
                )
            )
        except StoreError as exc:
            self._logger.error("Failed to create user %s: %s", email, exc)
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action="CREATE_USER",
            entity_type="User",
            entity_id=created.id,
            user_id=current_user.id,
            details={"email": created.email, "role": str(created.role)},
        )
        return ServiceResult(
            success=True,
            data=(_strip_secrets(created), temporary_password),
            status_code=201,
        )

    def update_user(
        self,
        user_id: str,
        current_user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> ServiceResult[User]:
        """Admin edit of identity fields and role."""
        if not current_user.is_admin:
            return forbidden("editar utilizadores")
        if user_id == current_user.id and role is not None and role != UserRole.ADMIN:
            return ServiceResult(
                success=False,
                error="Não pode retirar a sua própria função de administrador.",
                status_code=400,
            )

        changes: dict[str, object] = {}
        if first_name is not None:
            changes["first_name"] = first_name.strip()
        if last_name is not None:
            changes["last_name"] = last_name.strip()
        if phone is not None:
            changes["phone"] = phone.strip()
        if role is not None:
            changes["role"] = role
        if email is not None:
            email_check = AuthService.validate_email(email)
            if not email_check.is_valid:
                return ServiceResult(success=False, error=email_check.error_message, status_code=400)
            changes["email"] = AuthService.normalize_email(email)

        try:
            user = self._repo.get_by_id(user_id)
            if user is None:
                return ServiceResult(success=False, error="Utilizador não encontrado.", status_code=404)
            if "email" in changes and changes["email"] != user.email:
                other = self._repo.get_by_email(str(changes["email"]))
                if other is not None and other.id != user_id:
                    return ServiceResult(
                        success=False,
                        error="Já existe um utilizador com este email.",
                        status_code=409,
                    )
            updated = self._repo.upsert(
                self._with_hashed_credentials(User.model_validate({**user.model_dump(), **changes}))
            )
        except StoreError as exc:
            self._logger.error("Failed to update user %s: %s", user_id, exc)
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action="UPDATE_USER",
            entity_type="User",
            entity_id=user_id,
            user_id=current_user.id,
            details={key: str(value) for key, value in changes.items()},
        )
        return ServiceResult(success=True, data=_strip_secrets(updated))

    def reset_password(
        self, user_id: str, current_user: User,
    ) -> ServiceResult[str]:
        """Replace a user's password with a generated temporary one.

        ``data`` is the temporary password.
        """
        if not current_user.is_admin:
            return forbidden("repor palavras-passe")

        try:
            user = self._repo.get_by_id(user_id)
            if user is None:
                return ServiceResult(success=False, error="Utilizador não encontrado.", status_code=404)
            temporary_password = generate_temporary_password()
            pw_hash, pw_salt = self._verifier.hash_password(temporary_password)
            self._repo.upsert(
                user.model_copy(
                    update={"password_hash": pw_hash, "password_salt": pw_salt, "password": None},
                )
            )
        except StoreError as exc:
            self._logger.error("Password reset failed for %s: %s", user_id, exc)
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action="RESET_PASSWORD",
            entity_type="User",
            entity_id=user_id,
            user_id=current_user.id,
            details={"performed_by": current_user.full_name},
        )
        self._logger.info("Password reset for user %s", user.full_name)
        return ServiceResult(success=True, data=temporary_password)

    def delete_user(self, user_id: str, current_user: User) -> ServiceResult[str]:
        """Delete an account.  Registrations are left untouched."""
        if not current_user.is_admin:
            return forbidden("eliminar utilizadores")
        if user_id == current_user.id:
            return ServiceResult(
                success=False,
                error="Não pode eliminar a sua própria conta.",
                status_code=400,
            )

        try:
            self._repo.delete(user_id)
        except StoreError as exc:
            self._logger.error("Failed to delete user %s: %s", user_id, exc)
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action="DELETE_USER",
            entity_type="User",
            entity_id=user_id,
            user_id=current_user.id,
        )
        return ServiceResult(success=True, data=user_id)

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    def update_profile(
        self,
        current_user: User,
        first_name: str,
        last_name: str,
        phone: str,
        cars: list[Car],
        new_password: Optional[str] = None,
    ) -> ServiceResult[User]:
        """Save the logged-in user's own profile and car list.

        Plates are normalised; cars without brand, model and plate are
        rejected.  ``data`` is the saved user without credential fields,
        suitable for replacing the session user.
        """
        if not first_name.strip():
            return ServiceResult(success=False, error="O nome é obrigatório.", status_code=400)

        normalized_cars: list[Car] = []
        for car in cars:
            plate = format_plate(car.license_plate)
            if not car.brand or not car.model or not plate:
                return ServiceResult(
                    success=False,
                    error="Preencha a marca, o modelo e a matrícula de cada carro.",
                    status_code=400,
                )
            normalized_cars.append(car.model_copy(update={"license_plate": plate}))

        if new_password:
            pw_check = AuthService.validate_password(new_password)
            if not pw_check.is_valid:
                return ServiceResult(success=False, error=pw_check.error_message, status_code=400)

        try:
            stored = self._repo.get_by_id(current_user.id)
            if stored is None:
                return ServiceResult(success=False, error="Utilizador não encontrado.", status_code=404)

            changes: dict[str, object] = {
                "first_name": first_name.strip(),
                "last_name": last_name.strip(),
                "phone": phone.strip(),
                "cars": normalized_cars,
            }
            if new_password:
                pw_hash, pw_salt = self._verifier.hash_password(new_password)
                changes.update(password_hash=pw_hash, password_salt=pw_salt, password=None)

            saved = self._repo.upsert(
                self._with_hashed_credentials(stored.model_copy(update=changes))
            )
        except StoreError as exc:
            self._logger.error("Profile update failed for %s: %s", current_user.id, exc)
            return store_failure(exc)

        log_audit_event(
            logger=self._logger,
            action="UPDATE_PROFILE",
            entity_type="User",
            entity_id=saved.id,
            user_id=current_user.id,
            details={
                "cars": str(len(saved.cars)),
                "password_changed": str(bool(new_password)),
            },
        )
        return ServiceResult(success=True, data=_strip_secrets(saved))

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def ensure_bootstrap_admin(self) -> ServiceResult[Optional[str]]:
        """Create the configured administrator when ``users`` is empty.

        ``data`` is the temporary password when one had to be generated
        (``BOOTSTRAP_ADMIN_PASSWORD`` unset), otherwise ``None``.
        """
        try:
            if self._repo.get_all():
                return ServiceResult(success=True, data=None)

            configured = self._config.BOOTSTRAP_ADMIN_PASSWORD.get_secret_value()
            password = configured or generate_temporary_password()
            pw_hash, pw_salt = self._verifier.hash_password(password)
            admin = self._repo.upsert(
                User(
                    first_name="Administrador",
                    email=self._config.BOOTSTRAP_ADMIN_EMAIL,
                    role=UserRole.ADMIN,
                    password_hash=pw_hash,
                    password_salt=pw_salt,
                )
            )
        except StoreError as exc:
            self._logger.error("Bootstrap admin check failed: %s", exc)
            return store_failure(exc)

        self._logger.warning(
            "No users found; created administrator %s.", admin.email,
        )
        return ServiceResult(
            success=True,
            data=None if configured else password,
            status_code=201,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _with_hashed_credentials(self, user: User) -> User:
        """Hash a legacy plaintext password before the row is re-saved.

        The repository never writes the plaintext column, so an unmigrated
        row would otherwise lose its only credential.
        """
        if self._verifier.needs_migration(user) and user.password:
            pw_hash, pw_salt = self._verifier.hash_password(user.password)
            return user.model_copy(
                update={"password_hash": pw_hash, "password_salt": pw_salt, "password": None},
            )
        return user


def _strip_secrets(user: User) -> User:
    return user.model_copy(
        update={"password_hash": None, "password_salt": None, "password": None},
    )
