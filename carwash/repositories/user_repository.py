"""
User Repository.

Handles all user data access against the ``users`` table.  Cars are
stored inline on the user row (JSON column) because they are owned by the
user and never referenced elsewhere.
"""

from __future__ import annotations

from typing import Any, Optional

from carwash.models.user import User
from carwash.repositories.base_repository import BaseRepository
from carwash.utils.string_helpers import denormalize_keys, escape_like, normalize_keys


class UserRepository(BaseRepository):
    """Data access layer for User entities.

    Deleting a user does not touch registrations: they carry their own
    ``user_name`` / ``car_details`` snapshot.
    """

    TABLE = "users"

    def get_all(self) -> list[User]:
        """Fetch all users (credential columns included)."""
        def _op() -> list[User]:
            response = self.supabase.table(self.TABLE).select("*").execute()
            return [User(**normalize_keys(row)) for row in response.data or []]

        return self._run(_op, operation_name="get_all (users)")

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Fetch a user by primary key."""
        def _op() -> Optional[User]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return User(**normalize_keys(rows[0])) if rows else None

        return self._run(_op, operation_name="get_by_id (users)")

    def get_by_email(self, email: str) -> Optional[User]:
        """Fetch a user by email address, ignoring case.

        Older rows keep the address exactly as it was first typed
        (``Ana.Silva@Empresa.pt``), so the store is queried with ILIKE
        and the candidates are narrowed to an exact match of the
        normalised (stripped, lowercased) form.
        """
        normalized_email = email.strip().lower()

        def _op() -> Optional[User]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .ilike("email", escape_like(normalized_email))
                .execute()
            )
            for row in response.data or []:
                if str(row.get("email", "")).strip().lower() == normalized_email:
                    return User(**normalize_keys(row))
            return None

        return self._run(_op, operation_name="get_by_email (users)")

    def upsert(self, user: User) -> User:
        """Insert or replace a user by id.

        The legacy plaintext ``password`` column is always written as
        ``NULL`` so a migrated row never keeps its old secret.
        """
        payload = self._to_row(user)

        def _op() -> User:
            response = self.supabase.table(self.TABLE).upsert(payload).execute()
            rows = response.data or [payload]
            return User(**normalize_keys(rows[0]))

        saved = self._run(_op, operation_name="upsert (users)")
        self._logger.info("User upserted: %s", saved.id)
        return saved

    def delete(self, user_id: str) -> None:
        """Delete a user row by id."""
        def _op() -> None:
            self.supabase.table(self.TABLE).delete().eq("id", user_id).execute()

        self._run(_op, operation_name="delete (users)")
        self._logger.info("User deleted: %s", user_id)

    @staticmethod
    def _to_row(user: User) -> dict[str, Any]:
        row = denormalize_keys(user.model_dump(mode="json"))
        row["password"] = None
        return row
