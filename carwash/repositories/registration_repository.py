"""
Registration Repository.

Data access for the ``registrations`` table.  Reads always go to the
store; nothing is cached, so callers that need authoritative counts
simply call :meth:`get_all` again.
"""

from __future__ import annotations

from typing import Optional

from carwash.models.registration import Registration
from carwash.repositories.base_repository import BaseRepository
from carwash.utils.string_helpers import denormalize_keys, normalize_keys


class RegistrationRepository(BaseRepository):
    """Data access layer for Registration entities."""

    TABLE = "registrations"

    def get_all(self) -> list[Registration]:
        """Fetch every registration."""
        def _op() -> list[Registration]:
            response = self.supabase.table(self.TABLE).select("*").execute()
            return [Registration(**normalize_keys(row)) for row in response.data or []]

        return self._run(_op, operation_name="get_all (registrations)")

    def get_by_id(self, registration_id: str) -> Optional[Registration]:
        """Fetch a registration by primary key, or ``None``."""
        def _op() -> Optional[Registration]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", registration_id)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return Registration(**normalize_keys(rows[0])) if rows else None

        return self._run(_op, operation_name="get_by_id (registrations)")

    def upsert(self, registration: Registration) -> Registration:
        """Insert or replace one registration by id."""
        return self.upsert_many([registration])[0]

    def upsert_many(self, registrations: list[Registration]) -> list[Registration]:
        """Insert or replace several registrations by id in one request."""
        if not registrations:
            return []
        payload = [
            denormalize_keys(reg.model_dump(mode="json")) for reg in registrations
        ]

        def _op() -> list[Registration]:
            response = self.supabase.table(self.TABLE).upsert(payload).execute()
            rows = response.data or payload
            return [Registration(**normalize_keys(row)) for row in rows]

        saved = self._run(_op, operation_name="upsert (registrations)")
        self._logger.info("Registrations upserted: %d", len(saved))
        return saved

    def update_parking_spot(
        self, registration_id: str, parking_spot: Optional[str],
    ) -> Optional[Registration]:
        """Change only ``parking_spot``.  Returns the updated row or ``None``."""
        def _op() -> Optional[Registration]:
            response = (
                self.supabase.table(self.TABLE)
                .update({"parkingSpot": parking_spot})
                .eq("id", registration_id)
                .execute()
            )
            rows = response.data or []
            return Registration(**normalize_keys(rows[0])) if rows else None

        return self._run(_op, operation_name="update_parking_spot (registrations)")

    def delete(self, registration_id: str) -> None:
        """Delete exactly the row with *registration_id*."""
        def _op() -> None:
            self.supabase.table(self.TABLE).delete().eq("id", registration_id).execute()

        self._run(_op, operation_name="delete (registrations)")
        self._logger.info("Registration deleted: %s", registration_id)
