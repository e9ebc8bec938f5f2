"""
Settings Repository.

The ``settings`` table holds exactly one row (``id = 1``).  A missing row
is not an error: callers receive ``None`` and decide whether to fall back
to defaults or persist them.
"""

from __future__ import annotations

from typing import Optional

from carwash.models.settings import SETTINGS_ROW_ID, AppSettings
from carwash.repositories.base_repository import BaseRepository
from carwash.utils.string_helpers import denormalize_keys, normalize_keys


class SettingsRepository(BaseRepository):
    """Data access layer for the AppSettings singleton."""

    TABLE = "settings"

    def get(self) -> Optional[AppSettings]:
        """Fetch the settings row, or ``None`` when it does not exist yet."""
        def _op() -> Optional[AppSettings]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", SETTINGS_ROW_ID)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return AppSettings(**normalize_keys(rows[0])) if rows else None

        return self._run(_op, operation_name="get (settings)")

    def save(self, settings: AppSettings) -> AppSettings:
        """Upsert the singleton row."""
        payload = {"id": SETTINGS_ROW_ID, **denormalize_keys(settings.model_dump(mode="json"))}

        def _op() -> None:
            self.supabase.table(self.TABLE).upsert(payload).execute()

        self._run(_op, operation_name="save (settings)")
        self._logger.info("Settings saved.")
        return settings
