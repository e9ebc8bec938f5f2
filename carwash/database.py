"""
Database Connection Layer.

Owns the Supabase client used for the three booking tables (``users``,
``registrations``, ``settings``).  Supabase is the only store: there is
no local cache and no offline mode, so an unreachable store is reported
to the caller as a failure.

Every PostgREST request carries a deadline (``timeout_s``); an expired
deadline surfaces as :class:`StoreTimeoutError`.

Data access is performed through the Repository pattern.  This module only
manages the client; it contains no query logic.

Usage (dependency injection at app startup)::

    from carwash.database import DatabaseManager
    from carwash.logger import StructuredLogger

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
        timeout_s=config.REMOTE_TIMEOUT_S,
    )
"""

from __future__ import annotations

from typing import Optional

from supabase import Client as SupabaseClient
from supabase import ClientOptions, create_client

from carwash.logger import StructuredLogger


class StoreError(RuntimeError):
    """A remote read or write failed (network, configuration, missing table)."""


class StoreTimeoutError(StoreError):
    """A remote call did not finish before its deadline."""


class DatabaseManager:
    """Manages the connection to the Supabase project.

    When ``supabase_url`` or ``supabase_key`` is empty the client is not
    created; the ``supabase`` property then raises :class:`StoreError`,
    which the repository layer reports like any other store failure.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
    supabase_key:
        The Supabase anonymous key.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    timeout_s:
        Deadline in seconds applied to every PostgREST request.
    client:
        Pre-built client.  When given, no connection is created from the
        URL and key.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
        timeout_s: float = 10.0,
        client: Optional[SupabaseClient] = None,
    ) -> None:
        self._logger = logger
        self._timeout_s = timeout_s
        self._supabase = client if client is not None else self._connect(supabase_url, supabase_key)

    def _connect(self, url: str, key: str) -> Optional[SupabaseClient]:
        if not (url and key):
            self._logger.warning("Supabase credentials not configured; remote store disabled.")
            return None
        try:
            client = create_client(
                url, key, options=ClientOptions(postgrest_client_timeout=self._timeout_s),
            )
        except Exception as exc:
            # create_client validates the URL and key format eagerly.
            self._logger.error(
                "Supabase client could not be created: %s. Remote store disabled.",
                exc,
                exc_info=not isinstance(exc, (ValueError, TypeError)),
            )
            return None
        self._logger.info("Supabase client ready (deadline %.1fs).", self._timeout_s)
        return client

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """Return the initialised Supabase client.

        Raises
        ------
        StoreError
            If the client was not initialised.
        """
        if self._supabase is None:
            raise StoreError(
                "Supabase client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return self._supabase

    @property
    def is_configured(self) -> bool:
        """``True`` when a Supabase client is available."""
        return self._supabase is not None

    @property
    def timeout_s(self) -> float:
        return self._timeout_s
