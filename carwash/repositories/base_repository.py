"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase client)
- Logger reference
- A single error-translation point: any failure raised while talking to
  the store leaves this layer as ``StoreError`` / ``StoreTimeoutError``.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import httpx
from supabase import Client as SupabaseClient

from carwash.database import DatabaseManager, StoreError, StoreTimeoutError
from carwash.logger import StructuredLogger

T = TypeVar("T")


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client for remote operations."""
        return self._db.supabase

    def _run(self, op: Callable[[], T], *, operation_name: str) -> T:
        """Execute a store operation and translate its failures.

        Parameters
        ----------
        op:
            Zero-argument callable performing the Supabase query.
        operation_name:
            Human-readable label for log messages, e.g.
            ``"get_all (registrations)"``.

        Raises
        ------
        StoreTimeoutError
            When the request exceeded the client deadline.
        StoreError
            For every other failure (network, PostgREST error, missing
            table, unconfigured client, malformed row).
        """
        try:
            return op()
        except StoreError:
            raise
        except httpx.TimeoutException as exc:
            self._logger.error(
                "Store deadline exceeded for %s (%.1fs): %s",
                operation_name,
                self._db.timeout_s,
                exc,
            )
            raise StoreTimeoutError(
                f"The server did not answer in time ({operation_name})."
            ) from exc
        except Exception as exc:
            self._logger.error("Store operation %s failed: %s", operation_name, exc)
            raise StoreError(f"{operation_name} failed: {exc}") from exc
