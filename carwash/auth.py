"""
Session State.

``SessionManager`` holds the signed-in user for one desktop session.
Views call the store from worker threads, so every access is locked.

Usage::

    session = SessionManager(clock=lambda: local_now("Europe/Lisbon"))
    session.set_current_user(user)
    session.get_current_user().is_admin
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Optional

from carwash.models.user import User


class NotSignedInError(RuntimeError):
    """Raised when a view asks for the session user after logout."""


class SessionManager:
    """Injectable holder for the authenticated user.

    ``set_current_user`` is also how a profile edit is published: the
    sign-in time only changes when a different account signs in.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._lock = threading.RLock()
        self._clock = clock or datetime.now
        self._user: Optional[User] = None
        self._signed_in_at: Optional[datetime] = None

    def set_current_user(self, user: User) -> None:
        with self._lock:
            if self._user is None or self._user.id != user.id:
                self._signed_in_at = self._clock()
            self._user = user

    def get_current_user(self) -> User:
        with self._lock:
            if self._user is None:
                raise NotSignedInError("No user is signed in.")
            return self._user

    def clear(self) -> None:
        with self._lock:
            self._user = None
            self._signed_in_at = None

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._user is not None

    @property
    def signed_in_at(self) -> Optional[datetime]:
        """When the current user signed in, in the clock's timezone."""
        with self._lock:
            return self._signed_in_at
