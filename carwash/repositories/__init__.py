"""
Repository Layer Package.

Data-access abstractions over the Supabase tables.  All store operations
flow through repositories; services never touch ``db.supabase`` directly.
"""

from carwash.repositories.base_repository import BaseRepository
from carwash.repositories.registration_repository import RegistrationRepository
from carwash.repositories.settings_repository import SettingsRepository
from carwash.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "RegistrationRepository",
    "SettingsRepository",
    "UserRepository",
]
