"""Module Registry.

The sidebar modules (booking, history, profile, administration) register
here at startup.  After login the shell asks which ones the signed-in
user may open and in which sidebar section each belongs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from carwash.logger import StructuredLogger
from carwash.models.enums import UserRole
from carwash.models.user import User

if TYPE_CHECKING:
    import customtkinter as ctk

ALL_ROLES: frozenset[UserRole] = frozenset(UserRole)
ADMIN_ONLY: frozenset[UserRole] = frozenset({UserRole.ADMIN})

SECTION_GENERAL = "Geral"
SECTION_ADMIN = "Administração"


@dataclass(frozen=True)
class ModuleEntry:
    """One sidebar module.  ``factory`` builds its frame on first visit."""

    module_id: str
    display_name: str
    icon: str
    factory: Callable[["ctk.CTkFrame"], "ctk.CTkFrame"]
    required_roles: frozenset[UserRole] = ALL_ROLES

    @property
    def section(self) -> str:
        return SECTION_ADMIN if UserRole.USER not in self.required_roles else SECTION_GENERAL

    def visible_to(self, user: User) -> bool:
        return user.role in self.required_roles


class ModuleRegistry:
    def __init__(self, logger: StructuredLogger) -> None:
        self._entries: dict[str, ModuleEntry] = {}
        self._logger = logger
        self._default_id = ""

    def register(
        self,
        module_id: str,
        display_name: str,
        icon: str,
        factory: Callable[["ctk.CTkFrame"], "ctk.CTkFrame"],
        required_roles: frozenset[UserRole] = ALL_ROLES,
        *,
        default: bool = False,
    ) -> None:
        """Add a module; the first registered (or the one flagged
        ``default``) opens after login."""
        if module_id in self._entries:
            raise ValueError(f"Module '{module_id}' is already registered.")
        self._entries[module_id] = ModuleEntry(
            module_id, display_name, icon, factory, required_roles
        )
        if default or not self._default_id:
            self._default_id = module_id
        self._logger.debug("Module registered: %s", module_id)

    def modules_for(self, user: User) -> list[ModuleEntry]:
        return [entry for entry in self._entries.values() if entry.visible_to(user)]

    def sections_for(self, user: User) -> list[tuple[str, list[ModuleEntry]]]:
        """Visible modules grouped by sidebar section, general first."""
        grouped: dict[str, list[ModuleEntry]] = {SECTION_GENERAL: [], SECTION_ADMIN: []}
        for entry in self.modules_for(user):
            grouped[entry.section].append(entry)
        return [(title, entries) for title, entries in grouped.items() if entries]

    def landing_module_for(self, user: User) -> Optional[str]:
        """The default module if *user* may open it, else their first one."""
        visible = self.modules_for(user)
        if not visible:
            return None
        if any(entry.module_id == self._default_id for entry in visible):
            return self._default_id
        return visible[0].module_id

    def get(self, module_id: str) -> ModuleEntry:
        try:
            return self._entries[module_id]
        except KeyError:
            raise KeyError(f"Module '{module_id}' is not registered.") from None
