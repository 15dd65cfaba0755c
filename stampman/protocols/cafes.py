"""Café directory protocol."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class CafeInfo:
    """Café configuration stampman reads but never owns."""

    cafe_id: str
    stamp_goal: int


@runtime_checkable
class CafeBackend(Protocol):
    """
    Protocol for looking up café loyalty configuration.

    Configuration in settings.py:
        STAMPMAN = {
            "CAFE_BACKEND": "stampman.adapters.settings_cafes.SettingsCafeBackend",
        }
    """

    def get_cafe(self, cafe_id: str) -> CafeInfo | None:
        """Return café configuration, or None if the café does not exist."""
        ...
