"""
Stampman configuration.

Usage in settings.py:
    STAMPMAN = {
        "COOLDOWN_SECONDS": 300,
        "DAILY_LIMIT": 3,
        "CAFE_STAMP_GOALS": {"CAFE-1": 10},
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class StampmanSettings:
    """Stampman configuration settings."""

    # Rate guard (customer_scan earns only)
    COOLDOWN_SECONDS: int = 300
    DAILY_LIMIT: int = 3

    # Merchant redemption tokens
    TOKEN_TTL_SECONDS: int = 30
    TOKEN_LENGTH: int = 6
    TOKEN_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

    # Expired tokens younger than this survive the purge command
    TOKEN_CLEANUP_GRACE_SECONDS: int = 0

    # Café directory (stamp goals)
    CAFE_BACKEND: str = "stampman.adapters.settings_cafes.SettingsCafeBackend"
    CAFE_STAMP_GOALS: dict[str, int] = field(default_factory=dict)


def get_stampman_settings() -> StampmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STAMPMAN", {})
    return StampmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stampman_settings(), name)


stampman_settings = _LazySettings()
