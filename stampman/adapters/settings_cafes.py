"""Settings-backed CafeBackend adapter."""

import logging

from stampman.protocols.cafes import CafeInfo

logger = logging.getLogger(__name__)


class SettingsCafeBackend:
    """
    Adapter that implements CafeBackend from the STAMPMAN settings.

    Configuration in settings.py:
        STAMPMAN = {
            "CAFE_BACKEND": "stampman.adapters.settings_cafes.SettingsCafeBackend",
            "CAFE_STAMP_GOALS": {"CAFE-1": 10, "CAFE-2": 8},
        }

    Hosting projects with a café table should point CAFE_BACKEND at their
    own adapter instead.
    """

    def __init__(self, stamp_goals: dict[str, int] | None = None):
        if stamp_goals is None:
            from stampman.conf import stampman_settings

            stamp_goals = stampman_settings.CAFE_STAMP_GOALS
        self.stamp_goals = dict(stamp_goals)

    def get_cafe(self, cafe_id: str) -> CafeInfo | None:
        goal = self.stamp_goals.get(cafe_id)
        if goal is None:
            return None
        if goal < 1:
            logger.warning("Ignoring café %s with invalid stamp goal %r", cafe_id, goal)
            return None
        return CafeInfo(cafe_id=cafe_id, stamp_goal=int(goal))
