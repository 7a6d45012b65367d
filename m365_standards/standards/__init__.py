from typing import Optional

from .base import BaseStandard, StandardContext
from .external_calendar_sharing import ExternalCalendarSharingStandard

ALL_STANDARDS = [
    ExternalCalendarSharingStandard,
]


def get_standard(name: str) -> Optional[type[BaseStandard]]:
    """Look up a standard class by name (case-insensitive)."""
    key = name.lower()
    for cls in ALL_STANDARDS:
        if cls.name.lower() == key:
            return cls
    return None


__all__ = [
    "BaseStandard",
    "StandardContext",
    "ExternalCalendarSharingStandard",
    "ALL_STANDARDS",
    "get_standard",
]
