"""Canonical platform identifiers and their spelling variants."""

from __future__ import annotations

from enum import Enum
from typing import Any


class Platform(str, Enum):
    """Canonical platform identifiers."""
    WEB = "Web"
    ANDROID = "Android"
    IOS = "iOS"
    BACKEND = "Backend"
    APP = "App"


# alias -> (platform, match only in the written case)
PLATFORM_ALIASES: dict[str, tuple[Platform, bool]] = {
    "Web": (Platform.WEB, False),
    "Frontend": (Platform.WEB, False),
    "FE": (Platform.WEB, True),
    "Android": (Platform.ANDROID, False),
    "iOS": (Platform.IOS, False),
    "Backend": (Platform.BACKEND, False),
    "BE": (Platform.BACKEND, True),
    "API": (Platform.BACKEND, True),
    "App": (Platform.APP, True),
    "Mobile": (Platform.APP, False),
}


def coerce_platform(value: Any) -> Platform:
    """Map a platform name or alias (any case) to its canonical ``Platform``.

    Raises:
        ValueError: If *value* is not a known platform.
    """
    if isinstance(value, Platform):
        return value
    key = str(value).strip().lower()
    for alias, (platform, _) in PLATFORM_ALIASES.items():
        if alias.lower() == key:
            return platform
    raise ValueError(f"Unknown platform: {value!r}")


def lookup_alias(word: str) -> Platform | None:
    """Resolve a word written in a document to a platform, honouring case rules."""
    for alias, (platform, case_sensitive) in PLATFORM_ALIASES.items():
        if case_sensitive:
            if word == alias:
                return platform
        elif word.lower() == alias.lower():
            return platform
    return None
