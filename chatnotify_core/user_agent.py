"""Client variant detection from a User-Agent string.

Native clients play their own notification sound, so the engine needs to
know which kind of client it is running in.
"""

from __future__ import annotations

from enum import Enum


class ClientVariant(str, Enum):
    """Kinds of client the engine can be hosted in."""

    DESKTOP_NATIVE = "desktop_native"  # Windows/Linux desktop app
    PLATFORM_NATIVE = "platform_native"  # macOS desktop app
    MOBILE_NATIVE = "mobile_native"  # iOS/Android app
    BROWSER = "browser"

    @property
    def plays_own_sound(self) -> bool:
        """Native variants already play a sound with every alert."""
        return self is not ClientVariant.BROWSER


_MOBILE_APP_MARKERS = ("Mattermost Mobile", "MattermostApp", "Mobile Safari/App")


def classify_user_agent(user_agent: str) -> ClientVariant:
    """Classify the running client from its User-Agent header."""
    if any(marker in user_agent for marker in _MOBILE_APP_MARKERS):
        return ClientVariant.MOBILE_NATIVE

    if "Electron" in user_agent:
        if "Macintosh" in user_agent:
            return ClientVariant.PLATFORM_NATIVE
        return ClientVariant.DESKTOP_NATIVE

    return ClientVariant.BROWSER
