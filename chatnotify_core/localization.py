"""Localized string lookup for alert text."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

# Message ids used when composing alerts, with their English defaults.
DIRECT_MESSAGE = ("notification.dm", "Direct Message")
SOMEONE = ("channel_loader.someone", "Someone")
UPLOADED_IMAGE = ("channel_loader.uploadedImage", " uploaded an image")
UPLOADED_FILE = ("channel_loader.uploadedFile", " uploaded a file")
SOMETHING_NEW = ("channel_loader.something", " did something new")
WROTE = ("channel_loader.wrote", " wrote: ")


class Localizer(Protocol):
    """Anything that can translate a message id."""

    def localize(self, message_id: str, default: str) -> str:
        """Return the translation for message_id, or default."""
        ...


class CatalogLocalizer:
    """Localizer backed by a flat id -> text mapping."""

    def __init__(self, catalog: Mapping[str, str] | None = None) -> None:
        self._catalog = dict(catalog or {})

    def localize(self, message_id: str, default: str) -> str:
        """Look up message_id, falling back to default when missing."""
        text = self._catalog.get(message_id)
        if text is None:
            return default
        return text


def localize_pair(localizer: Localizer, pair: tuple[str, str]) -> str:
    """Localize one of the (message_id, default) constants above."""
    message_id, default = pair
    return localizer.localize(message_id, default)
