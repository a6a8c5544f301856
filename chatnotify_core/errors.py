"""Error types for the chat notification core.

Owned by the Desktop Notifications team.
"""

from __future__ import annotations


class ChatNotifyError(Exception):
    """Base error for chat notification failures."""


class ChatNotifyTimeout(ChatNotifyError):
    """Timeout while communicating with the chat server."""


class ChatNotifyConnectionError(ChatNotifyError):
    """Network connection to the chat server failed."""


class ChatNotifyHandshakeError(ChatNotifyError):
    """WebSocket handshake or authentication failed."""


class ChatNotifyResponseError(ChatNotifyError):
    """HTTP response error from the chat server."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class ConfigLoadError(ChatNotifyError):
    """Error loading or validating the notification config."""
