"""Collaborator boundary for the notification engine.

The engine reads user, channel and membership state through a Directory
and writes alerts through an AlertRenderer and a SoundPlayer. Hosts
provide their own implementations; InMemoryDirectory is the reference
store used by the websocket session and the tests.

Key principles:
- The engine never talks to stores or platforms directly
- Reads are synchronous and never block
- Writes are fire-and-forget
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol

from .models import AlertRequest, ChannelContext, NotifyPreference, UserProfile

# --------------------------------------------------------------------------
# Read Interfaces
# --------------------------------------------------------------------------


class Directory(Protocol):
    """Read-only view of the local user, channel and membership stores."""

    def current_user(self) -> UserProfile | None:
        """The receiving user, or None if not yet known."""
        ...

    def get_profile(self, user_id: str) -> UserProfile | None:
        """A locally known user by id."""
        ...

    def get_channel(self, channel_id: str) -> ChannelContext | None:
        """A locally known channel by id."""
        ...

    def get_member_override(
        self, channel_id: str, user_id: str
    ) -> NotifyPreference | None:
        """The member's per-channel desktop level, if any."""
        ...

    def current_channel_id(self) -> str | None:
        """The channel the user is currently viewing."""
        ...

    def group_display_name(self, channel_id: str) -> str:
        """A group channel's name, computed from its members."""
        ...


# --------------------------------------------------------------------------
# Write Interfaces
# --------------------------------------------------------------------------


class AlertRenderer(ABC):
    """Shows a native alert. Must not block."""

    @abstractmethod
    def request_alert(self, alert: AlertRequest) -> None:
        """Render the alert; the result is never consumed."""


class SoundPlayer(ABC):
    """Plays the notification sound. Must not block."""

    @abstractmethod
    def play_notification_sound(self) -> None:
        """Play the sound once."""


class CallbackAlertRenderer(AlertRenderer):
    """Renderer that forwards alerts to a callback."""

    def __init__(self, callback: Callable[[AlertRequest], None]) -> None:
        self._callback = callback

    def request_alert(self, alert: AlertRequest) -> None:
        """Call the callback with the alert."""
        self._callback(alert)


class NullSoundPlayer(SoundPlayer):
    """Sound player for hosts without audio."""

    def play_notification_sound(self) -> None:
        """Do nothing."""


# --------------------------------------------------------------------------
# Reference Store
# --------------------------------------------------------------------------


class InMemoryDirectory:
    """Dict-backed Directory implementation.

    Group channel membership is tracked separately so group names can be
    computed the same way the web client does.
    """

    def __init__(self, current_user: UserProfile | None = None) -> None:
        self._current_user_id: str | None = None
        self._profiles: dict[str, UserProfile] = {}
        self._channels: dict[str, ChannelContext] = {}
        self._overrides: dict[tuple[str, str], NotifyPreference] = {}
        self._members: dict[str, set[str]] = {}
        self._current_channel_id: str | None = None
        if current_user is not None:
            self.set_current_user(current_user)

    # Mutators -------------------------------------------------------------

    def set_current_user(self, user: UserProfile) -> None:
        """Record the receiving user (and their profile)."""
        self._profiles[user.id] = user
        self._current_user_id = user.id

    def add_profile(self, user: UserProfile) -> None:
        """Add or replace a user profile."""
        self._profiles[user.id] = user

    def add_channel(
        self, channel: ChannelContext, member_ids: set[str] | None = None
    ) -> None:
        """Add or replace a channel, optionally with its member ids."""
        self._channels[channel.id] = channel
        if member_ids is not None:
            self._members[channel.id] = set(member_ids)

    def set_member_override(
        self,
        channel_id: str,
        user_id: str,
        level: NotifyPreference | str | None,
    ) -> None:
        """Store a member's per-channel level; None clears it."""
        if level is None:
            self._overrides.pop((channel_id, user_id), None)
            return
        self._overrides[(channel_id, user_id)] = NotifyPreference.parse(level)

    def set_current_channel(self, channel_id: str | None) -> None:
        """Record the channel the user is viewing."""
        self._current_channel_id = channel_id

    def has_channel(self, channel_id: str) -> bool:
        """Whether the channel is locally known."""
        return channel_id in self._channels

    # Directory ------------------------------------------------------------

    def current_user(self) -> UserProfile | None:
        if self._current_user_id is None:
            return None
        return self._profiles.get(self._current_user_id)

    def get_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    def get_channel(self, channel_id: str) -> ChannelContext | None:
        return self._channels.get(channel_id)

    def get_member_override(
        self, channel_id: str, user_id: str
    ) -> NotifyPreference | None:
        return self._overrides.get((channel_id, user_id))

    def current_channel_id(self) -> str | None:
        return self._current_channel_id

    def group_display_name(self, channel_id: str) -> str:
        """Join the other members' usernames, sorted, with ", "."""
        names = sorted(
            self._profiles[user_id].username
            for user_id in self._members.get(channel_id, set())
            if user_id != self._current_user_id and user_id in self._profiles
        )
        if names:
            return ", ".join(names)
        channel = self._channels.get(channel_id)
        return channel.display_name if channel else ""
