"""Canonical data types for notification decisions.

These are the shapes that cross the boundary between the transport
layer, the local stores and the decision logic. All of them are plain
dataclasses or enums with no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Alert duration used when the user has not configured one.
DEFAULT_NOTIFICATION_DURATION_MS = 5000


class ChannelType(str, Enum):
    """Channel kinds, using the chat server's one-letter wire codes."""

    DIRECT = "D"
    GROUP = "G"
    OPEN = "O"
    PRIVATE = "P"

    @classmethod
    def parse(cls, value: object) -> ChannelType | None:
        """Parse a wire value, returning None for anything unrecognized."""
        if isinstance(value, ChannelType):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None

    @property
    def is_standard(self) -> bool:
        """Open and private channels carry their own display name."""
        return self in (ChannelType.OPEN, ChannelType.PRIVATE)


class NotifyPreference(str, Enum):
    """Desktop notification level.

    DEFAULT is the "no override" marker used by the preference store and
    must keep its wire value.
    """

    DEFAULT = "default"
    ALL = "all"
    MENTION = "mention"
    NONE = "none"

    @classmethod
    def parse(cls, value: object) -> NotifyPreference:
        """Parse a stored value; unknown or missing values mean DEFAULT."""
        if isinstance(value, NotifyPreference):
            return value
        if value is None:
            return cls.DEFAULT
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.DEFAULT


@dataclass(frozen=True)
class NotifyProps:
    """A user's desktop notification settings.

    Attributes:
        desktop: Default desktop notification level.
        desktop_sound: Whether to play a sound; None means not configured.
        desktop_duration: Alert duration in seconds; None means not configured.
    """

    desktop: NotifyPreference = NotifyPreference.DEFAULT
    desktop_sound: bool | None = None
    desktop_duration: int | None = None


@dataclass(frozen=True)
class UserProfile:
    """A locally known user."""

    id: str
    username: str
    notify_props: NotifyProps = field(default_factory=NotifyProps)


@dataclass(frozen=True)
class ChannelContext:
    """A locally known channel.

    Attributes:
        id: Channel identifier.
        display_name: Human-readable channel name.
        type: Channel kind.
        name: URL-safe channel name, if known.
        team_id: Owning team, empty for direct and group channels.
    """

    id: str
    display_name: str
    type: ChannelType
    name: str = ""
    team_id: str = ""


@dataclass(frozen=True)
class MessageEvent:
    """An inbound message, already decoded from its transport encoding.

    The channel_type, channel_display_name, channel_name and sender_name
    fields come from the transport metadata and are used when the channel
    or the author is not locally known.
    """

    post_id: str
    user_id: str
    channel_id: str
    message: str = ""
    team_id: str = ""
    is_system: bool = False
    from_webhook: bool = False
    override_username: str | None = None
    has_image: bool = False
    has_other_file: bool = False
    mentions: tuple[str, ...] = ()
    channel_type: ChannelType | None = None
    channel_display_name: str | None = None
    channel_name: str | None = None
    sender_name: str | None = None


@dataclass(frozen=True)
class AlertRequest:
    """Payload handed to the alert renderer. Not retained after emission."""

    title: str
    body: str
    channel_id: str
    team_id: str
    duration_ms: int = DEFAULT_NOTIFICATION_DURATION_MS
    suppress_sound: bool = False
