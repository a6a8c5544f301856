"""Effective desktop notification level.

A channel member may override the user's default level for one channel.
The override store encodes "no override" as the DEFAULT sentinel.
"""

from __future__ import annotations

from ..models import NotifyPreference


def resolve_notify_preference(
    user_default: NotifyPreference | str | None,
    channel_override: NotifyPreference | str | None = None,
) -> NotifyPreference:
    """Layer a per-channel override over the user default.

    Args:
        user_default: The user's desktop level (enum or raw stored value).
        channel_override: The member's channel level, or None if absent.

    Returns:
        The override when present and not DEFAULT, else the user default.
    """
    override = NotifyPreference.parse(channel_override)
    if override is not NotifyPreference.DEFAULT:
        return override
    return NotifyPreference.parse(user_default)
