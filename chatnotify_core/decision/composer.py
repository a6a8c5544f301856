"""Alert title and body composition.

Titles depend on the channel kind; bodies are a one-line preview of the
message prefixed with the sender's display name.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from ..localization import (
    DIRECT_MESSAGE,
    SOMEONE,
    SOMETHING_NEW,
    UPLOADED_FILE,
    UPLOADED_IMAGE,
    WROTE,
    Localizer,
    localize_pair,
)
from ..models import ChannelContext, ChannelType, MessageEvent, UserProfile

# Previews longer than this are cut to PREVIEW_CUT characters + ellipsis.
PREVIEW_LIMIT = 50
PREVIEW_CUT = 49
ELLIPSIS = "..."

_NEWLINES = re.compile(r"\n+")


def preview_text(message: str) -> str:
    """Collapse newline runs to one space and truncate long text."""
    text = _NEWLINES.sub(" ", message)
    if len(text) > PREVIEW_LIMIT:
        text = text[:PREVIEW_CUT] + ELLIPSIS
    return text


def resolve_sender_name(
    event: MessageEvent,
    *,
    allow_username_override: bool,
    profile_lookup: Callable[[str], UserProfile | None],
    localizer: Localizer,
) -> str:
    """Pick the name shown as the author of the alert.

    Precedence:
    1. The post's override username, if the server allows overrides
    2. The sender name supplied with the event
    3. The author's locally known username
    4. A localized "Someone"
    """
    if event.override_username and allow_username_override:
        return event.override_username
    if event.sender_name:
        return event.sender_name

    profile = profile_lookup(event.user_id)
    if profile is not None:
        return profile.username

    return localize_pair(localizer, SOMEONE)


def compose_title(
    event: MessageEvent,
    channel: ChannelContext | None,
    *,
    localizer: Localizer,
    group_name_lookup: Callable[[str], str],
) -> str:
    """Build the alert title for the channel the message was posted in."""
    if channel is None:
        return event.channel_display_name or ""
    if channel.type is ChannelType.DIRECT:
        return localize_pair(localizer, DIRECT_MESSAGE)
    if channel.type is ChannelType.GROUP:
        return group_name_lookup(channel.id)
    return channel.display_name


def compose_body(event: MessageEvent, sender_name: str, *, localizer: Localizer) -> str:
    """Build the alert body: a preview, or a description of the upload."""
    text = preview_text(event.message)

    if text:
        return sender_name + localize_pair(localizer, WROTE) + text
    if event.has_image:
        return sender_name + localize_pair(localizer, UPLOADED_IMAGE)
    if event.has_other_file:
        return sender_name + localize_pair(localizer, UPLOADED_FILE)
    return sender_name + localize_pair(localizer, SOMETHING_NEW)


def compose_alert_text(
    event: MessageEvent,
    channel: ChannelContext | None,
    sender_name: str,
    *,
    localizer: Localizer,
    group_name_lookup: Callable[[str], str],
) -> tuple[str, str]:
    """Compose the (title, body) pair for an alert.

    Args:
        event: The inbound message.
        channel: The locally known channel, or None if unknown.
        sender_name: Display name from resolve_sender_name().
        localizer: Localized string lookup.
        group_name_lookup: Computes a group channel's name from its members.

    Returns:
        Tuple of title and body text.
    """
    title = compose_title(
        event,
        channel,
        localizer=localizer,
        group_name_lookup=group_name_lookup,
    )
    body = compose_body(event, sender_name, localizer=localizer)
    return title, body
