"""Wire post + metadata → MessageEvent.

The server delivers a post and a set of loosely typed metadata props
alongside it. Every field is optional except the ids; decoding never
raises for missing or oddly typed values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..decision.mentions import parse_mention_list
from ..models import ChannelType, MessageEvent

SYSTEM_MESSAGE_PREFIX = "system_"


def _flag(value: Any) -> bool:
    """Interpret the server's mix of real and string booleans."""
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def is_system_message(post: Mapping[str, Any]) -> bool:
    """System posts have a type starting with "system_"."""
    return str(post.get("type") or "").startswith(SYSTEM_MESSAGE_PREFIX)


def build_message_event(
    post: Mapping[str, Any],
    metadata: Mapping[str, Any] | None = None,
) -> MessageEvent:
    """Decode a wire post and its metadata props.

    Args:
        post: Decoded post object (id, user_id, channel_id, message, type, props).
        metadata: Event props (mentions, team_id, channel_type,
            channel_display_name, channel_name, sender_name, image, otherFile).

    Returns:
        The decoded MessageEvent.
    """
    metadata = metadata or {}
    props = post.get("props") or {}
    if not isinstance(props, Mapping):
        props = {}

    return MessageEvent(
        post_id=str(post.get("id", "")),
        user_id=str(post.get("user_id", "")),
        channel_id=str(post.get("channel_id") or metadata.get("channel_id") or ""),
        message=str(post.get("message") or ""),
        team_id=str(metadata.get("team_id") or ""),
        is_system=is_system_message(post),
        from_webhook=_flag(props.get("from_webhook")),
        override_username=_optional_str(props.get("override_username")),
        has_image=_flag(metadata.get("image")),
        has_other_file=_flag(metadata.get("otherFile")),
        mentions=parse_mention_list(metadata.get("mentions")),
        channel_type=ChannelType.parse(metadata.get("channel_type")),
        channel_display_name=_optional_str(metadata.get("channel_display_name")),
        channel_name=_optional_str(metadata.get("channel_name")),
        sender_name=_optional_str(metadata.get("sender_name")),
    )
