"""Chat server websocket frame helpers.

Two frame shapes arrive on the socket:
- Replies to our actions: {"status": "OK", "seq_reply": 1}
- Server events: {"event": "posted", "data": {...}, "broadcast": {...}, "seq": 7}

A "posted" event carries the post itself as a JSON string in data.post;
every other key of data is metadata about the post.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

_LOGGER = logging.getLogger(__name__)

AUTH_ACTION = "authentication_challenge"
POSTED_EVENT = "posted"
HELLO_EVENT = "hello"


@dataclass(frozen=True)
class ServerEvent:
    """A decoded server event frame."""

    event: str
    data: dict[str, Any] = field(default_factory=lambda: {})
    broadcast: dict[str, Any] = field(default_factory=lambda: {})
    seq: int | None = None


def build_action(seq: int, action: str, data: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build a client action frame."""
    return {"seq": seq, "action": action, "data": dict(data or {})}


def build_auth_challenge(seq: int, token: str) -> dict[str, Any]:
    """Build the authentication frame sent right after connecting."""
    return build_action(seq, AUTH_ACTION, {"token": token})


def is_reply(frame: Mapping[str, Any]) -> bool:
    """Replies carry seq_reply instead of an event name."""
    return "seq_reply" in frame


def reply_ok(frame: Mapping[str, Any]) -> bool:
    """Whether an action reply reports success."""
    return frame.get("status") == "OK"


def parse_event_frame(frame: Mapping[str, Any]) -> ServerEvent | None:
    """Decode a server event frame; returns None for replies and junk."""
    event = frame.get("event")
    if not isinstance(event, str) or not event:
        return None

    data = frame.get("data")
    broadcast = frame.get("broadcast")
    seq = frame.get("seq")
    return ServerEvent(
        event=event,
        data=dict(data) if isinstance(data, Mapping) else {},
        broadcast=dict(broadcast) if isinstance(broadcast, Mapping) else {},
        seq=seq if isinstance(seq, int) else None,
    )


def decode_posted_event(
    event: ServerEvent,
) -> tuple[dict[str, Any], dict[str, Any]] | None:
    """Split a "posted" event into (post, metadata).

    Returns:
        The decoded post and the remaining data keys, or None if the
        post cannot be decoded.
    """
    if event.event != POSTED_EVENT:
        return None

    raw_post = event.data.get("post")
    if isinstance(raw_post, str):
        try:
            post = json.loads(raw_post)
        except ValueError:
            _LOGGER.warning("Dropping posted event with malformed post")
            return None
    else:
        post = raw_post

    if not isinstance(post, dict):
        _LOGGER.warning("Dropping posted event without a post object")
        return None

    metadata = {key: value for key, value in event.data.items() if key != "post"}
    if "channel_id" in event.broadcast and "channel_id" not in metadata:
        metadata["channel_id"] = event.broadcast["channel_id"]
    return post, metadata
