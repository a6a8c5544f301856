"""Transport layer for the chat notification core.

This package contains all IO, wire protocol, and network handling.

Components:
- http: HTTP client for REST API calls
- ws: WebSocket connection management
- ws_client: WebSocket message iteration
- protocol: Action and event frame helpers
- events: Wire post decoding into MessageEvent
"""

from .events import build_message_event, is_system_message
from .http import ChatHttpClient, channel_from_json, user_from_json
from .protocol import (
    ServerEvent,
    build_action,
    build_auth_challenge,
    decode_posted_event,
    parse_event_frame,
)
from .ws import connect_websocket, websocket_url
from .ws_client import ChatWsClient, ChatWsMessage, ChatWsMessageType

__all__ = [
    "ChatHttpClient",
    "ChatWsClient",
    "ChatWsMessage",
    "ChatWsMessageType",
    "ServerEvent",
    "build_action",
    "build_auth_challenge",
    "build_message_event",
    "channel_from_json",
    "connect_websocket",
    "decode_posted_event",
    "is_system_message",
    "parse_event_frame",
    "user_from_json",
    "websocket_url",
]
