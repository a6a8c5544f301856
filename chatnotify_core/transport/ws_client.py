"""WebSocket client wrapper for the chat server event stream."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from aiohttp import WSMsgType
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from ..errors import ChatNotifyConnectionError, ChatNotifyError
from .protocol import build_action, build_auth_challenge
from .ws import WEBSOCKET_PATH, connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping


class ChatWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ChatWsMessage:
    """Normalized WebSocket message payload."""

    type: ChatWsMessageType
    data: str | dict[str, Any] | None = None


class ChatWsClient:
    """Wrapper around the websockets library for the chat event stream.

    Keeps the outgoing action sequence number.
    """

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None
        self._seq = 0

    async def connect(
        self,
        server_url: str,
        *,
        path: str = WEBSOCKET_PATH,
        ping_interval: int = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to a server's event stream; sequence numbers restart at 1."""
        self._ws = await connect_websocket(
            server_url,
            path=path,
            ping_interval=ping_interval,
            timeout=timeout,
        )
        self._seq = 0

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    async def send_json(self, payload: Mapping[str, Any]) -> None:
        """Send a JSON payload to the websocket."""
        if self._ws is None:
            raise ChatNotifyConnectionError("WebSocket is not connected")
        await self._ws.send(json.dumps(payload))

    async def send_action(
        self, action: str, data: Mapping[str, Any] | None = None
    ) -> int:
        """Send a client action; returns its sequence number."""
        seq = self._next_seq()
        await self.send_json(build_action(seq, action, data))
        return seq

    async def authenticate(self, token: str) -> int:
        """Send the authentication challenge; returns its sequence number."""
        seq = self._next_seq()
        await self.send_json(build_auth_challenge(seq, token))
        return seq

    def __aiter__(self) -> AsyncIterator[ChatWsMessage]:
        if self._ws is None:
            raise ChatNotifyConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[ChatWsMessage]:
        if self._ws is None:
            raise ChatNotifyConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield ChatWsMessage(type=ChatWsMessageType.CLOSED)
        except Exception:
            yield ChatWsMessage(type=ChatWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield ChatWsMessage(type=ChatWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> ChatWsMessage | None:
        """Normalize backend-specific frames into ChatWsMessage."""
        if isinstance(msg, bytes):
            return None
        if isinstance(msg, str):
            return ChatWsMessage(ChatWsMessageType.TEXT, msg)

        msg_type = getattr(msg, "type", None)
        data = getattr(msg, "data", None)

        if msg_type is not None:
            normalized_type = ChatWsClient._map_aiohttp_type(msg_type)
            if normalized_type is None:
                return None
            return ChatWsMessage(normalized_type, data)

        # Fallback: treat unknown objects as text via their string repr
        return ChatWsMessage(ChatWsMessageType.TEXT, str(msg))

    @staticmethod
    def _map_aiohttp_type(msg_type: Any) -> ChatWsMessageType | None:
        """Map aiohttp WSMsgType enums to internal message types."""
        if msg_type is WSMsgType.TEXT:
            return ChatWsMessageType.TEXT

        if msg_type is WSMsgType.BINARY:
            return None

        if msg_type in {WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED}:
            return ChatWsMessageType.CLOSED

        if msg_type is WSMsgType.ERROR:
            return ChatWsMessageType.ERROR

        return None

    @staticmethod
    def decode_json(message: ChatWsMessage) -> dict[str, Any]:
        """Decode a TEXT message payload into JSON."""
        if message.type is not ChatWsMessageType.TEXT:
            raise ChatNotifyError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise ChatNotifyError("Message data is not a string")
        try:
            result = json.loads(message.data)
        except ValueError as err:
            raise ChatNotifyError("Message data is not valid JSON") from err
        if not isinstance(result, dict):
            raise ChatNotifyError("Message data is not a JSON object")
        return result
