"""WebSocket helpers for the chat server event stream."""

from __future__ import annotations

import asyncio
import logging

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    ChatNotifyConnectionError,
    ChatNotifyHandshakeError,
    ChatNotifyTimeout,
)

_LOGGER = logging.getLogger(__name__)

WEBSOCKET_PATH = "/api/v4/websocket"


def websocket_url(server_url: str, path: str = WEBSOCKET_PATH) -> str:
    """Turn an http(s) server URL into the ws(s) event stream URL."""
    base = server_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}{path}"


async def connect_websocket(
    server_url: str,
    *,
    path: str = WEBSOCKET_PATH,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open the event stream of a chat server.

    Args:
        server_url: Server base URL; http(s) is mapped to ws(s)
        path: Event stream path on the server
        ping_interval: Interval for ping frames
        timeout: Connection timeout

    Raises:
        ChatNotifyTimeout: The server did not answer in time
        ChatNotifyHandshakeError: The URL or the upgrade was rejected
        ChatNotifyConnectionError: Any other network failure
    """
    url = websocket_url(server_url, path)
    _LOGGER.debug("Opening event stream %s", url)
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise ChatNotifyTimeout(f"Event stream {url} timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise ChatNotifyHandshakeError(f"Event stream handshake with {url} failed") from err
    except (OSError, WebSocketException) as err:
        raise ChatNotifyConnectionError(f"Event stream connection to {url} failed") from err
