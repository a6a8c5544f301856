"""Session manager for the chat server event stream.

This module connects the websocket event stream to a notification
dispatcher. It handles:
- Connection management and authentication
- Loading the receiving user and server policy once authenticated
- Decoding "posted" events
- Hydrating unknown channels through the REST client before dispatch
- Reconnect with capped exponential backoff

The engine itself never does I/O; everything it needs is in the
directory by the time an event reaches the dispatcher.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from .collaborators import InMemoryDirectory
from .config import NotifyConfig
from .dispatcher import FocusChanged, MessageReceived, NotificationDispatcher
from .errors import (
    ChatNotifyConnectionError,
    ChatNotifyError,
    ChatNotifyHandshakeError,
    ChatNotifyTimeout,
    ConfigLoadError,
)
from .models import ChannelType
from .transport.http import ChatHttpClient
from .transport.protocol import (
    POSTED_EVENT,
    decode_posted_event,
    is_reply,
    parse_event_frame,
    reply_ok,
)
from .transport.ws import websocket_url
from .transport.ws_client import ChatWsClient, ChatWsMessageType

_LOGGER = logging.getLogger(__name__)


class NotificationSession:
    """Feeds one dispatcher from one chat server connection.

    Usage:
        session = NotificationSession("https://chat.example.com", token, dispatcher, directory)
        await session.connect()
        session.set_focus(True)
        await session.close()
    """

    def __init__(
        self,
        server_url: str,
        token: str,
        dispatcher: NotificationDispatcher,
        directory: InMemoryDirectory,
        *,
        http_client: ChatHttpClient | None = None,
        retry_base_delay: int = 5,
        retry_max_delay: int = 60,
    ) -> None:
        """Initialize session.

        Args:
            server_url: Chat server base URL (http or https)
            token: Personal access or session token
            dispatcher: Receives decoded events
            directory: Local store hydrated with unknown channels
            http_client: REST client for hydration; None disables it
            retry_base_delay: Base retry delay (seconds)
            retry_max_delay: Maximum retry delay (seconds)
        """
        self.server_url = server_url.rstrip("/")
        self._token = token
        self._dispatcher = dispatcher
        self._directory = directory
        self._http = http_client
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay

        self._ws: ChatWsClient | None = None
        self._connection_state = "disconnected"
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._retry_attempts = 0
        self._shutdown_requested = False
        self._auth_seq: int | None = None
        self._bootstrapped = False
        self._connection_state_callback: Callable[[str], None] | None = None

    @classmethod
    def from_config(
        cls,
        config: NotifyConfig,
        dispatcher: NotificationDispatcher,
        directory: InMemoryDirectory,
        *,
        http_session: aiohttp.ClientSession | None = None,
    ) -> NotificationSession:
        """Build a session from the config's server section.

        Args:
            config: Loaded config; its server section must name a url and token
            dispatcher: Receives decoded events
            directory: Local store to hydrate
            http_session: Enables REST hydration when given

        Raises:
            ConfigLoadError: The server section or its token is missing.
        """
        server = config.server
        if server is None:
            raise ConfigLoadError("A server section is required to open a session")
        if not server.token:
            raise ConfigLoadError("server.token is required to open a session")

        http_client = None
        if http_session is not None:
            http_client = ChatHttpClient(http_session, server.url, token=server.token)
        return cls(server.url, server.token, dispatcher, directory, http_client=http_client)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Connect and authenticate.

        Returns:
            True if the connection was established, False otherwise
        """
        if self._shutdown_requested:
            _LOGGER.debug("Connection aborted: shutdown requested")
            return False

        self._set_state("connecting")
        url = websocket_url(self.server_url)

        try:
            _LOGGER.info("Connecting to %s (attempt #%d)", url, self._retry_attempts + 1)

            if self._ws:
                try:
                    await asyncio.wait_for(self._ws.close(), timeout=2.0)
                except TimeoutError:
                    _LOGGER.warning("Previous WebSocket close timed out")
                self._ws = None

            ws_client = ChatWsClient()
            await ws_client.connect(self.server_url)
            self._ws = ws_client

            self._bootstrapped = False
            self._set_state("authenticating")
            self._auth_seq = await ws_client.authenticate(self._token)

            self._listen_task = asyncio.create_task(self._listen())
            self._retry_attempts = 0
            return True

        except ChatNotifyTimeout:
            _LOGGER.warning("Connection timeout - server unreachable")
        except ChatNotifyConnectionError as err:
            _LOGGER.warning("Connection failed: %s", err)
        except ChatNotifyHandshakeError as err:
            _LOGGER.error("WebSocket handshake failed: %s", err)

        self._set_state("failed")
        self._handle_connection_failure()
        return False

    async def close(self) -> None:
        """Gracefully close the session."""
        _LOGGER.info("Closing session")
        self._shutdown_requested = True

        for task in (self._reconnect_task, self._listen_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, ChatNotifyError):
                pass

        if self._ws:
            try:
                await asyncio.wait_for(self._ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("WebSocket close timed out")
            self._ws = None

        self._set_state("disconnected")

    def set_focus(self, focused: bool) -> None:
        """Forward a window focus change to the dispatcher."""
        self._dispatcher.submit_nowait(FocusChanged(focused))

    def on_connection_state_changed(self, callback: Callable[[str], None]) -> None:
        """Register callback for connection state changes.

        Callback receives state: "connecting", "authenticating", "connected",
        "failed", "disconnected"
        """
        self._connection_state_callback = callback

    @property
    def connection_state(self) -> str:
        """Get current connection state."""
        return self._connection_state

    @property
    def is_connected(self) -> bool:
        """Check if the session is authenticated."""
        return self._connection_state == "connected"

    # -------------------------------------------------------------------------
    # Internal: Connection State
    # -------------------------------------------------------------------------

    def _set_state(self, state: str) -> None:
        """Update connection state and notify callback."""
        if self._connection_state != state:
            _LOGGER.debug("State: %s → %s", self._connection_state, state)
            self._connection_state = state
            if self._connection_state_callback:
                self._connection_state_callback(state)

    def _handle_connection_failure(self) -> None:
        """Schedule reconnection attempt with exponential backoff."""
        if self._shutdown_requested or self._reconnect_task:
            return

        delay = min(
            self._retry_base_delay * (2**self._retry_attempts),
            self._retry_max_delay,
        )
        self._retry_attempts += 1

        _LOGGER.info("Reconnecting in %ds (attempt %d)", delay, self._retry_attempts)
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay(delay))

    async def _reconnect_after_delay(self, delay: float) -> None:
        """Reconnect after delay."""
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            _LOGGER.debug("Reconnect cancelled")
            self._reconnect_task = None
            return
        # Cleared before connecting so a failed attempt can schedule the next.
        self._reconnect_task = None
        await self.connect()

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self) -> None:
        """Listen for frames from the server."""
        if self._ws is None:
            return

        reconnect_required = False

        try:
            async for msg in self._ws:
                if msg.type == ChatWsMessageType.TEXT:
                    try:
                        frame = ChatWsClient.decode_json(msg)
                    except ChatNotifyError as err:
                        _LOGGER.warning("Invalid frame: %s", err)
                        continue

                    if is_reply(frame):
                        if not self._handle_reply(frame):
                            return
                        if self.is_connected and not self._bootstrapped:
                            await self._load_account()
                        continue

                    await self._handle_event_frame(frame)

                elif msg.type == ChatWsMessageType.CLOSED:
                    _LOGGER.info("WebSocket closed by server")
                    reconnect_required = True
                    break

                elif msg.type == ChatWsMessageType.ERROR:
                    _LOGGER.error("WebSocket error")
                    reconnect_required = True
                    break

        except asyncio.CancelledError:
            _LOGGER.debug("Listener cancelled")
            raise
        except ChatNotifyError as err:
            _LOGGER.warning("Client error: %s", err)
            reconnect_required = True
        finally:
            if reconnect_required and not self._shutdown_requested:
                self._set_state("failed")
                self._handle_connection_failure()

    def _handle_reply(self, frame: dict[str, Any]) -> bool:
        """Handle an action reply; returns False if the session must stop."""
        if frame.get("seq_reply") != self._auth_seq:
            return True
        if reply_ok(frame):
            _LOGGER.info("Authenticated with %s", self.server_url)
            self._set_state("connected")
            return True
        _LOGGER.error("Authentication rejected: %s", frame.get("error"))
        self._set_state("failed")
        return False

    async def _load_account(self) -> None:
        """Load the receiving user and the username override policy."""
        self._bootstrapped = True
        if self._http is None:
            return
        try:
            user = await self._http.fetch_current_user()
            self._directory.set_current_user(user)
            override = await self._http.username_override_enabled()
        except ChatNotifyError as err:
            # Alerts stay suppressed until the user is known.
            _LOGGER.warning("Could not load account details: %s", err)
            return
        self._dispatcher.engine.set_username_override(override)
        _LOGGER.debug("Loaded account %s (username override %s)", user.username, override)

    async def _handle_event_frame(self, frame: dict[str, Any]) -> None:
        event = parse_event_frame(frame)
        if event is None or event.event != POSTED_EVENT:
            return

        decoded = decode_posted_event(event)
        if decoded is None:
            return
        post, metadata = decoded

        channel_id = str(post.get("channel_id") or metadata.get("channel_id") or "")
        if channel_id and not self._directory.has_channel(channel_id):
            await self._hydrate_channel(channel_id)

        await self._dispatcher.submit(MessageReceived(post, metadata))

    async def _hydrate_channel(self, channel_id: str) -> None:
        """Fetch an unknown channel (and its group members) into the directory."""
        if self._http is None:
            return
        try:
            channel = await self._http.fetch_channel(channel_id)
            if channel is None:
                return

            member_ids = None
            if channel.type is ChannelType.GROUP:
                member_ids = await self._http.fetch_member_ids(channel_id)
                for user_id in member_ids:
                    if self._directory.get_profile(user_id) is None:
                        profile = await self._http.fetch_user(user_id)
                        if profile is not None:
                            self._directory.add_profile(profile)

            self._directory.add_channel(channel, member_ids)

            user = self._directory.current_user()
            if user is not None:
                override = await self._http.fetch_member_override(channel_id)
                self._directory.set_member_override(channel_id, user.id, override)
        except ChatNotifyError as err:
            # The engine falls back to the event's own channel metadata.
            _LOGGER.warning("Could not fetch channel %s: %s", channel_id, err)
