"""HTTP client for the chat server REST API.

Used to hydrate the local directory: the engine itself never does I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import aiohttp

from ..errors import (
    ChatNotifyConnectionError,
    ChatNotifyResponseError,
    ChatNotifyTimeout,
)
from ..models import ChannelContext, ChannelType, NotifyPreference, NotifyProps, UserProfile

API_PREFIX = "/api/v4"


def _parse_bool(value: Any) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def notify_props_from_json(data: Mapping[str, Any] | None) -> NotifyProps:
    """Decode the server's string-typed notify_props."""
    data = data or {}
    return NotifyProps(
        desktop=NotifyPreference.parse(data.get("desktop")),
        desktop_sound=_parse_bool(data.get("desktop_sound")),
        desktop_duration=_parse_int(data.get("desktop_duration")),
    )


def user_from_json(data: Mapping[str, Any]) -> UserProfile:
    """Decode a user object."""
    return UserProfile(
        id=str(data["id"]),
        username=str(data.get("username", "")),
        notify_props=notify_props_from_json(data.get("notify_props")),
    )


def channel_from_json(data: Mapping[str, Any]) -> ChannelContext | None:
    """Decode a channel object; None if its type is unknown."""
    channel_type = ChannelType.parse(data.get("type"))
    if channel_type is None:
        return None
    return ChannelContext(
        id=str(data["id"]),
        display_name=str(data.get("display_name", "")),
        type=channel_type,
        name=str(data.get("name", "")),
        team_id=str(data.get("team_id", "")),
    )


class ChatHttpClient:
    """HTTP client wrapper for the chat server REST API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self._base_url}{API_PREFIX}{path}"

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _get_json(
        self,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """GET a JSON document.

        Returns:
            Decoded JSON, or None on 404 when allow_not_found is set.

        Raises:
            ChatNotifyResponseError: Non-200 response
            ChatNotifyTimeout: Request timed out
            ChatNotifyConnectionError: Network failure
        """
        url = self._url(path)
        try:
            async with self._session.get(
                url,
                headers=self._auth_headers(),
                params=params,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status == 404 and allow_not_found:
                    return None
                if resp.status != 200:
                    raise ChatNotifyResponseError(
                        resp.status, f"GET {path} failed with status {resp.status}"
                    )
                return await resp.json()
        except TimeoutError as err:
            raise ChatNotifyTimeout(f"GET {path} timed out") from err
        except aiohttp.ClientError as err:
            raise ChatNotifyConnectionError(f"GET {path} failed") from err

    async def fetch_current_user(self) -> UserProfile:
        """Fetch the authenticated user."""
        return user_from_json(await self._get_json("/users/me"))

    async def fetch_user(self, user_id: str) -> UserProfile | None:
        """Fetch a user by id; None if not found."""
        data = await self._get_json(f"/users/{user_id}", allow_not_found=True)
        return user_from_json(data) if data else None

    async def fetch_channel(self, channel_id: str) -> ChannelContext | None:
        """Fetch a channel by id; None if not found."""
        data = await self._get_json(f"/channels/{channel_id}", allow_not_found=True)
        return channel_from_json(data) if data else None

    async def fetch_member_ids(self, channel_id: str) -> set[str]:
        """Fetch the user ids of a channel's members."""
        data = await self._get_json(f"/channels/{channel_id}/members") or []
        return {str(member["user_id"]) for member in data if "user_id" in member}

    async def fetch_member_override(self, channel_id: str) -> NotifyPreference | None:
        """Fetch the authenticated user's desktop level for one channel."""
        data = await self._get_json(
            f"/channels/{channel_id}/members/me", allow_not_found=True
        )
        if not data:
            return None
        level = NotifyPreference.parse((data.get("notify_props") or {}).get("desktop"))
        return None if level is NotifyPreference.DEFAULT else level

    async def fetch_client_config(self) -> dict[str, Any]:
        """Fetch the server's client-facing config."""
        data = await self._get_json("/config/client", params={"format": "old"})
        return dict(data or {})

    async def username_override_enabled(self) -> bool:
        """Whether posts may override the displayed author name."""
        config = await self.fetch_client_config()
        return str(config.get("EnablePostUsernameOverride", "false")).lower() == "true"
