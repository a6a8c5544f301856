"""Pytest configuration and fixtures for chatnotify_core tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatnotify_core.collaborators import AlertRenderer, InMemoryDirectory, SoundPlayer
from chatnotify_core.engine import NotificationEngine
from chatnotify_core.models import (
    AlertRequest,
    ChannelContext,
    ChannelType,
    NotifyPreference,
    NotifyProps,
    UserProfile,
)


class RecordingRenderer(AlertRenderer):
    """Renderer that keeps every alert it was asked to show."""

    def __init__(self) -> None:
        self.alerts: list[AlertRequest] = []

    def request_alert(self, alert: AlertRequest) -> None:
        self.alerts.append(alert)


class RecordingSoundPlayer(SoundPlayer):
    """Sound player that counts plays."""

    def __init__(self) -> None:
        self.plays = 0

    def play_notification_sound(self) -> None:
        self.plays += 1


@pytest.fixture
def current_user() -> UserProfile:
    """The receiving user, notified on all activity."""
    return UserProfile(
        id="u1",
        username="alice",
        notify_props=NotifyProps(desktop=NotifyPreference.ALL),
    )


@pytest.fixture
def directory(current_user: UserProfile) -> InMemoryDirectory:
    """Directory with a standard channel, a DM, and a group channel."""
    store = InMemoryDirectory(current_user)
    store.add_profile(UserProfile(id="u2", username="bob"))
    store.add_profile(UserProfile(id="u3", username="carol"))
    store.add_channel(
        ChannelContext(
            id="c1", display_name="Town Square", type=ChannelType.OPEN, team_id="t1"
        )
    )
    store.add_channel(
        ChannelContext(
            id="c2", display_name="Off-Topic", type=ChannelType.OPEN, team_id="t1"
        )
    )
    store.add_channel(
        ChannelContext(id="dm1", display_name="u1__u2", type=ChannelType.DIRECT)
    )
    store.add_channel(
        ChannelContext(id="gm1", display_name="u1,u2,u3", type=ChannelType.GROUP),
        member_ids={"u1", "u2", "u3"},
    )
    store.set_current_channel("c2")
    return store


@pytest.fixture
def renderer() -> RecordingRenderer:
    """Renderer that records alerts."""
    return RecordingRenderer()


@pytest.fixture
def sound_player() -> RecordingSoundPlayer:
    """Sound player that counts plays."""
    return RecordingSoundPlayer()


@pytest.fixture
def engine(
    directory: InMemoryDirectory,
    renderer: RecordingRenderer,
    sound_player: RecordingSoundPlayer,
) -> NotificationEngine:
    """Engine wired to the recording collaborators."""
    return NotificationEngine(directory, renderer, sound_player)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
) -> AsyncMock:
    """Create a configured mock aiohttp response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


@pytest.fixture
def mock_response_factory():
    """Expose create_mock_response as a fixture."""
    return create_mock_response
