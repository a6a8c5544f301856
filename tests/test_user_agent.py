"""Tests for client variant detection."""

from __future__ import annotations

import pytest

from chatnotify_core.user_agent import ClientVariant, classify_user_agent

CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
DESKTOP_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Mattermost/5.6.0 Chrome/120.0 Electron/28.0 Safari/537.36"
)
DESKTOP_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Mattermost/5.6.0 Chrome/120.0 Electron/28.0 Safari/537.36"
)
MOBILE_APP = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Mattermost Mobile/2.10"


@pytest.mark.parametrize(
    ("user_agent", "expected"),
    [
        (CHROME, ClientVariant.BROWSER),
        (DESKTOP_WINDOWS, ClientVariant.DESKTOP_NATIVE),
        (DESKTOP_MAC, ClientVariant.PLATFORM_NATIVE),
        (MOBILE_APP, ClientVariant.MOBILE_NATIVE),
        ("", ClientVariant.BROWSER),
    ],
)
def test_classify(user_agent: str, expected: ClientVariant) -> None:
    """Known User-Agent shapes map to their variant."""
    assert classify_user_agent(user_agent) is expected


def test_only_browser_needs_sound() -> None:
    """Native variants play their own sound."""
    assert not ClientVariant.BROWSER.plays_own_sound
    assert all(
        variant.plays_own_sound
        for variant in ClientVariant
        if variant is not ClientVariant.BROWSER
    )
