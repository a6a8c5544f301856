"""Tests for the notification engine.

End-to-end behaviour through the collaborator boundary: eligibility,
composition, sound and duration, failure isolation and tracing.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from chatnotify_core.collaborators import AlertRenderer, InMemoryDirectory
from chatnotify_core.config import EngineConfig, NotifyConfig
from chatnotify_core.engine import NotificationEngine
from chatnotify_core.localization import CatalogLocalizer
from chatnotify_core.models import (
    ChannelType,
    MessageEvent,
    NotifyPreference,
    NotifyProps,
    UserProfile,
)
from chatnotify_core.trace import OutcomeType
from chatnotify_core.trace_emitter import BufferEmitter, TraceConfig
from chatnotify_core.user_agent import ClientVariant

from .conftest import RecordingRenderer, RecordingSoundPlayer


def _message(**overrides) -> MessageEvent:
    values = {
        "post_id": "p1",
        "user_id": "u2",
        "channel_id": "c1",
        "message": "hi\n\nthere",
    }
    values.update(overrides)
    return MessageEvent(**values)


class ExplodingRenderer(AlertRenderer):
    """Renderer whose platform call always fails."""

    def request_alert(self, alert) -> None:
        raise RuntimeError("notification daemon gone")


class TestBasicAlert:
    """The common case."""

    def test_alert_for_background_channel(
        self,
        engine: NotificationEngine,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
    ) -> None:
        """A message in a channel not in view raises an alert."""
        engine.set_focus(True)
        alert = engine.handle_message(_message())

        assert alert is not None
        assert alert.title == "Town Square"
        assert alert.body == "bob wrote: hi there"
        assert alert.channel_id == "c1"
        assert alert.team_id == "t1"
        assert alert.duration_ms == 5000
        assert not alert.suppress_sound
        assert renderer.alerts == [alert]
        assert sound_player.plays == 1

    def test_event_team_id_preferred(self, engine: NotificationEngine) -> None:
        """Event team id wins over the channel's."""
        alert = engine.handle_message(_message(team_id="t9"))
        assert alert is not None
        assert alert.team_id == "t9"

    def test_long_message_truncated(self, engine: NotificationEngine) -> None:
        """Bodies preview at most 49 characters plus an ellipsis."""
        alert = engine.handle_message(_message(message="x" * 80))
        assert alert is not None
        assert alert.body == "bob wrote: " + "x" * 49 + "..."

    def test_image_upload_body(self, engine: NotificationEngine) -> None:
        """An empty message with an image."""
        alert = engine.handle_message(_message(message="", has_image=True))
        assert alert is not None
        assert alert.body == "bob uploaded an image"

    def test_unknown_author_is_someone(self, engine: NotificationEngine) -> None:
        """Authors missing from the directory are shown as Someone."""
        alert = engine.handle_message(_message(user_id="u9", message="yo"))
        assert alert is not None
        assert alert.body == "Someone wrote: yo"


class TestSuppression:
    """Messages that never alert."""

    def test_own_message(
        self, engine: NotificationEngine, renderer: RecordingRenderer
    ) -> None:
        """Own typed messages are suppressed."""
        assert engine.handle_message(_message(user_id="u1")) is None
        assert renderer.alerts == []

    def test_own_webhook_message(self, engine: NotificationEngine) -> None:
        """Own messages posted through a webhook still alert."""
        alert = engine.handle_message(_message(user_id="u1", from_webhook=True))
        assert alert is not None

    def test_system_message(self, engine: NotificationEngine) -> None:
        """System messages are suppressed."""
        assert engine.handle_message(_message(is_system=True)) is None

    def test_missing_current_user(
        self, renderer: RecordingRenderer, sound_player: RecordingSoundPlayer
    ) -> None:
        """No identity, no alert."""
        engine = NotificationEngine(InMemoryDirectory(), renderer, sound_player)
        assert engine.handle_message(_message()) is None
        assert renderer.alerts == []
        assert sound_player.plays == 0

    def test_preference_none(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
    ) -> None:
        """Level none suppresses even direct messages."""
        directory.set_current_user(
            UserProfile(
                id="u1",
                username="alice",
                notify_props=NotifyProps(desktop=NotifyPreference.NONE),
            )
        )
        engine = NotificationEngine(directory, renderer, sound_player)
        assert engine.handle_message(_message(channel_id="dm1")) is None
        assert sound_player.plays == 0

    def test_channel_override_none(
        self, engine: NotificationEngine, directory: InMemoryDirectory
    ) -> None:
        """A muted channel is suppressed; others still alert."""
        directory.set_member_override("c1", "u1", "none")
        assert engine.handle_message(_message()) is None
        assert engine.handle_message(_message(channel_id="c2")) is not None

    def test_clearing_override_restores_alerts(
        self, engine: NotificationEngine, directory: InMemoryDirectory
    ) -> None:
        """Clearing the override falls back to the user default."""
        directory.set_member_override("c1", "u1", "none")
        directory.set_member_override("c1", "u1", None)
        assert engine.handle_message(_message()) is not None


class TestNoCompositionWhenSuppressed:
    """Suppressed group messages never reach the name and string lookups."""

    @pytest.fixture
    def localizer(self) -> MagicMock:
        return MagicMock(wraps=CatalogLocalizer())

    def _run(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        localizer: MagicMock,
        event: MessageEvent,
        *,
        focused: bool = False,
    ) -> dict[str, int]:
        engine = NotificationEngine(directory, renderer, localizer=localizer)
        engine.set_focus(focused)
        with patch.object(
            directory, "group_display_name", wraps=directory.group_display_name
        ) as group_name, patch.object(
            directory, "get_profile", wraps=directory.get_profile
        ) as profile, patch.object(
            directory, "get_channel", wraps=directory.get_channel
        ) as channel:
            engine.handle_message(event)
        return {
            "group_display_name": group_name.call_count,
            "get_profile": profile.call_count,
            "localize": localizer.localize.call_count,
            "get_channel": channel.call_count,
        }

    @pytest.mark.parametrize(
        ("desktop", "mentions"),
        [(NotifyPreference.NONE, ("u1",)), (NotifyPreference.MENTION, ("u3",))],
    )
    def test_preference_suppression(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        localizer: MagicMock,
        desktop: NotifyPreference,
        mentions: tuple[str, ...],
    ) -> None:
        """Level none and unmentioned mention-only look nothing up."""
        directory.set_current_user(
            UserProfile(
                id="u1", username="alice", notify_props=NotifyProps(desktop=desktop)
            )
        )
        calls = self._run(
            directory, renderer, localizer, _message(channel_id="gm1", mentions=mentions)
        )

        assert renderer.alerts == []
        assert calls["group_display_name"] == 0
        assert calls["get_profile"] == 0
        assert calls["localize"] == 0

    def test_channel_in_focus(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        localizer: MagicMock,
    ) -> None:
        """The focused group channel looks nothing up."""
        directory.set_current_channel("gm1")
        calls = self._run(
            directory, renderer, localizer, _message(channel_id="gm1"), focused=True
        )

        assert renderer.alerts == []
        assert calls["group_display_name"] == 0
        assert calls["get_profile"] == 0
        assert calls["localize"] == 0

    def test_eligible_message_composes(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        localizer: MagicMock,
    ) -> None:
        """An eligible group message does the lookups, and reads the channel once."""
        calls = self._run(directory, renderer, localizer, _message(channel_id="gm1"))

        assert len(renderer.alerts) == 1
        assert calls["group_display_name"] == 1
        assert calls["get_profile"] >= 1
        assert calls["localize"] >= 1
        assert calls["get_channel"] == 1


class TestMentionOnly:
    """Mention-only users."""

    @pytest.fixture
    def mention_engine(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
    ) -> NotificationEngine:
        directory.set_current_user(
            UserProfile(
                id="u1",
                username="alice",
                notify_props=NotifyProps(desktop=NotifyPreference.MENTION),
            )
        )
        return NotificationEngine(directory, renderer)

    def test_unmentioned_suppressed(self, mention_engine: NotificationEngine) -> None:
        """No mention in a standard channel."""
        assert mention_engine.handle_message(_message(mentions=("u3",))) is None

    def test_mentioned_alerts(self, mention_engine: NotificationEngine) -> None:
        """Mentioned in a standard channel."""
        assert mention_engine.handle_message(_message(mentions=("u1",))) is not None

    def test_direct_message_alerts(self, mention_engine: NotificationEngine) -> None:
        """Direct messages count as mentions."""
        alert = mention_engine.handle_message(_message(channel_id="dm1"))
        assert alert is not None
        assert alert.title == "Direct Message"

    def test_event_channel_type_used_for_unknown_channel(
        self, mention_engine: NotificationEngine
    ) -> None:
        """The event's channel type decides for channels not yet loaded."""
        alert = mention_engine.handle_message(
            _message(
                channel_id="dm9",
                channel_type=ChannelType.DIRECT,
                channel_display_name="u1__u2",
            )
        )
        assert alert is not None
        assert alert.title == "u1__u2"


class TestFocus:
    """Focus and the channel in view."""

    def test_focused_on_channel_suppresses(
        self, engine: NotificationEngine, directory: InMemoryDirectory
    ) -> None:
        """Viewing the channel with focus suppresses."""
        directory.set_current_channel("c1")
        engine.set_focus(True)
        assert engine.handle_message(_message()) is None

    def test_unfocused_on_channel_alerts(
        self, engine: NotificationEngine, directory: InMemoryDirectory
    ) -> None:
        """Viewing the channel in a background window alerts."""
        directory.set_current_channel("c1")
        engine.set_focus(False)
        assert engine.handle_message(_message()) is not None

    def test_focus_defaults_to_unfocused(self, engine: NotificationEngine) -> None:
        """A new engine has no focus."""
        assert engine.focused is False

    def test_focus_signal_is_idempotent(
        self, engine: NotificationEngine, directory: InMemoryDirectory
    ) -> None:
        """Repeated identical signals change nothing."""
        directory.set_current_channel("c1")
        engine.set_focus(True)
        engine.set_focus(True)
        assert engine.focused is True
        assert engine.handle_message(_message()) is None
        engine.set_focus(False)
        engine.set_focus(False)
        assert engine.handle_message(_message()) is not None


class TestTitles:
    """Channel-specific titles."""

    def test_group_title(self, engine: NotificationEngine) -> None:
        """Group channels list the other members."""
        alert = engine.handle_message(_message(channel_id="gm1"))
        assert alert is not None
        assert alert.title == "bob, carol"

    def test_localized_direct_title(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
    ) -> None:
        """The direct message label is localized."""
        engine = NotificationEngine(
            directory,
            renderer,
            localizer=CatalogLocalizer({"notification.dm": "Message direct"}),
        )
        alert = engine.handle_message(_message(channel_id="dm1"))
        assert alert is not None
        assert alert.title == "Message direct"


class TestUsernameOverride:
    """Override usernames from integrations."""

    def test_ignored_by_default(self, engine: NotificationEngine) -> None:
        """Override is ignored unless enabled."""
        alert = engine.handle_message(_message(override_username="ci-bot"))
        assert alert is not None
        assert alert.body.startswith("bob wrote")

    def test_used_when_enabled(
        self, directory: InMemoryDirectory, renderer: RecordingRenderer
    ) -> None:
        """Override is used when the server allows it."""
        engine = NotificationEngine(
            directory,
            renderer,
            config=EngineConfig(enable_post_username_override=True),
        )
        alert = engine.handle_message(_message(override_username="ci-bot"))
        assert alert is not None
        assert alert.body == "ci-bot wrote: hi there"

    def test_policy_applied_at_runtime(self, engine: NotificationEngine) -> None:
        """The server policy can be switched on after construction."""
        engine.set_username_override(True)

        assert engine.config.enable_post_username_override is True
        alert = engine.handle_message(_message(override_username="ci-bot"))
        assert alert is not None
        assert alert.body == "ci-bot wrote: hi there"


class TestSoundAndDuration:
    """Alert parameters from the user's props and the client variant."""

    def _engine_for(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
        props: NotifyProps,
        variant: ClientVariant | None = None,
        default_duration_ms: int = 5000,
    ) -> NotificationEngine:
        directory.set_current_user(
            UserProfile(id="u1", username="alice", notify_props=props)
        )
        return NotificationEngine(
            directory,
            renderer,
            sound_player,
            config=EngineConfig(
                default_duration_ms=default_duration_ms, client_variant=variant
            ),
        )

    def test_duration_from_props(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
    ) -> None:
        """desktop_duration seconds become milliseconds."""
        engine = self._engine_for(
            directory,
            renderer,
            sound_player,
            NotifyProps(desktop=NotifyPreference.ALL, desktop_duration=3),
        )
        alert = engine.handle_message(_message())
        assert alert is not None
        assert alert.duration_ms == 3000

    def test_configured_default_duration(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
    ) -> None:
        """Unset duration uses the configured default."""
        engine = self._engine_for(
            directory, renderer, sound_player, NotifyProps(), default_duration_ms=8000
        )
        alert = engine.handle_message(_message())
        assert alert is not None
        assert alert.duration_ms == 8000

    def test_sound_off(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
    ) -> None:
        """desktop_sound False marks the alert silent and plays nothing."""
        engine = self._engine_for(
            directory, renderer, sound_player, NotifyProps(desktop_sound=False)
        )
        alert = engine.handle_message(_message())
        assert alert is not None
        assert alert.suppress_sound
        assert sound_player.plays == 0

    @pytest.mark.parametrize(
        "variant",
        [
            ClientVariant.DESKTOP_NATIVE,
            ClientVariant.PLATFORM_NATIVE,
            ClientVariant.MOBILE_NATIVE,
        ],
    )
    def test_native_variant_plays_no_extra_sound(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
        variant: ClientVariant,
    ) -> None:
        """Native clients sound their own alerts."""
        engine = self._engine_for(
            directory, renderer, sound_player, NotifyProps(), variant=variant
        )
        alert = engine.handle_message(_message())
        assert alert is not None
        assert not alert.suppress_sound
        assert sound_player.plays == 0

    def test_browser_variant_plays_sound(
        self,
        directory: InMemoryDirectory,
        renderer: RecordingRenderer,
        sound_player: RecordingSoundPlayer,
    ) -> None:
        """Browsers need the explicit sound."""
        engine = self._engine_for(
            directory,
            renderer,
            sound_player,
            NotifyProps(),
            variant=ClientVariant.BROWSER,
        )
        engine.handle_message(_message())
        assert sound_player.plays == 1

    def test_no_sound_player(
        self, directory: InMemoryDirectory, renderer: RecordingRenderer
    ) -> None:
        """Hosts without a sound player still get alerts."""
        engine = NotificationEngine(directory, renderer)
        assert engine.handle_message(_message()) is not None


class TestFailureIsolation:
    """Collaborator failures do not reach the caller."""

    def test_renderer_failure_swallowed(
        self,
        directory: InMemoryDirectory,
        sound_player: RecordingSoundPlayer,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A failing renderer is logged and the alert is still returned."""
        engine = NotificationEngine(directory, ExplodingRenderer(), sound_player)
        alert = engine.handle_message(_message())
        assert alert is not None
        assert sound_player.plays == 1
        assert "Alert renderer failed" in caplog.text

    def test_engine_keeps_working_after_failure(
        self, directory: InMemoryDirectory
    ) -> None:
        """Later messages are still processed."""
        engine = NotificationEngine(directory, ExplodingRenderer())
        engine.handle_message(_message())
        assert engine.handle_message(_message(post_id="p2")) is not None


class TestTracing:
    """Decision traces."""

    def test_no_traces_by_default(
        self, directory: InMemoryDirectory, renderer: RecordingRenderer
    ) -> None:
        """Tracing is off unless enabled."""
        emitter = BufferEmitter()
        engine = NotificationEngine(directory, renderer, trace_emitter=emitter)
        engine.handle_message(_message())
        assert emitter.traces == []

    def test_alert_trace(
        self, directory: InMemoryDirectory, renderer: RecordingRenderer
    ) -> None:
        """Emitted alerts are traced with their parameters."""
        emitter = BufferEmitter()
        engine = NotificationEngine(
            directory,
            renderer,
            trace_config=TraceConfig(enabled=True),
            trace_emitter=emitter,
        )
        engine.handle_message(_message())

        (trace,) = emitter.traces
        assert trace.outcome is OutcomeType.ALERT_EMITTED
        assert trace.post_id == "p1"
        assert trace.duration_ms == 5000
        assert trace.preference == "all"
        assert trace.metrics is not None

    def test_suppressed_trace(
        self, directory: InMemoryDirectory, renderer: RecordingRenderer
    ) -> None:
        """Suppressed messages are traced with the reason."""
        emitter = BufferEmitter()
        engine = NotificationEngine(
            directory,
            renderer,
            trace_config=TraceConfig(enabled=True),
            trace_emitter=emitter,
        )
        engine.handle_message(_message(user_id="u1"))

        (trace,) = emitter.traces
        assert trace.outcome is OutcomeType.SUPPRESSED
        assert trace.suppression_reason == "own_message"
        assert "own_message" in trace.explain()

    def test_tracing_does_not_change_outcome(
        self, directory: InMemoryDirectory
    ) -> None:
        """Same decisions with tracing on and off."""
        plain = NotificationEngine(directory, RecordingRenderer())
        traced = NotificationEngine(
            directory,
            RecordingRenderer(),
            trace_config=TraceConfig(enabled=True),
            trace_emitter=BufferEmitter(),
        )
        for event in (_message(), _message(user_id="u1"), _message(channel_id="gm1")):
            assert plain.handle_message(event) == traced.handle_message(event)


def test_from_config(
    directory: InMemoryDirectory, renderer: RecordingRenderer
) -> None:
    """Engines built from config use its strings and policy."""
    config = NotifyConfig(
        engine=EngineConfig(default_duration_ms=2000),
        strings={"channel_loader.wrote": " says: "},
    )
    engine = NotificationEngine.from_config(config, directory, renderer)
    alert = engine.handle_message(_message())
    assert alert is not None
    assert alert.body == "bob says: hi there"
    assert alert.duration_ms == 2000
