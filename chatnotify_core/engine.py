"""Notification engine: message events in, native alerts out.

The engine gathers the decision inputs from its collaborators, runs the
pure eligibility predicate, and only for eligible messages composes the
alert text and hands it to the renderer.

Usage:
    engine = NotificationEngine(directory, renderer, sound_player)
    engine.set_focus(True)
    alert = engine.handle_message(event)
"""

from __future__ import annotations

import dataclasses
import logging

from .collaborators import AlertRenderer, Directory, SoundPlayer
from .config import EngineConfig, NotifyConfig
from .decision.composer import compose_alert_text, resolve_sender_name
from .decision.eligibility import (
    EligibilityContext,
    alert_duration_ms,
    evaluate_eligibility,
    should_play_sound,
    sound_enabled,
)
from .focus import FocusTracker
from .localization import CatalogLocalizer, Localizer
from .models import AlertRequest, ChannelContext, MessageEvent, UserProfile
from .trace_emitter import NullEmitter, TraceBuilder, TraceConfig, TraceEmitter

_LOGGER = logging.getLogger(__name__)


class NotificationEngine:
    """Decides, per message, whether to raise a desktop alert.

    The only state held between messages is the window focus flag.
    """

    def __init__(
        self,
        directory: Directory,
        renderer: AlertRenderer,
        sound_player: SoundPlayer | None = None,
        *,
        config: EngineConfig | None = None,
        localizer: Localizer | None = None,
        focus: FocusTracker | None = None,
        trace_config: TraceConfig | None = None,
        trace_emitter: TraceEmitter | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            directory: Read access to users, channels and memberships.
            renderer: Receives alert requests.
            sound_player: Plays the notification sound; None disables sound.
            config: Engine policy (default duration, override flag, variant).
            localizer: Localized string lookup; English defaults if None.
            focus: Focus tracker; a new unfocused tracker if None.
            trace_config: Decision tracing settings (off by default).
            trace_emitter: Receives decision traces.
        """
        self._directory = directory
        self._renderer = renderer
        self._sound_player = sound_player
        self._config = config or EngineConfig()
        self._localizer = localizer or CatalogLocalizer()
        self._focus = focus or FocusTracker()
        self._trace_config = trace_config or TraceConfig()
        self._trace_emitter = trace_emitter or NullEmitter()

    @classmethod
    def from_config(
        cls,
        config: NotifyConfig,
        directory: Directory,
        renderer: AlertRenderer,
        sound_player: SoundPlayer | None = None,
        *,
        trace_emitter: TraceEmitter | None = None,
    ) -> NotificationEngine:
        """Build an engine from a loaded config file."""
        return cls(
            directory,
            renderer,
            sound_player,
            config=config.engine,
            localizer=CatalogLocalizer(config.strings),
            trace_config=config.trace,
            trace_emitter=trace_emitter,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def set_focus(self, focused: bool) -> None:
        """Record a window focus change."""
        self._focus.set_focus(focused)

    @property
    def focused(self) -> bool:
        """Whether the window currently has focus."""
        return self._focus.get_focus()

    def set_username_override(self, enabled: bool) -> None:
        """Apply the server's post username override policy."""
        self._config = dataclasses.replace(
            self._config, enable_post_username_override=enabled
        )

    @property
    def config(self) -> EngineConfig:
        """Current engine policy."""
        return self._config

    def handle_message(self, event: MessageEvent) -> AlertRequest | None:
        """Process one inbound message.

        Returns:
            The emitted AlertRequest, or None if the message was suppressed.
        """
        builder: TraceBuilder | None = None
        if self._trace_config.should_trace():
            builder = TraceBuilder(event.post_id, event.channel_id, self._trace_config)

        user = self._directory.current_user()
        channel = self._directory.get_channel(event.channel_id)
        decision = evaluate_eligibility(self._build_context(event, user, channel))
        if builder is not None:
            builder.record_decision(decision)

        if not decision.eligible or user is None:
            _LOGGER.debug(
                "Suppressed alert for post %s in %s: %s",
                event.post_id,
                event.channel_id,
                decision.reason.value if decision.reason else "unknown",
            )
            self._emit_trace(builder)
            return None

        if builder is not None:
            builder.start_compose()
        alert = self._build_alert(event, user, channel)
        if builder is not None:
            builder.end_compose()

        play_sound = self._sound_player is not None and should_play_sound(
            not alert.suppress_sound, self._config.client_variant
        )
        if builder is not None:
            builder.set_alert(alert.duration_ms, play_sound)

        self._request_alert(alert)
        if play_sound:
            self._play_sound()

        self._emit_trace(builder)
        return alert

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _build_context(
        self,
        event: MessageEvent,
        user: UserProfile | None,
        channel: ChannelContext | None,
    ) -> EligibilityContext:
        """Collect every decision input from the collaborators."""
        channel_type = event.channel_type or (channel.type if channel else None)

        if user is None:
            return EligibilityContext(
                current_user_id=None,
                author_id=event.user_id,
                channel_id=event.channel_id,
            )

        return EligibilityContext(
            current_user_id=user.id,
            author_id=event.user_id,
            channel_id=event.channel_id,
            is_system=event.is_system,
            from_webhook=event.from_webhook,
            user_default=user.notify_props.desktop,
            channel_override=self._directory.get_member_override(
                event.channel_id, user.id
            ),
            mentions=event.mentions,
            channel_type=channel_type,
            active_channel_id=self._directory.current_channel_id(),
            focused=self._focus.get_focus(),
        )

    def _build_alert(
        self,
        event: MessageEvent,
        user: UserProfile,
        channel: ChannelContext | None,
    ) -> AlertRequest:
        """Compose the alert for an eligible message."""
        sender_name = resolve_sender_name(
            event,
            allow_username_override=self._config.enable_post_username_override,
            profile_lookup=self._directory.get_profile,
            localizer=self._localizer,
        )
        title, body = compose_alert_text(
            event,
            channel,
            sender_name,
            localizer=self._localizer,
            group_name_lookup=self._directory.group_display_name,
        )

        props = user.notify_props
        team_id = event.team_id or (channel.team_id if channel else "")
        return AlertRequest(
            title=title,
            body=body,
            channel_id=event.channel_id,
            team_id=team_id,
            duration_ms=alert_duration_ms(props, self._config.default_duration_ms),
            suppress_sound=not sound_enabled(props),
        )

    def _request_alert(self, alert: AlertRequest) -> None:
        """Hand the alert to the renderer; failures are not surfaced."""
        try:
            self._renderer.request_alert(alert)
        except Exception:  # Renderer is fire-and-forget
            _LOGGER.exception("Alert renderer failed for channel %s", alert.channel_id)
            return
        _LOGGER.debug("Requested alert for channel %s: %s", alert.channel_id, alert.title)

    def _play_sound(self) -> None:
        if self._sound_player is None:
            return
        try:
            self._sound_player.play_notification_sound()
        except Exception:  # Sound is fire-and-forget
            _LOGGER.exception("Notification sound failed")

    def _emit_trace(self, builder: TraceBuilder | None) -> None:
        if builder is None:
            return
        self._trace_emitter.emit(builder.build())
