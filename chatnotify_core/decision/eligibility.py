"""Core decision logic for desktop notification eligibility.

This module is the single decision point that answers: "Should this
message raise a native alert for the current user right now?"

Flow:
    Message event
      → self/system filter
        → preference resolution
          → mention refinement
            → focus suppression
              → alert parameters

All decisions are:
- Deterministic (same inputs → same outputs)
- Side-effect free
- Traceable (every step is recorded)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..models import (
    DEFAULT_NOTIFICATION_DURATION_MS,
    ChannelType,
    NotifyPreference,
    NotifyProps,
)
from ..user_agent import ClientVariant
from .mentions import is_mentioned
from .preference import resolve_notify_preference

_LOGGER = logging.getLogger(__name__)


class SuppressionReason(str, Enum):
    """Why a message did not raise an alert."""

    NO_CURRENT_USER = "no_current_user"
    OWN_MESSAGE = "own_message"
    SYSTEM_MESSAGE = "system_message"
    PREFERENCE_NONE = "preference_none"
    NOT_MENTIONED = "not_mentioned"
    CHANNEL_IN_FOCUS = "channel_in_focus"


# --------------------------------------------------------------------------
# Decision Context (All Inputs)
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class EligibilityContext:
    """All inputs for a single eligibility decision.

    Everything the decision needs is captured here, no lookups.

    Attributes:
        current_user_id: Receiving user, or None if not yet known.
        author_id: Author of the message.
        channel_id: Channel the message was posted in.
        is_system: Message is machine-generated.
        from_webhook: Message was posted through a webhook integration.
        user_default: The user's default desktop level.
        channel_override: The member's per-channel level, if any.
        mentions: User ids explicitly mentioned by the message.
        channel_type: Kind of channel the message was posted in.
        active_channel_id: Channel the user is currently viewing.
        focused: Whether the client window has input focus.
    """

    current_user_id: str | None
    author_id: str
    channel_id: str
    is_system: bool = False
    from_webhook: bool = False
    user_default: NotifyPreference = NotifyPreference.DEFAULT
    channel_override: NotifyPreference | None = None
    mentions: tuple[str, ...] = ()
    channel_type: ChannelType | None = None
    active_channel_id: str | None = None
    focused: bool = False


# --------------------------------------------------------------------------
# Decision Output
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class EligibilityDecision:
    """Outcome of an eligibility decision.

    Attributes:
        eligible: Whether an alert should be raised.
        preference: Effective level (DEFAULT until resolved).
        reason: Why the alert was suppressed, None when eligible.
        steps: Ordered notes explaining the decision.
    """

    eligible: bool
    preference: NotifyPreference = NotifyPreference.DEFAULT
    reason: SuppressionReason | None = None
    steps: tuple[str, ...] = field(default_factory=tuple)


def evaluate_eligibility(context: EligibilityContext) -> EligibilityDecision:
    """Decide whether a message should raise a desktop alert.

    Decision order (strict, first suppression wins):
        1. Current user known?
        2. Own message (unless posted by a webhook)
        3. System message
        4. Preference resolution
        5. Preference none
        6. Mention-only outside direct messages
        7. Channel already in view with window focused

    Args:
        context: Complete decision context.

    Returns:
        EligibilityDecision with the outcome and its explanation.
    """
    steps: list[str] = []

    # Step 1: No identity means nothing can be addressed to us.
    if context.current_user_id is None:
        steps.append("current user unknown")
        return _suppressed(SuppressionReason.NO_CURRENT_USER, steps)

    # Step 2: Own messages never alert, except webhook posts made as us.
    if context.author_id == context.current_user_id and not context.from_webhook:
        steps.append("author is current user")
        return _suppressed(SuppressionReason.OWN_MESSAGE, steps)
    if context.author_id == context.current_user_id:
        steps.append("own message posted via webhook")

    # Step 3: System messages.
    if context.is_system:
        steps.append("system message")
        return _suppressed(SuppressionReason.SYSTEM_MESSAGE, steps)

    # Step 4: Effective level.
    preference = resolve_notify_preference(
        context.user_default, context.channel_override
    )
    steps.append(
        f"preference: {preference.value} "
        f"(user {context.user_default.value}, "
        f"channel {context.channel_override.value if context.channel_override else 'unset'})"
    )

    # Step 5: Notifications off.
    if preference is NotifyPreference.NONE:
        return _suppressed(SuppressionReason.PREFERENCE_NONE, steps, preference)

    # Step 6: Mention-only; direct messages always count as addressed to us.
    if preference is NotifyPreference.MENTION:
        if context.channel_type is ChannelType.DIRECT:
            steps.append("direct message counts as mention")
        elif not is_mentioned(context.mentions, context.current_user_id):
            steps.append("not mentioned")
            return _suppressed(SuppressionReason.NOT_MENTIONED, steps, preference)
        else:
            steps.append("mentioned")

    # Step 7: The user is already looking at this channel.
    if context.focused and context.active_channel_id == context.channel_id:
        steps.append("channel active and window focused")
        return _suppressed(SuppressionReason.CHANNEL_IN_FOCUS, steps, preference)

    steps.append("eligible")
    return EligibilityDecision(
        eligible=True,
        preference=preference,
        reason=None,
        steps=tuple(steps),
    )


# --------------------------------------------------------------------------
# Alert Parameters
# --------------------------------------------------------------------------


def alert_duration_ms(
    props: NotifyProps | None,
    default_ms: int = DEFAULT_NOTIFICATION_DURATION_MS,
) -> int:
    """Convert the user's configured duration (seconds) to milliseconds."""
    if props is None or props.desktop_duration is None:
        return default_ms
    try:
        return int(props.desktop_duration) * 1000
    except (TypeError, ValueError):
        _LOGGER.warning(
            "Invalid desktop duration %r, using default", props.desktop_duration
        )
        return default_ms


def sound_enabled(props: NotifyProps | None) -> bool:
    """Sound is on unless the user explicitly turned it off."""
    if props is None:
        return True
    return props.desktop_sound is not False


def should_play_sound(sound: bool, variant: ClientVariant | None) -> bool:
    """Play a sound ourselves only where the client does not already.

    An unknown variant is treated as a client without its own sound.
    """
    if not sound:
        return False
    if variant is None:
        return True
    return not variant.plays_own_sound


def _suppressed(
    reason: SuppressionReason,
    steps: list[str],
    preference: NotifyPreference = NotifyPreference.DEFAULT,
) -> EligibilityDecision:
    """Build a suppressed decision."""
    return EligibilityDecision(
        eligible=False,
        preference=preference,
        reason=reason,
        steps=tuple(steps),
    )
