"""Decision logic for desktop notifications.

This package contains pure decision logic with no I/O dependencies.
All functions are deterministic and side-effect free.

Components:
- preference: Per-channel override over per-user default
- mentions: Mention list decoding and membership
- composer: Alert title/body text
- eligibility: The alert/no-alert predicate and alert parameters
"""

from .composer import (
    ELLIPSIS,
    PREVIEW_CUT,
    PREVIEW_LIMIT,
    compose_alert_text,
    compose_body,
    compose_title,
    preview_text,
    resolve_sender_name,
)
from .eligibility import (
    EligibilityContext,
    EligibilityDecision,
    SuppressionReason,
    alert_duration_ms,
    evaluate_eligibility,
    should_play_sound,
    sound_enabled,
)
from .mentions import is_mentioned, parse_mention_list
from .preference import resolve_notify_preference

__all__ = [
    "ELLIPSIS",
    "PREVIEW_CUT",
    "PREVIEW_LIMIT",
    "EligibilityContext",
    "EligibilityDecision",
    "SuppressionReason",
    "alert_duration_ms",
    "compose_alert_text",
    "compose_body",
    "compose_title",
    "evaluate_eligibility",
    "is_mentioned",
    "parse_mention_list",
    "preview_text",
    "resolve_notify_preference",
    "resolve_sender_name",
    "should_play_sound",
    "sound_enabled",
]
