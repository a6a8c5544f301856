"""Decision trace data classes for explainability.

A trace records why a single message did or did not raise an alert.
Traces are for developers only and never affect the decision.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4


class OutcomeType(Enum):
    """Final decision outcome type."""

    SUPPRESSED = "suppressed"
    ALERT_EMITTED = "alert_emitted"


@dataclass
class PerformanceMetrics:
    """Timing for one decision."""

    total_duration_us: int = 0
    compose_duration_us: int = 0


@dataclass
class DecisionTrace:
    """Complete trace of one notification decision.

    Attributes:
        trace_id: Unique id of this trace.
        timestamp: When the decision was made.
        post_id: Message the decision was about.
        channel_id: Channel the message was posted in.
        outcome: Whether an alert was emitted.
        steps: Ordered decision notes.
        preference: Effective notify level.
        suppression_reason: Why the alert was suppressed, if it was.
        duration_ms: Alert duration, when emitted.
        sound_requested: Whether the engine played a sound itself.
        metrics: Timing, when enabled.
    """

    trace_id: str
    timestamp: datetime
    post_id: str
    channel_id: str
    outcome: OutcomeType
    steps: list[str] = field(default_factory=lambda: [])
    preference: str | None = None
    suppression_reason: str | None = None
    duration_ms: int | None = None
    sound_requested: bool = False
    metrics: PerformanceMetrics | None = None

    @classmethod
    def create(
        cls, post_id: str, channel_id: str, outcome: OutcomeType
    ) -> DecisionTrace:
        """Create a new trace with auto-generated ID and timestamp."""
        return cls(
            trace_id=str(uuid4()),
            timestamp=datetime.now(),
            post_id=post_id,
            channel_id=channel_id,
            outcome=outcome,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert trace to dictionary for JSON serialization."""
        result = _to_dict(self)
        if isinstance(result, dict):
            return dict(result)
        return {}

    def explain(self) -> str:
        """One-line human-readable summary."""
        notes = "; ".join(self.steps)
        if self.outcome is OutcomeType.ALERT_EMITTED:
            return f"Alert for {self.post_id} in {self.channel_id}: {notes}"
        return (
            f"Suppressed {self.post_id} in {self.channel_id} "
            f"({self.suppression_reason}): {notes}"
        )


def _to_dict(obj: object) -> object:
    """Recursively convert dataclasses to dicts, dropping None fields."""
    if isinstance(obj, Enum):
        return str(obj.value)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, list):
        return [_to_dict(item) for item in obj]
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        result: dict[str, object] = {}
        for f in dataclasses.fields(obj):
            value = getattr(obj, f.name)
            if value is not None:
                result[f.name] = _to_dict(value)
        return result
    return obj
