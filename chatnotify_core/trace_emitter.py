"""Trace emission for decision explainability.

Opt-in, sampled trace emission for debugging notification behaviour.
Traces are emitted after the decision is made.

Critical invariants:
- Zero semantic difference when tracing is off
- Never blocks execution
- Never emits by default
"""

from __future__ import annotations

import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from .decision.eligibility import EligibilityDecision
from .trace import DecisionTrace, OutcomeType, PerformanceMetrics


@dataclass
class TraceConfig:
    """Configuration for trace emission.

    Attributes:
        enabled: Master switch for tracing (default: False)
        sample_rate: Fraction of decisions to trace (0.0-1.0, default: 1.0)
        include_metrics: Whether to include timing metrics (default: True)
    """

    enabled: bool = False
    sample_rate: float = 1.0
    include_metrics: bool = True

    def should_trace(self) -> bool:
        """Determine if this decision should be traced."""
        if not self.enabled:
            return False
        if self.sample_rate >= 1.0:
            return True
        return secrets.randbelow(1000) < int(self.sample_rate * 1000)


class TraceEmitter(ABC):
    """Abstract interface for trace emission."""

    @abstractmethod
    def emit(self, trace: DecisionTrace) -> None:
        """Emit a decision trace. Must be non-blocking."""


class NullEmitter(TraceEmitter):
    """No-op emitter for when tracing is disabled."""

    def emit(self, trace: DecisionTrace) -> None:
        """Discard the trace."""


class BufferEmitter(TraceEmitter):
    """In-memory buffer for testing and dev tools.

    Stores traces in a bounded buffer (FIFO eviction).
    """

    def __init__(self, max_size: int = 1000) -> None:
        self._buffer: list[DecisionTrace] = []
        self._max_size = max_size

    def emit(self, trace: DecisionTrace) -> None:
        """Add trace to buffer, evicting oldest if full."""
        if len(self._buffer) >= self._max_size:
            self._buffer.pop(0)
        self._buffer.append(trace)

    @property
    def traces(self) -> list[DecisionTrace]:
        """Get all buffered traces."""
        return list(self._buffer)

    def clear(self) -> None:
        """Clear the buffer."""
        self._buffer.clear()

    def last(self, n: int = 1) -> list[DecisionTrace]:
        """Get the last N traces."""
        return self._buffer[-n:]


class CallbackEmitter(TraceEmitter):
    """Emitter that calls a callback function."""

    def __init__(self, callback: Callable[[DecisionTrace], None]) -> None:
        self._callback = callback

    def emit(self, trace: DecisionTrace) -> None:
        """Call the callback with the trace."""
        self._callback(trace)


@dataclass
class TraceBuilder:
    """Builds a DecisionTrace while a message is handled.

    Usage:
        builder = TraceBuilder(post_id, channel_id)
        builder.record_decision(decision)
        builder.start_compose()
        builder.end_compose()
        builder.set_alert(duration_ms, sound_requested)
        trace = builder.build()
    """

    post_id: str
    channel_id: str
    config: TraceConfig = field(default_factory=TraceConfig)

    _start_time_ns: int = field(default_factory=time.perf_counter_ns)
    _compose_start_ns: int = 0
    _compose_end_ns: int = 0
    _decision: EligibilityDecision | None = None
    _duration_ms: int | None = None
    _sound_requested: bool = False

    def record_decision(self, decision: EligibilityDecision) -> None:
        """Record the eligibility decision."""
        self._decision = decision

    def start_compose(self) -> None:
        """Mark start of title/body composition."""
        self._compose_start_ns = time.perf_counter_ns()

    def end_compose(self) -> None:
        """Mark end of title/body composition."""
        self._compose_end_ns = time.perf_counter_ns()

    def set_alert(self, duration_ms: int, sound_requested: bool) -> None:
        """Record the emitted alert's parameters."""
        self._duration_ms = duration_ms
        self._sound_requested = sound_requested

    def build(self) -> DecisionTrace:
        """Build the final trace."""
        end_time_ns = time.perf_counter_ns()
        decision = self._decision

        emitted = decision is not None and decision.eligible
        trace = DecisionTrace.create(
            self.post_id,
            self.channel_id,
            OutcomeType.ALERT_EMITTED if emitted else OutcomeType.SUPPRESSED,
        )
        if decision is not None:
            trace.steps = list(decision.steps)
            trace.preference = decision.preference.value
            trace.suppression_reason = decision.reason.value if decision.reason else None
        trace.duration_ms = self._duration_ms
        trace.sound_requested = self._sound_requested

        if self.config.include_metrics:
            compose_us = 0
            if self._compose_end_ns > self._compose_start_ns:
                compose_us = (self._compose_end_ns - self._compose_start_ns) // 1000
            trace.metrics = PerformanceMetrics(
                total_duration_us=(end_time_ns - self._start_time_ns) // 1000,
                compose_duration_us=compose_us,
            )

        return trace
