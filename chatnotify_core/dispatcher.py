"""Single-consumer event loop feeding the notification engine.

Inbound events are queued and handled strictly in arrival order by one
consumer task, so the engine never sees two events at once.

Usage:
    dispatcher = NotificationDispatcher(engine, queue_size=100)
    await dispatcher.start()
    await dispatcher.submit(MessageReceived(post, metadata))
    dispatcher.submit_nowait(FocusChanged(True))
    await dispatcher.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import NotifyConfig
from .engine import NotificationEngine
from .models import AlertRequest
from .transport.events import build_message_event

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageReceived:
    """A message arrived. post and metadata are in wire form."""

    post: Mapping[str, Any]
    metadata: Mapping[str, Any] = field(default_factory=lambda: {})


@dataclass(frozen=True)
class FocusChanged:
    """The client window gained or lost input focus."""

    focused: bool


InboundEvent = MessageReceived | FocusChanged


class NotificationDispatcher:
    """Owns the inbound queue and the consumer task for one engine."""

    def __init__(
        self,
        engine: NotificationEngine,
        *,
        queue_size: int = 0,
        on_alert: Callable[[AlertRequest], None] | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            engine: Engine that handles every event.
            queue_size: Maximum queued events; 0 means unbounded.
            on_alert: Called with each emitted alert (for hosts and tests).
        """
        self._engine = engine
        self._queue: asyncio.Queue[InboundEvent] = asyncio.Queue(maxsize=queue_size)
        self._on_alert = on_alert
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        config: NotifyConfig,
        engine: NotificationEngine,
        *,
        on_alert: Callable[[AlertRequest], None] | None = None,
    ) -> NotificationDispatcher:
        """Build a dispatcher using the config's queue size."""
        return cls(engine, queue_size=config.dispatcher.queue_size, on_alert=on_alert)

    @property
    def engine(self) -> NotificationEngine:
        """The engine fed by this dispatcher."""
        return self._engine

    @property
    def running(self) -> bool:
        """Whether the consumer task is active."""
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Number of queued events."""
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the consumer task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._consume())

    async def stop(self, *, drain: bool = True) -> None:
        """Stop the consumer task.

        Args:
            drain: Handle already queued events before stopping.
        """
        if self._task is None:
            return
        if drain:
            await self._queue.join()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def submit(self, event: InboundEvent) -> None:
        """Queue an event, waiting for room if the queue is bounded."""
        await self._queue.put(event)

    def submit_nowait(self, event: InboundEvent) -> bool:
        """Queue an event without waiting.

        Returns:
            False if the queue is full and the event was dropped.
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            _LOGGER.warning("Notification queue full, dropping %s", type(event).__name__)
            return False
        return True

    def handle(self, event: InboundEvent) -> AlertRequest | None:
        """Handle one event synchronously."""
        if isinstance(event, FocusChanged):
            self._engine.set_focus(event.focused)
            return None

        alert = self._engine.handle_message(
            build_message_event(event.post, event.metadata)
        )
        if alert is not None and self._on_alert is not None:
            self._on_alert(alert)
        return alert

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self.handle(event)
            except Exception:  # Keep consuming after a bad event
                _LOGGER.exception("Failed to handle %s", type(event).__name__)
            finally:
                self._queue.task_done()
