"""Window focus tracking."""

from __future__ import annotations

import threading


class FocusTracker:
    """Records whether the client window currently has input focus.

    One tracker belongs to one engine instance. Pass thread_safe=True when
    focus signals and message handling run on different threads.
    """

    def __init__(self, focused: bool = False, *, thread_safe: bool = False) -> None:
        self._focused = focused
        self._lock = threading.Lock() if thread_safe else None

    def set_focus(self, focused: bool) -> None:
        """Overwrite the focus state."""
        if self._lock is None:
            self._focused = bool(focused)
            return
        with self._lock:
            self._focused = bool(focused)

    def get_focus(self) -> bool:
        """Return the current focus state."""
        if self._lock is None:
            return self._focused
        with self._lock:
            return self._focused
