"""Suppression window: the Idle / Suppressed(until) state machine.

While the user types in the markdown editor the controller patches the
tree, and the tree notifies its listeners.  Without suppression that
notification would serialize the tree and push it straight back into the
editor.  The window is armed by every editor-originated update and checked
lazily, by clock comparison, on every tree-change notification; no timer
has to fire for it to expire.

One window belongs to one open document session.
"""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_WINDOW_MS = 300


class SuppressionWindow:
    """Session-scoped suppression deadline.

    Args:
        window_ms: Window length in milliseconds.
        clock: Monotonic clock returning seconds.  Injectable for tests.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_ms = window_ms
        self._clock = clock
        self._until: float | None = None

    @property
    def until(self) -> float | None:
        """Current deadline in clock seconds, ``None`` when idle."""
        return self._until

    @property
    def state(self) -> str:
        """``"suppressed"`` or ``"idle"``."""
        return "suppressed" if self.is_active() else "idle"

    def arm(self) -> None:
        """Open the window, or push its deadline out if already open.

        Re-arming replaces the deadline; windows never stack.
        """
        self._until = self._clock() + self.window_ms / 1000.0

    def is_active(self) -> bool:
        """Return ``True`` while the deadline lies in the future.

        An expired deadline is cleared here, moving the window to idle.
        """
        if self._until is None:
            return False
        if self._clock() < self._until:
            return True
        self._until = None
        return False

    def cancel(self) -> None:
        """Return to idle immediately."""
        self._until = None
