"""
sizekeeper.tracking.debounce - Coalesce live size changes.

Interactive resizing emits a storm of size-changed signals.  Each one
re-arms a per-window timer; only when the window has been at rest for
size_change_debounce_ms is its current size handed to the save callback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable

from sizekeeper.core.system import WindowSystem
from sizekeeper.tracking.tracked import TrackedWindow

log = logging.getLogger(__name__)


class SizeChangeDebouncer:
    """One pending timer per TrackedWindow; last event wins."""

    def __init__(
        self,
        system: WindowSystem,
        delay_ms: int,
        on_settled: Callable[[Hashable], None],
    ) -> None:
        self._system = system
        self._delay_ms = delay_ms
        self._on_settled = on_settled

    def touch(self, entry: TrackedWindow) -> None:
        """Restart the quiet period for *entry*."""
        self.cancel(entry)

        def _fire() -> None:
            entry.debounce_timer = None
            self._on_settled(entry.window)

        entry.debounce_timer = self._system.schedule(self._delay_ms, _fire)

    def cancel(self, entry: TrackedWindow) -> None:
        if entry.debounce_timer is not None:
            self._system.cancel(entry.debounce_timer)
            entry.debounce_timer = None
