"""
sizekeeper.tracking.registry - Window lifecycle controller.

WindowRegistry is the central coordinator.  It:
    - Subscribes to window creation and grab-op completion globally
    - Decides which windows are trackable
    - Resolves (or polls for) each window's WindowID
    - Keeps one TrackedWindow entry per window, holding every handle
      acquired for it, so untrack() and disable() release everything
    - Hands identified windows to the RestorationEngine
    - Feeds size changes through the debouncer into the store

The registry never touches the store file and never resizes windows
itself; those are the store's and the restoration engine's jobs.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import Optional

from sizekeeper.config.settings import TrackerConfig
from sizekeeper.core.system import GrabOp, Signal, SignalHandle, WindowSystem, WindowType
from sizekeeper.tracking.debounce import SizeChangeDebouncer
from sizekeeper.tracking.identity import IdentificationResolver, WindowID
from sizekeeper.tracking.restore import InstanceKey, RestorationEngine
from sizekeeper.tracking.store import PersistentStore
from sizekeeper.tracking.tracked import TrackedWindow

log = logging.getLogger(__name__)


class WindowRegistry:
    """
    Owns the per-window arena and every subscription and timer the
    engine holds.

    Usage:
        registry = WindowRegistry(system, store, config)
        registry.enable()
        ...
        registry.disable()    # zero timers and subscriptions remain
    """

    def __init__(
        self,
        system: WindowSystem,
        store: PersistentStore,
        config: TrackerConfig,
    ) -> None:
        self._system = system
        self._store = store
        self._config = config

        self._resolver = IdentificationResolver(system, config)
        self._restorer = RestorationEngine(system, store, config)
        self._debouncer = SizeChangeDebouncer(
            system, config.size_change_debounce_ms, self.save_window_size,
        )

        # window -> TrackedWindow (tracked or awaiting identity)
        self._entries: dict[Hashable, TrackedWindow] = {}

        # WINDOW_CREATED / GRAB_OP_END
        self._global_signals: list[SignalHandle] = []
        self._enabled = False

    # ========================================================================
    # Introspection
    # ========================================================================
    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def resolver(self) -> IdentificationResolver:
        return self._resolver

    @property
    def restorer(self) -> RestorationEngine:
        return self._restorer

    @property
    def tracked_windows(self) -> list[Hashable]:
        return [w for w, e in self._entries.items() if e.is_tracked]

    @property
    def restored(self) -> frozenset[InstanceKey]:
        return self._restorer.restored

    def entry(self, window: Hashable) -> Optional[TrackedWindow]:
        return self._entries.get(window)

    # ========================================================================
    # Lifecycle
    # ========================================================================
    def enable(self) -> None:
        """Subscribe globally and adopt every window already present."""
        if self._enabled:
            return
        self._enabled = True

        self._global_signals = [
            self._system.subscribe(Signal.WINDOW_CREATED, self._on_window_created),
            self._system.subscribe(Signal.GRAB_OP_END, self._on_grab_op_end),
        ]

        for window in self._system.windows():
            if not self.trackable(window):
                continue
            self.track(window)
            window_id = self._resolver.resolve(window)
            if window_id is not None:
                self._begin_restore(window, window_id)

        log.info("ENABLED: tracking %d existing windows", len(self.tracked_windows))

    def disable(self) -> None:
        """Release every timer and subscription acquired since enable()."""
        for window in list(self._entries):
            self.untrack(window)

        for handle in self._global_signals:
            self._disconnect(handle)
        self._global_signals = []

        self._restorer.reset()
        self._enabled = False
        log.info("DISABLED")

    # ========================================================================
    # Tracking
    # ========================================================================
    def trackable(self, window: Hashable) -> bool:
        """Normal, taskbar-visible, identifiable top-level window."""
        system = self._system
        if not system.exists(window):
            return False
        if system.window_type(window) is not WindowType.NORMAL:
            return False
        if system.is_skip_taskbar(window):
            return False
        return bool(system.app_id(window) or system.class_name(window))

    def track(self, window: Hashable) -> TrackedWindow:
        """Connect SIZE_CHANGED and UNMANAGING for *window*; idempotent."""
        entry = self._entry_for(window)
        if entry.is_tracked:
            return entry

        entry.signals = [
            self._system.subscribe(Signal.SIZE_CHANGED, self._on_size_changed, window),
            self._system.subscribe(Signal.UNMANAGING, self._on_unmanaging, window),
        ]
        return entry

    def untrack(self, window: Hashable) -> None:
        """Drop *window* and everything pending for it; idempotent."""
        entry = self._entries.pop(window, None)
        if entry is None:
            return

        for handle in entry.signals:
            self._disconnect(handle)
        entry.signals = []

        self._debouncer.cancel(entry)
        self._restorer.cancel(entry)

        if entry.identify_poll is not None:
            entry.identify_poll.cancel()
            entry.identify_poll = None
        if entry.successor_poll is not None:
            entry.successor_poll.cancel()
            entry.successor_poll = None

    def _entry_for(self, window: Hashable) -> TrackedWindow:
        entry = self._entries.get(window)
        if entry is None:
            entry = TrackedWindow(window)
            self._entries[window] = entry
        return entry

    def _disconnect(self, handle: SignalHandle) -> None:
        try:
            self._system.unsubscribe(handle)
        except Exception:
            # The window may already be gone
            log.debug("unsubscribe failed for handle %r", handle)

    # ========================================================================
    # Identification and restoration
    # ========================================================================
    def _begin_restore(self, window: Hashable, window_id: WindowID) -> None:
        entry = self._entries.get(window)
        if entry is None:
            return
        entry.window_id = window_id

        if self._resolver.awaits_successor(window_id):
            if entry.successor_poll is not None:
                entry.successor_poll.cancel()
            poll = self._resolver.wait_for_successor(
                window,
                window_id,
                lambda resolved: self._on_successor(window, resolved),
                lambda: self.untrack(window),
            )
            if poll.active and self._entries.get(window) is entry:
                entry.successor_poll = poll
            return

        self._restorer.schedule_restore(entry, window_id)

    def _on_identified(self, window: Hashable, window_id: WindowID) -> None:
        entry = self._entries.get(window)
        if entry is None:
            return
        entry.identify_poll = None
        self.track(window)
        self._begin_restore(window, window_id)

    def _on_identify_abandoned(self, window: Hashable) -> None:
        entry = self._entries.get(window)
        if entry is None:
            return
        entry.identify_poll = None
        self.untrack(window)

    def _on_successor(self, window: Hashable, window_id: WindowID) -> None:
        entry = self._entries.get(window)
        if entry is None:
            return
        entry.successor_poll = None
        entry.window_id = window_id
        self._restorer.schedule_restore(entry, window_id)

    # ========================================================================
    # Signal handlers
    # ========================================================================
    def _on_window_created(self, window: Hashable) -> None:
        system = self._system
        if system.window_type(window) is not WindowType.NORMAL:
            return
        if system.is_skip_taskbar(window):
            return

        window_id = self._resolver.resolve(window)
        if window_id is None:
            log.info("WINDOW CREATED %r: awaiting identity", window)
            entry = self._entry_for(window)
            # A repeated announcement restarts the wait
            if entry.identify_poll is not None:
                entry.identify_poll.cancel()
                entry.identify_poll = None
            poll = self._resolver.poll(
                window,
                lambda resolved: self._on_identified(window, resolved),
                lambda: self._on_identify_abandoned(window),
            )
            if poll.active and self._entries.get(window) is entry:
                entry.identify_poll = poll
            return

        log.info("IDENTIFIED %r (%r)", window_id, window)
        self.track(window)
        self._begin_restore(window, window_id)

    def _on_size_changed(self, window: Hashable) -> None:
        entry = self._entries.get(window)
        if entry is None or not entry.is_tracked:
            return
        self._debouncer.touch(entry)

    def _on_grab_op_end(self, window: Hashable, op: GrabOp) -> None:
        if not op.is_resize:
            return
        if not self.trackable(window):
            return

        frame = self._system.frame_rect(window)
        log.info(
            "UPDATE DETECTED %r: resize grab ended at %dx%d",
            self._resolver.resolve(window), frame.w, frame.h,
        )
        entry = self._entries.get(window)
        if entry is not None:
            self._debouncer.cancel(entry)
        self.save_window_size(window)

    def _on_unmanaging(self, window: Hashable) -> None:
        if self.trackable(window):
            log.info("UPDATE DETECTED %r: window closing", self._resolver.resolve(window))
            self.save_window_size(window)
        self.untrack(window)

    # ========================================================================
    # Saving
    # ========================================================================
    def save_window_size(self, window: Hashable) -> bool:
        """
        Persist the current frame size of *window*.

        Maximized, fullscreen and minimized windows are skipped; their
        normal size is whatever was saved before.

        Returns:
            True if the store recorded a new size.
        """
        system = self._system
        try:
            if system.is_maximized(window) or system.is_fullscreen(window):
                return False
            if system.is_minimized(window):
                return False

            window_id = self._resolver.resolve(window)
            if window_id is None:
                return False

            frame = system.frame_rect(window)
            return self._store.set(window_id, frame.w, frame.h)

        except Exception:
            log.exception("Error saving size of %r", window)
            return False
