"""
sizekeeper.tracking.restore - Re-apply a saved size to a new window.

A window must not be resized before the window system has laid it out,
but should be resized before the user sees it.  Restoration therefore
runs a layered strategy, modeled as an explicit per-window state machine
(Restoration):

    IMMEDIATE       apply_size() right away; many windows are already
                    laid out when they are identified.
    FIRST_FRAME     subscribe to the first-frame signal and retry once
                    when it fires, the earliest flicker-free moment.
    FALLBACK_RETRY  a short fallback timer armed together with the
                    first-frame subscription.  When it fires the
                    subscription is dropped and apply_size() is retried
                    a bounded number of times.

Phases: PENDING -> RESTORED | ABANDONED.

Each (WindowID, instance sequence) pair is restored at most once per
engine lifetime; the pair enters the restored set the moment
apply_size() succeeds and no further attempt is made for it.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Optional

from sizekeeper.config.settings import TrackerConfig
from sizekeeper.core.system import Signal, SignalHandle, TimerHandle, WindowSystem
from sizekeeper.tracking.store import PersistentStore, WindowRecord
from sizekeeper.tracking.tracked import TrackedWindow

log = logging.getLogger(__name__)

InstanceKey = tuple[str, int]


class RestorePhase(enum.Enum):
    PENDING = "pending"
    RESTORED = "restored"
    ABANDONED = "abandoned"


class Strategy(enum.Enum):
    IMMEDIATE = "immediate"
    FIRST_FRAME = "first-frame"
    FALLBACK_RETRY = "fallback-retry"


@dataclass(eq=False)
class Restoration:
    """State of one in-flight restoration."""

    window_id: str
    record: WindowRecord
    key: InstanceKey
    phase: RestorePhase = RestorePhase.PENDING
    strategy: Strategy = Strategy.IMMEDIATE
    attempt: int = 0
    timer: Optional[TimerHandle] = None
    first_frame: Optional[SignalHandle] = None

    @property
    def is_pending(self) -> bool:
        return self.phase is RestorePhase.PENDING


class RestorationEngine:
    """Applies stored sizes to windows, exactly once per window instance."""

    def __init__(
        self,
        system: WindowSystem,
        store: PersistentStore,
        config: TrackerConfig,
    ) -> None:
        self._system = system
        self._store = store
        self._config = config

        # (WindowID, instance sequence) pairs already restored
        self._restored: set[InstanceKey] = set()

    # ------------------------------------------------------------------
    # Restored set
    # ------------------------------------------------------------------
    @property
    def restored(self) -> frozenset[InstanceKey]:
        return frozenset(self._restored)

    def instance_key(self, window: Hashable, window_id: str) -> InstanceKey:
        return (window_id, self._system.stable_sequence(window))

    def is_restored(self, window: Hashable, window_id: str) -> bool:
        return self.instance_key(window, window_id) in self._restored

    def reset(self) -> None:
        self._restored.clear()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def schedule_restore(
        self, entry: TrackedWindow, window_id: str,
    ) -> Optional[Restoration]:
        """
        Start restoring *entry* to the size stored for *window_id*.

        Returns:
            The Restoration (possibly already RESTORED by the immediate
            attempt), or None when there is nothing to do.
        """
        window = entry.window
        key = self.instance_key(window, window_id)
        if key in self._restored:
            return None

        record = self._store.get(window_id)
        if record is None:
            log.debug("No saved state for %r", window_id)
            return None

        log.info(
            "RESTORE %r -> %dx%d, attempting...", window_id, record.width, record.height,
        )
        self.cancel(entry)

        restoration = Restoration(window_id=window_id, record=record, key=key)
        entry.restoration = restoration

        # Strategy 1: the window may already be laid out
        restoration.attempt += 1
        if self.apply_size(window, record, key):
            self._finish(entry, restoration, RestorePhase.RESTORED)
            return restoration

        # Strategies 2 and 3, armed together
        restoration.strategy = Strategy.FIRST_FRAME
        restoration.first_frame = self._system.subscribe(
            Signal.FIRST_FRAME,
            lambda _window: self._on_first_frame(entry, restoration),
            window,
        )
        restoration.timer = self._system.schedule(
            self._config.restore_fallback_delay_ms,
            lambda: self._on_fallback(entry, restoration),
        )
        return restoration

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _current(self, entry: TrackedWindow, restoration: Restoration) -> bool:
        return entry.restoration is restoration and restoration.is_pending

    def _on_first_frame(self, entry: TrackedWindow, restoration: Restoration) -> None:
        if not self._current(entry, restoration):
            return
        self._disconnect_first_frame(restoration)
        if restoration.key in self._restored:
            self._finish(entry, restoration, RestorePhase.RESTORED)
            return
        restoration.attempt += 1
        if self.apply_size(entry.window, restoration.record, restoration.key):
            self._finish(entry, restoration, RestorePhase.RESTORED)
        # Otherwise the fallback timer is still armed

    def _on_fallback(self, entry: TrackedWindow, restoration: Restoration) -> None:
        restoration.timer = None
        if not self._current(entry, restoration):
            return
        self._disconnect_first_frame(restoration)
        restoration.strategy = Strategy.FALLBACK_RETRY
        restoration.attempt = 0
        self._retry(entry, restoration)

    def _on_retry_timer(self, entry: TrackedWindow, restoration: Restoration) -> None:
        restoration.timer = None
        if not self._current(entry, restoration):
            return
        self._retry(entry, restoration)

    def _retry(self, entry: TrackedWindow, restoration: Restoration) -> None:
        if restoration.key in self._restored:
            self._finish(entry, restoration, RestorePhase.RESTORED)
            return

        restoration.attempt += 1
        if self.apply_size(entry.window, restoration.record, restoration.key):
            self._finish(entry, restoration, RestorePhase.RESTORED)
            return

        if restoration.attempt >= self._config.restore_max_attempts:
            log.info(
                "RESTORE GAVE UP %r after %d attempts",
                restoration.window_id, restoration.attempt,
            )
            self._finish(entry, restoration, RestorePhase.ABANDONED)
            return

        restoration.timer = self._system.schedule(
            self._config.restore_retry_delay_ms,
            lambda: self._on_retry_timer(entry, restoration),
        )

    def _finish(
        self, entry: TrackedWindow, restoration: Restoration, phase: RestorePhase,
    ) -> None:
        restoration.phase = phase
        self._release(restoration)
        if entry.restoration is restoration:
            entry.restoration = None

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------
    def cancel(self, entry: TrackedWindow) -> None:
        """Drop any pending restoration of *entry*."""
        restoration = entry.restoration
        if restoration is None:
            return
        entry.restoration = None
        if restoration.is_pending:
            restoration.phase = RestorePhase.ABANDONED
        self._release(restoration)

    def _release(self, restoration: Restoration) -> None:
        if restoration.timer is not None:
            self._system.cancel(restoration.timer)
            restoration.timer = None
        self._disconnect_first_frame(restoration)

    def _disconnect_first_frame(self, restoration: Restoration) -> None:
        if restoration.first_frame is None:
            return
        handle, restoration.first_frame = restoration.first_frame, None
        try:
            self._system.unsubscribe(handle)
        except Exception:
            # The window may already be gone
            log.debug("first-frame disconnect failed for %r", restoration.window_id)

    # ------------------------------------------------------------------
    # Core operation
    # ------------------------------------------------------------------
    def apply_size(
        self, window: Hashable, record: WindowRecord, key: InstanceKey,
    ) -> bool:
        """
        Apply *record* to *window*, centered on its monitor's work area.

        Returns:
            True when the instance counts as restored (including the
            maximized/fullscreen and already-in-place cases), False when
            the window is not ready yet and the caller should retry.
        """
        system = self._system
        try:
            if not system.has_surface(window):
                return False

            # The window system owns the geometry of these windows
            if system.is_maximized(window) or system.is_fullscreen(window):
                self._restored.add(key)
                return True

            if system.is_minimized(window):
                return False

            frame = system.frame_rect(window)
            if frame.is_empty:
                return False

            work_area = system.work_area(window, system.monitor_index(window))
            if work_area is None or work_area.is_empty:
                return False

            target = work_area.centered(record.width, record.height)
            if frame.matches(target, self._config.tolerance):
                self._restored.add(key)
                return True

            system.move_resize_frame(window, target)
            self._restored.add(key)
            log.info(
                "RESTORED %r -> %dx%d centered at (%d, %d)",
                key[0], target.w, target.h, target.x, target.y,
            )
            return True

        except Exception:
            log.exception("Error restoring %r", key[0])
            return False
