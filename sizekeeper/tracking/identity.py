"""
sizekeeper.tracking.identity - WindowID resolution.

A WindowID is the normalized, lowercase identity of the application that
owns a window.  Resolution order:

    1. The canonical application identity, unless it is a transient
       placeholder (an identity meaning "not associated yet").  Any
       file-type suffix (.exe, .desktop) is stripped.
    2. The legacy window class name.
    3. Nothing: the window cannot be identified (yet).

Identity is not always available when a window is created, so the
resolver also provides two bounded polling loops:

    - poll()               : re-resolve until an identity appears
    - wait_for_successor() : a generic (provisional) identity was found;
                             wait briefly for a more specific one
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from typing import Optional

from sizekeeper.config.settings import TrackerConfig
from sizekeeper.core.system import TimerHandle, WindowSystem

log = logging.getLogger(__name__)

WindowID = str


class Poll:
    """
    Cancellable bounded re-check loop.

    At most one timer is armed at a time.  Each tick calls *check*;
    a truthy result ends the loop.  When *max_attempts* ticks pass without
    success, *on_exhausted* is called.  cancel() is idempotent.
    """

    def __init__(
        self,
        system: WindowSystem,
        interval_ms: int,
        max_attempts: int,
        check: Callable[[int], bool],
        on_exhausted: Callable[[int], None],
    ) -> None:
        self._system = system
        self._interval_ms = interval_ms
        self._max_attempts = max_attempts
        self._check = check
        self._on_exhausted = on_exhausted
        self._timer: Optional[TimerHandle] = None
        self._attempts = 0
        self._done = False

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def active(self) -> bool:
        return not self._done

    def start(self) -> Poll:
        self._arm()
        return self

    def cancel(self) -> None:
        self._done = True
        if self._timer is not None:
            self._system.cancel(self._timer)
            self._timer = None

    def _arm(self) -> None:
        if self._attempts >= self._max_attempts:
            self._done = True
            self._on_exhausted(self._attempts)
            return
        self._timer = self._system.schedule(self._interval_ms, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if self._done:
            return
        self._attempts += 1
        if self._check(self._attempts):
            self._done = True
            return
        if not self._done:
            self._arm()


class IdentificationResolver:
    """Derives WindowIDs and runs the bounded identification polls."""

    def __init__(self, system: WindowSystem, config: TrackerConfig) -> None:
        self._system = system
        self._config = config

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, window: Hashable) -> Optional[WindowID]:
        """Return the WindowID of *window*, or None if not identifiable yet."""
        app_id = self._system.app_id(window)
        if app_id and not self._config.is_placeholder(app_id):
            return self.normalize(app_id)

        class_name = self._system.class_name(window)
        if class_name:
            return class_name.lower()

        return None

    def normalize(self, app_id: str) -> WindowID:
        lowered = app_id.lower()
        for suffix in self._config.identity_suffixes:
            if lowered.endswith(suffix):
                return lowered[: -len(suffix)]
        return lowered

    def awaits_successor(self, window_id: WindowID) -> bool:
        return self._config.awaits_successor(window_id)

    def is_successor(self, window_id: Optional[WindowID]) -> bool:
        return self._config.is_successor(window_id)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------
    def poll(
        self,
        window: Hashable,
        on_identified: Callable[[WindowID], None],
        on_abandoned: Optional[Callable[[], None]] = None,
    ) -> Poll:
        """
        Re-resolve *window* every window_ready_timeout_ms until it has an
        identity, at most window_ready_max_attempts times.

        A window that disappears ends the poll; exhausting the budget logs
        once.  Both cases call *on_abandoned*.
        """

        def _check(attempt: int) -> bool:
            if not self._system.exists(window):
                log.debug("Window %r vanished while awaiting identity", window)
                if on_abandoned is not None:
                    on_abandoned()
                return True
            window_id = self.resolve(window)
            if window_id is None:
                return False
            log.info("IDENTIFIED %r (delayed, attempt %d)", window_id, attempt)
            on_identified(window_id)
            return True

        def _exhausted(attempts: int) -> None:
            log.info("IDENTIFICATION FAILED for %r after %d attempts", window, attempts)
            if on_abandoned is not None:
                on_abandoned()

        return Poll(
            self._system,
            self._config.window_ready_timeout_ms,
            self._config.window_ready_max_attempts,
            _check,
            _exhausted,
        ).start()

    def wait_for_successor(
        self,
        window: Hashable,
        generic_id: WindowID,
        on_resolved: Callable[[WindowID], None],
        on_vanished: Optional[Callable[[], None]] = None,
    ) -> Poll:
        """
        Give a provisional identity a short grace period to be replaced.

        *on_resolved* receives the location-qualified identity if one
        appears within successor_max_attempts ticks, otherwise *generic_id*.
        """
        log.info("Provisional identity %r, waiting for a specific one...", generic_id)

        def _check(attempt: int) -> bool:
            if not self._system.exists(window):
                if on_vanished is not None:
                    on_vanished()
                return True
            window_id = self.resolve(window)
            if self.is_successor(window_id):
                log.info("Specific identity %r replaces %r", window_id, generic_id)
                on_resolved(window_id)
                return True
            log.debug("Still %r (attempt %d)", window_id, attempt)
            return False

        def _exhausted(attempts: int) -> None:
            log.info(
                "No specific identity after %d attempts, using %r", attempts, generic_id,
            )
            on_resolved(generic_id)

        return Poll(
            self._system,
            self._config.successor_wait_ms,
            self._config.successor_max_attempts,
            _check,
            _exhausted,
        ).start()
