"""
sizekeeper.core.fake - Deterministic in-memory WindowSystem.

FakeWindowSystem drives its own virtual clock instead of wall-clock
timers: nothing happens until advance() is called, and timers fire in
(due time, creation order).  Windows are plain FakeWindow objects whose
state tests mutate directly, then announce through the emit helpers
(create_window, resize, end_grab, render_first_frame, destroy_window).

Background work queued with run_in_background() is executed by the next
advance() call, before any timer, so tests can interleave store writes
with other events.

Used by the test suite and handy for reproducing timing issues.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from sizekeeper.core.rect import Rect
from sizekeeper.core.system import (
    DoneCallback,
    GrabOp,
    Signal,
    SignalCallback,
    SignalHandle,
    TimerCallback,
    TimerHandle,
    WindowSystem,
    WindowType,
)

log = logging.getLogger(__name__)

DEFAULT_WORK_AREA = Rect(0, 0, 1920, 1080)


@dataclass(eq=False)
class FakeWindow:
    """Mutable window state.  Hashes by identity, like a real handle."""

    name: str = "window"
    app_id: str = ""
    class_name: str = ""
    window_type: WindowType = WindowType.NORMAL
    skip_taskbar: bool = False
    rect: Rect = field(default_factory=lambda: Rect(100, 100, 640, 480))
    maximized: bool = False
    fullscreen: bool = False
    minimized: bool = False
    surface: bool = True
    alive: bool = True
    monitor: int = 0
    has_workspace: bool = True
    sequence: int = 0

    # Every rect passed to move_resize_frame(), in order
    moves: list[Rect] = field(default_factory=list)
    fail_move: bool = False

    def __repr__(self) -> str:
        return f"FakeWindow({self.name!r}, seq={self.sequence})"


class FakeWindowSystem(WindowSystem):
    """WindowSystem with a virtual clock and scriptable windows."""

    def __init__(self, work_areas: Optional[list[Rect]] = None) -> None:
        self.now_ms = 0
        self.work_areas: list[Rect] = list(work_areas or [DEFAULT_WORK_AREA])

        self._windows: list[FakeWindow] = []
        self._sequence = itertools.count(1)

        self._subs: dict[SignalHandle, tuple[Signal, Optional[FakeWindow], SignalCallback]] = {}
        self._next_sub = itertools.count(1)

        # timer handle -> (due time, callback)
        self._timers: dict[TimerHandle, tuple[int, TimerCallback]] = {}
        self._next_timer = itertools.count(1)

        self._background: list[tuple[Callable[[], Any], DoneCallback]] = []

        # Delay of every timer ever scheduled, in order
        self.scheduled: list[int] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def live_timer_count(self) -> int:
        return len(self._timers)

    @property
    def live_subscription_count(self) -> int:
        return len(self._subs)

    def subscriptions_for(self, window: FakeWindow) -> list[Signal]:
        return [sig for (sig, target, _cb) in self._subs.values() if target is window]

    @property
    def pending_background(self) -> int:
        return len(self._background)

    # ------------------------------------------------------------------
    # Scripting helpers
    # ------------------------------------------------------------------
    def add_window(self, **attrs: Any) -> FakeWindow:
        """Add a window silently (as if it existed before enable())."""
        window = FakeWindow(**attrs)
        window.sequence = next(self._sequence)
        self._windows.append(window)
        return window

    def create_window(self, **attrs: Any) -> FakeWindow:
        """Add a window and emit WINDOW_CREATED for it."""
        window = self.add_window(**attrs)
        self.emit(Signal.WINDOW_CREATED, None, window)
        return window

    def render_first_frame(self, window: FakeWindow) -> None:
        window.surface = True
        self.emit(Signal.FIRST_FRAME, window, window)

    def resize(self, window: FakeWindow, width: int, height: int) -> None:
        """User-driven size change: update the rect and emit SIZE_CHANGED."""
        r = window.rect
        window.rect = Rect(r.x, r.y, width, height)
        self.emit(Signal.SIZE_CHANGED, window, window)

    def end_grab(self, window: FakeWindow, op: GrabOp) -> None:
        self.emit(Signal.GRAB_OP_END, None, window, op)

    def destroy_window(self, window: FakeWindow) -> None:
        """Emit UNMANAGING, then make the window vanish."""
        self.emit(Signal.UNMANAGING, window, window)
        window.alive = False
        window.surface = False
        if window in self._windows:
            self._windows.remove(window)

    def emit(self, signal: Signal, window: Optional[FakeWindow], *args: Any) -> None:
        listeners = [
            handle for handle, (sig, target, _cb) in self._subs.items()
            if sig is signal and target is window
        ]
        for handle in listeners:
            # Skip listeners disconnected by an earlier callback
            entry = self._subs.get(handle)
            if entry is None:
                continue
            cb = entry[2]
            try:
                cb(*args)
            except Exception:
                log.exception("Error in %s callback for %s", signal.value, args)

    def advance(self, ms: int = 0) -> None:
        """
        Move the virtual clock forward by *ms*, running queued background
        work first and then every timer that falls due, in order.
        Timers scheduled by callbacks run too if they fall due in range.
        """
        self.run_background()
        target = self.now_ms + ms
        while True:
            due = [(when, handle) for handle, (when, _cb) in self._timers.items() if when <= target]
            if not due:
                break
            when, handle = min(due)
            _when, callback = self._timers.pop(handle)
            self.now_ms = when
            try:
                callback()
            except Exception:
                log.exception("Error in timer callback %d", handle)
            self.run_background()
        self.now_ms = target

    def run_background(self) -> None:
        """Run queued background work and deliver its completions."""
        while self._background:
            work, on_done = self._background.pop(0)
            error: Optional[BaseException] = None
            try:
                work()
            except Exception as exc:
                error = exc
            try:
                on_done(error)
            except Exception:
                log.exception("Error in background completion")

    # ------------------------------------------------------------------
    # WindowSystem: signals
    # ------------------------------------------------------------------
    def subscribe(
        self,
        signal: Signal,
        callback: SignalCallback,
        window: Optional[FakeWindow] = None,
    ) -> SignalHandle:
        if signal.is_global != (window is None):
            raise ValueError(f"{signal.value}: wrong scope for window={window!r}")
        handle = next(self._next_sub)
        self._subs[handle] = (signal, window, callback)
        return handle

    def unsubscribe(self, handle: SignalHandle) -> None:
        self._subs.pop(handle, None)

    # ------------------------------------------------------------------
    # WindowSystem: scheduling
    # ------------------------------------------------------------------
    def schedule(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        handle = next(self._next_timer)
        self._timers[handle] = (self.now_ms + max(delay_ms, 0), callback)
        self.scheduled.append(delay_ms)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        self._timers.pop(handle, None)

    def run_in_background(
        self, work: Callable[[], Any], on_done: DoneCallback,
    ) -> None:
        self._background.append((work, on_done))

    # ------------------------------------------------------------------
    # WindowSystem: queries
    # ------------------------------------------------------------------
    def windows(self) -> list[FakeWindow]:
        return [w for w in self._windows if self.has_surface(w)]

    def exists(self, window: FakeWindow) -> bool:
        return window.alive

    def has_surface(self, window: FakeWindow) -> bool:
        return window.alive and window.surface

    def window_type(self, window: FakeWindow) -> WindowType:
        return window.window_type

    def is_skip_taskbar(self, window: FakeWindow) -> bool:
        return window.skip_taskbar

    def class_name(self, window: FakeWindow) -> str:
        return window.class_name

    def app_id(self, window: FakeWindow) -> str:
        return window.app_id

    def is_maximized(self, window: FakeWindow) -> bool:
        return window.maximized

    def is_fullscreen(self, window: FakeWindow) -> bool:
        return window.fullscreen

    def is_minimized(self, window: FakeWindow) -> bool:
        return window.minimized

    def frame_rect(self, window: FakeWindow) -> Rect:
        return window.rect

    def monitor_index(self, window: FakeWindow) -> int:
        return window.monitor

    def work_area(self, window: FakeWindow, monitor: int) -> Optional[Rect]:
        if not window.has_workspace:
            return None
        if 0 <= monitor < len(self.work_areas):
            return self.work_areas[monitor]
        return None

    def stable_sequence(self, window: FakeWindow) -> int:
        return window.sequence

    def move_resize_frame(self, window: FakeWindow, rect: Rect) -> None:
        if window.fail_move or not window.alive:
            raise RuntimeError(f"move_resize_frame failed for {window!r}")
        resized = (window.rect.w, window.rect.h) != (rect.w, rect.h)
        window.moves.append(rect)
        window.rect = rect
        if resized:
            self.emit(Signal.SIZE_CHANGED, window, window)
