"""
sizekeeper.core.win32_system - Production WindowSystem on top of Win32.

Win32WindowSystem:

  1. Installs a WinEventHook and translates raw WinEvents into the
     engine's Signals:
         EVENT_OBJECT_CREATE          -> WINDOW_CREATED
         first EVENT_OBJECT_SHOW      -> FIRST_FRAME
         EVENT_OBJECT_LOCATIONCHANGE  -> SIZE_CHANGED (only if size differs)
         EVENT_OBJECT_DESTROY         -> UNMANAGING
         EVENT_SYSTEM_MOVESIZEEND     -> GRAB_OP_END (RESIZING if the size
                                         changed since MOVESIZESTART)
  2. Implements schedule() with thread timers (SetTimer + TIMERPROC),
     dispatched by the same message loop that delivers the WinEvents.
  3. Runs background work on daemon threads and marshals the completion
     back to the loop thread with PostThreadMessage(WM_APP).
  4. Answers per-window queries with live Win32 reads.

Everything runs on the thread that calls run(); only the background
workers touch another thread, and they never call back into the engine.
"""

from __future__ import annotations

import itertools
import logging
import queue
import signal
import threading
from collections.abc import Callable
from typing import Any, Optional

from sizekeeper.core import filter as wfilter
from sizekeeper.core import win32
from sizekeeper.core.monitor import Monitor, get_monitors, monitor_index_for_window
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
from sizekeeper.core.window import Window

log = logging.getLogger(__name__)


class Win32WindowSystem(WindowSystem):
    """
    WindowSystem backed by a WinEventHook and a Win32 message loop.

    Usage:
        system = Win32WindowSystem()
        system.install()
        tracker = SizeTracker(system)
        tracker.enable()
        system.run()        # blocks until stop() or Ctrl+C
        tracker.disable()
        system.uninstall()
    """

    def __init__(self) -> None:
        # Subscriptions: handle -> (signal, hwnd or None, callback)
        self._subs: dict[SignalHandle, tuple[Signal, Optional[int], SignalCallback]] = {}
        self._next_handle = itertools.count(1)

        # Timers: win32 timer id -> (ctypes TimerProc, callback).
        # The TimerProc must stay referenced until the timer is killed.
        self._timers: dict[TimerHandle, tuple[Any, TimerCallback]] = {}

        # Completions posted from background threads
        self._completions: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()

        # Per-window bookkeeping
        self._sequences: dict[int, int] = {}
        self._next_sequence = itertools.count(1)
        self._shown: set[int] = set()
        self._last_size: dict[int, tuple[int, int]] = {}
        self._grab_start: dict[int, tuple[int, int]] = {}

        # Monitor layout cache, refreshed on demand
        self._monitors: list[Monitor] = []

        # WinEvent hook handle and its ctypes callback (prevent GC)
        self._hook_handle: int = 0
        self._hook_proc: Optional[win32.WinEventProc] = None

        self._running = False
        self._loop_thread_id: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def install(self) -> None:
        """Install the WinEvent hook.  Raises RuntimeError on failure."""
        self._loop_thread_id = win32.get_current_thread_id()
        self._hook_proc = win32.WinEventProc(self._on_win_event)
        self._hook_handle = win32.set_win_event_hook(
            event_min=win32.EVENT_MIN,
            event_max=win32.EVENT_MAX,
            callback=self._hook_proc,
        )
        if not self._hook_handle:
            self._hook_proc = None
            raise RuntimeError("SetWinEventHook failed")
        self._monitors = get_monitors()
        log.info("WinEvent hook installed (handle=%#x)", self._hook_handle)

    def uninstall(self) -> None:
        """Unhook and kill any timer still alive."""
        for timer_id in list(self._timers):
            self.cancel(timer_id)
        if self._hook_handle:
            win32.unhook_win_event(self._hook_handle)
            self._hook_handle = 0
            log.info("WinEvent hook removed")
        self._hook_proc = None

    def run(self) -> None:
        """Message loop.  Blocks until stop(), WM_QUIT or SIGINT/SIGTERM."""

        def _signal_handler(sig: int, frame: object) -> None:
            log.info("Signal %d received, stopping...", sig)
            self.stop()

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        self._running = True
        log.info("Entering message loop")
        while self._running:
            got_msg, msg = win32.get_message()
            if not got_msg:
                break
            if msg.message == win32.WM_APP:
                self._drain_completions()
                continue
            win32.translate_and_dispatch(msg)
        self._running = False

    def stop(self) -> None:
        """
        Request the message loop to stop.
        Safe to call from any thread or from within a callback.
        """
        self._running = False
        if self._loop_thread_id:
            win32.post_thread_message(self._loop_thread_id, win32.WM_QUIT, 0, 0)
        else:
            win32.post_quit_message(0)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def subscribe(
        self,
        signal: Signal,
        callback: SignalCallback,
        window: Optional[Window] = None,
    ) -> SignalHandle:
        if signal.is_global != (window is None):
            raise ValueError(f"{signal.value}: wrong scope for window={window!r}")
        handle = next(self._next_handle)
        hwnd = window.hwnd if window is not None else None
        self._subs[handle] = (signal, hwnd, callback)
        if signal is Signal.SIZE_CHANGED and hwnd is not None:
            self._last_size.setdefault(hwnd, self._size_of(hwnd))
        return handle

    def unsubscribe(self, handle: SignalHandle) -> None:
        self._subs.pop(handle, None)

    def _emit(self, signal: Signal, hwnd: Optional[int], *args: Any) -> None:
        listeners = [
            handle for handle, (sig, target, _cb) in self._subs.items()
            if sig is signal and (target is None or target == hwnd)
        ]
        for handle in listeners:
            entry = self._subs.get(handle)
            if entry is None:
                continue
            cb = entry[2]
            try:
                cb(*args)
            except Exception:
                log.exception("Error in %s callback for %s", signal.value, args)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def schedule(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        def _fire(_hwnd: int, _msg: int, timer_id: int, _time: int) -> None:
            entry = self._timers.pop(timer_id, None)
            win32.kill_timer(timer_id)
            if entry is None:
                return
            try:
                entry[1]()
            except Exception:
                log.exception("Error in timer callback %#x", timer_id)

        proc = win32.TimerProc(_fire)
        timer_id = win32.set_timer(delay_ms, proc)
        if not timer_id:
            raise RuntimeError("SetTimer failed")
        self._timers[timer_id] = (proc, callback)
        return timer_id

    def cancel(self, handle: TimerHandle) -> None:
        if self._timers.pop(handle, None) is not None:
            win32.kill_timer(handle)

    def run_in_background(
        self, work: Callable[[], Any], on_done: DoneCallback,
    ) -> None:
        def _worker() -> None:
            error: Optional[BaseException] = None
            try:
                work()
            except Exception as exc:
                error = exc
            self._completions.put(lambda: on_done(error))
            win32.post_thread_message(self._loop_thread_id, win32.WM_APP, 0, 0)

        thread = threading.Thread(target=_worker, name="sizekeeper-io", daemon=True)
        thread.start()

    def _drain_completions(self) -> None:
        while True:
            try:
                completion = self._completions.get_nowait()
            except queue.Empty:
                return
            try:
                completion()
            except Exception:
                log.exception("Error in background completion")

    # ------------------------------------------------------------------
    # Raw WinEvent callback
    # ------------------------------------------------------------------
    def _on_win_event(
        self,
        hook: int,
        event: int,
        hwnd: int,
        id_object: int,
        id_child: int,
        event_thread: int,
        event_time: int,
    ) -> None:
        """
        Raw WinEvent callback dispatched by the OS.

        Only events on whole windows (OBJID_WINDOW / CHILDID_SELF) matter.
        """
        if id_object != win32.OBJID_WINDOW or id_child != win32.CHILDID_SELF:
            return
        if not hwnd:
            return

        try:
            if event == win32.EVENT_OBJECT_CREATE:
                self._handle_create(hwnd)
            elif event == win32.EVENT_OBJECT_SHOW:
                self._handle_show(hwnd)
            elif event == win32.EVENT_OBJECT_LOCATIONCHANGE:
                self._handle_location(hwnd)
            elif event == win32.EVENT_OBJECT_DESTROY:
                self._handle_destroy(hwnd)
            elif event == win32.EVENT_SYSTEM_MOVESIZESTART:
                self._grab_start[hwnd] = self._size_of(hwnd)
            elif event == win32.EVENT_SYSTEM_MOVESIZEEND:
                self._handle_movesize_end(hwnd)
        except Exception:
            log.exception("Error handling event %#06x for hwnd %#010x", event, hwnd)

    def _handle_create(self, hwnd: int) -> None:
        window = Window(hwnd)
        if window.is_child:
            return
        # A reused HWND is a new window instance
        self._sequences[hwnd] = next(self._next_sequence)
        self._shown.discard(hwnd)
        self._emit(Signal.WINDOW_CREATED, None, window)

    def _handle_show(self, hwnd: int) -> None:
        if hwnd in self._shown:
            return
        self._shown.add(hwnd)
        self._emit(Signal.FIRST_FRAME, hwnd, Window(hwnd))

    def _handle_location(self, hwnd: int) -> None:
        if hwnd not in self._last_size:
            return
        size = self._size_of(hwnd)
        if size == self._last_size[hwnd]:
            return
        self._last_size[hwnd] = size
        self._emit(Signal.SIZE_CHANGED, hwnd, Window(hwnd))

    def _handle_destroy(self, hwnd: int) -> None:
        self._emit(Signal.UNMANAGING, hwnd, Window(hwnd))
        self._sequences.pop(hwnd, None)
        self._shown.discard(hwnd)
        self._last_size.pop(hwnd, None)
        self._grab_start.pop(hwnd, None)

    def _handle_movesize_end(self, hwnd: int) -> None:
        start = self._grab_start.pop(hwnd, None)
        if start is None:
            op = GrabOp.OTHER
        elif start != self._size_of(hwnd):
            op = GrabOp.RESIZING
        else:
            op = GrabOp.MOVING
        self._emit(Signal.GRAB_OP_END, None, Window(hwnd), op)

    @staticmethod
    def _size_of(hwnd: int) -> tuple[int, int]:
        left, top, right, bottom = win32.get_window_rect(hwnd)
        return (right - left, bottom - top)

    # ------------------------------------------------------------------
    # Enumeration and queries
    # ------------------------------------------------------------------
    def windows(self) -> list[Window]:
        results: list[Window] = []

        def _callback(hwnd: int, _: int) -> bool:
            window = Window(hwnd)
            # Skip hidden helpers and windows cloaked on other desktops
            if window.is_visible and not window.is_cloaked:
                results.append(window)
            return True  # continue enumeration

        win32.enum_windows(_callback)
        return results

    def exists(self, window: Window) -> bool:
        return window.is_valid

    def has_surface(self, window: Window) -> bool:
        return window.is_valid and window.is_visible and not window.is_cloaked

    def window_type(self, window: Window) -> WindowType:
        return wfilter.classify(window)

    def is_skip_taskbar(self, window: Window) -> bool:
        return wfilter.is_skip_taskbar(window)

    def class_name(self, window: Window) -> str:
        return window.class_name

    def app_id(self, window: Window) -> str:
        return window.app_id

    def is_maximized(self, window: Window) -> bool:
        return window.is_maximized

    def is_fullscreen(self, window: Window) -> bool:
        monitor = self._monitor_at(self.monitor_index(window))
        if monitor is None:
            return False
        return window.is_native_fullscreen(monitor.full_rect)

    def is_minimized(self, window: Window) -> bool:
        return window.is_minimized

    def frame_rect(self, window: Window) -> Rect:
        return window.rect

    def monitor_index(self, window: Window) -> int:
        # Monitors can be plugged or unplugged at any time
        self._monitors = get_monitors()
        return monitor_index_for_window(window.hwnd, self._monitors)

    def work_area(self, window: Window, monitor: int) -> Optional[Rect]:
        found = self._monitor_at(monitor)
        return found.work_rect if found is not None else None

    def stable_sequence(self, window: Window) -> int:
        hwnd = window.hwnd
        if hwnd not in self._sequences:
            self._sequences[hwnd] = next(self._next_sequence)
        return self._sequences[hwnd]

    def move_resize_frame(self, window: Window, rect: Rect) -> None:
        if not window.move_resize(rect):
            raise OSError(f"SetWindowPos failed for {window!r}")

    def _monitor_at(self, index: int) -> Optional[Monitor]:
        if 0 <= index < len(self._monitors):
            return self._monitors[index]
        return None
