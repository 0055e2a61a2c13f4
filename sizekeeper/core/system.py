"""
sizekeeper.core.system - Abstract window-system capability set.

The tracking engine never talks to an OS API directly.  Everything it
needs from the window system goes through a WindowSystem:

    - subscribe / unsubscribe : window-system signals (global or per window)
    - schedule / cancel       : one-shot timers on the event loop
    - run_in_background       : blocking work whose completion resumes
                                on the event loop thread
    - queries                 : window type, identity, state, geometry

There are two implementations: the Win32 adapter used in production
(sizekeeper.core.win32_system) and a deterministic fake driven by a
virtual clock (sizekeeper.core.fake).

Window handles are opaque to the engine.  They only need to be hashable
so they can key the per-window tables.
"""

from __future__ import annotations

import abc
import enum
from collections.abc import Callable, Hashable
from typing import Any, Optional

from sizekeeper.core.rect import Rect

# Opaque handles returned by subscribe() and schedule()
SignalHandle = int
TimerHandle = int

TimerCallback = Callable[[], None]
SignalCallback = Callable[..., None]

# Completion callback for run_in_background: receives the exception that
# the work raised, or None on success.
DoneCallback = Callable[[Optional[BaseException]], None]


# ============================================================================
# Signals
# ============================================================================
class Signal(enum.Enum):
    """Notifications the engine can subscribe to."""

    # Global scope: callback(window)
    WINDOW_CREATED = "window-created"

    # Global scope: callback(window, grab_op)
    GRAB_OP_END = "grab-op-end"

    # Per-window scope: callback(window)
    SIZE_CHANGED = "size-changed"
    UNMANAGING = "unmanaging"
    FIRST_FRAME = "first-frame"

    @property
    def is_global(self) -> bool:
        return self in (Signal.WINDOW_CREATED, Signal.GRAB_OP_END)


class WindowType(enum.Enum):
    """Coarse window classification.  Only NORMAL windows are tracked."""

    NORMAL = "normal"
    DIALOG = "dialog"
    UTILITY = "utility"
    POPUP = "popup"
    OTHER = "other"


class GrabOp(enum.Enum):
    """Kind of interactive grab operation that just ended."""

    MOVING = "moving"
    RESIZING = "resizing"
    OTHER = "other"

    @property
    def is_resize(self) -> bool:
        return self is GrabOp.RESIZING


# ============================================================================
# WindowSystem
# ============================================================================
class WindowSystem(abc.ABC):
    """Capability interface consumed by the tracking engine."""

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def subscribe(
        self,
        signal: Signal,
        callback: SignalCallback,
        window: Optional[Hashable] = None,
    ) -> SignalHandle:
        """
        Connect *callback* to *signal*.

        Global signals take no window; per-window signals require one.
        Returns a handle for unsubscribe().
        """

    @abc.abstractmethod
    def unsubscribe(self, handle: SignalHandle) -> None:
        """Disconnect a subscription.  Unknown or stale handles are a no-op."""

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def schedule(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        """Invoke *callback* once after *delay_ms* milliseconds."""

    @abc.abstractmethod
    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a pending timer.  Already-fired handles are a no-op."""

    @abc.abstractmethod
    def run_in_background(
        self, work: Callable[[], Any], on_done: DoneCallback,
    ) -> None:
        """
        Run blocking *work* off the event loop; call *on_done* on the
        event loop thread when it finishes.
        """

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def windows(self) -> list[Hashable]:
        """Top-level windows currently shown to the user (hidden ones excluded)."""

    # ------------------------------------------------------------------
    # Per-window queries
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def exists(self, window: Hashable) -> bool:
        """True while the underlying window has not been destroyed."""

    @abc.abstractmethod
    def has_surface(self, window: Hashable) -> bool:
        """True if the window is shown and can be resized without artifacts."""

    @abc.abstractmethod
    def window_type(self, window: Hashable) -> WindowType: ...

    @abc.abstractmethod
    def is_skip_taskbar(self, window: Hashable) -> bool: ...

    @abc.abstractmethod
    def class_name(self, window: Hashable) -> str:
        """Legacy window class name, or "" if unavailable."""

    @abc.abstractmethod
    def app_id(self, window: Hashable) -> str:
        """Canonical application identity, or "" if not yet associated."""

    @abc.abstractmethod
    def is_maximized(self, window: Hashable) -> bool: ...

    @abc.abstractmethod
    def is_fullscreen(self, window: Hashable) -> bool: ...

    @abc.abstractmethod
    def is_minimized(self, window: Hashable) -> bool: ...

    @abc.abstractmethod
    def frame_rect(self, window: Hashable) -> Rect: ...

    @abc.abstractmethod
    def monitor_index(self, window: Hashable) -> int: ...

    @abc.abstractmethod
    def work_area(self, window: Hashable, monitor: int) -> Optional[Rect]:
        """Work area of *monitor* as seen from the window's workspace."""

    @abc.abstractmethod
    def stable_sequence(self, window: Hashable) -> int:
        """Number that distinguishes this window instance from any other."""

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def move_resize_frame(self, window: Hashable, rect: Rect) -> None:
        """Move and resize the window frame as one operation."""
