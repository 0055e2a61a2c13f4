"""
sizekeeper.core.window - Live handle to a Win32 top-level window.

Properties read from the OS on demand so the data is always fresh.  A
Window is the opaque window handle the Win32 adapter hands to the
tracking engine.
"""

from __future__ import annotations

import logging

from sizekeeper.core import win32
from sizekeeper.core.rect import Rect

log = logging.getLogger(__name__)

# Folder windows of the shell file manager
EXPLORER_CLASSES: frozenset[str] = frozenset({"CabinetWClass", "ExploreWClass"})


class Window:
    """
    Wraps an HWND and exposes every queryable property as a live read
    against the Win32 API.

    Equality and hashing are based solely on the HWND value, so a Window can
    be safely used in sets and as dict keys.
    """

    __slots__ = ("_hwnd",)

    def __init__(self, hwnd: int) -> None:
        self._hwnd = hwnd

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def hwnd(self) -> int:
        return self._hwnd

    @property
    def is_valid(self) -> bool:
        """True if the underlying OS window still exists."""
        return win32.is_window_valid(self._hwnd)

    # ------------------------------------------------------------------
    # Descriptors (read live from OS)
    # ------------------------------------------------------------------
    @property
    def title(self) -> str:
        return win32.get_window_text(self._hwnd)

    @property
    def class_name(self) -> str:
        return win32.get_class_name(self._hwnd)

    @property
    def pid(self) -> int:
        return win32.get_window_pid(self._hwnd)

    @property
    def process_name(self) -> str:
        return win32.get_process_name(self.pid)

    @property
    def app_id(self) -> str:
        """
        Canonical application identity.

        The owning executable name (``Code.exe``).  Shell folder windows
        get a location-qualified identity (``location:Downloads``) once
        their title shows the folder being displayed.
        """
        proc = self.process_name
        if not proc:
            return ""
        if self.class_name in EXPLORER_CLASSES:
            title = self.title
            if title:
                return f"location:{title}"
        return proc

    @property
    def owner(self) -> int:
        return win32.get_owner(self._hwnd)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def rect(self) -> Rect:
        return Rect.from_ltrb(*win32.get_window_rect(self._hwnd))

    # ------------------------------------------------------------------
    # Style flags
    # ------------------------------------------------------------------
    @property
    def style(self) -> int:
        return win32.get_window_style(self._hwnd)

    @property
    def ex_style(self) -> int:
        return win32.get_window_ex_style(self._hwnd)

    @property
    def is_visible(self) -> bool:
        return win32.is_window_visible(self._hwnd)

    @property
    def is_cloaked(self) -> bool:
        return win32.is_window_cloaked(self._hwnd)

    @property
    def is_minimized(self) -> bool:
        return win32.is_window_iconic(self._hwnd)

    @property
    def is_maximized(self) -> bool:
        return win32.is_window_zoomed(self._hwnd)

    @property
    def is_child(self) -> bool:
        return bool(self.style & win32.WS_CHILD)

    @property
    def is_popup(self) -> bool:
        return bool(self.style & win32.WS_POPUP)

    @property
    def is_tool_window(self) -> bool:
        return bool(self.ex_style & win32.WS_EX_TOOLWINDOW)

    @property
    def is_app_window(self) -> bool:
        return bool(self.ex_style & win32.WS_EX_APPWINDOW)

    @property
    def is_no_activate(self) -> bool:
        return bool(self.ex_style & win32.WS_EX_NOACTIVATE)

    @property
    def is_dialog_frame(self) -> bool:
        return bool(self.ex_style & win32.WS_EX_DLGMODALFRAME)

    @property
    def has_caption(self) -> bool:
        return bool(self.style & win32.WS_CAPTION)

    # ------------------------------------------------------------------
    # Fullscreen detection
    # ------------------------------------------------------------------
    def is_native_fullscreen(self, monitor_rect: Rect) -> bool:
        """
        Detect if the window is in a native fullscreen state (e.g. a game
        or video player).  A window is considered native fullscreen if it
        has no caption/thick frame and covers the entire monitor rectangle.

        Args:
            monitor_rect: Full monitor rectangle (not the work area).
        """
        if not self.is_valid:
            return False

        # Must not have decorations
        style = self.style
        if style & win32.WS_CAPTION or style & win32.WS_THICKFRAME:
            return False

        # Must cover the monitor (with a small tolerance of 5px)
        r = self.rect
        tolerance = 5
        return (
            r.left <= monitor_rect.left + tolerance
            and r.top <= monitor_rect.top + tolerance
            and r.right >= monitor_rect.right - tolerance
            and r.bottom >= monitor_rect.bottom - tolerance
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def move_resize(self, rect: Rect) -> bool:
        """Reposition and resize the window in a single SetWindowPos."""
        return win32.set_window_pos(self._hwnd, rect.x, rect.y, rect.w, rect.h)

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if isinstance(other, Window):
            return self._hwnd == other._hwnd
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._hwnd)

    def __repr__(self) -> str:
        title = self.title if self.is_valid else "<destroyed>"
        return f"Window(hwnd={self._hwnd:#010x}, title={title!r})"

    def __str__(self) -> str:
        if not self.is_valid:
            return f"[{self._hwnd:#010x}] <destroyed>"
        return (
            f"[{self._hwnd:#010x}] {self.title!r} | "
            f"PID:{self.pid} ({self.process_name}) | "
            f"{self.rect}"
        )
