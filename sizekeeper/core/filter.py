"""
sizekeeper.core.filter - Win32 window classification rules.

Maps raw Win32 styles onto the engine's coarse WindowType and the
skip-taskbar flag.  Only NORMAL windows that appear on the taskbar are
ever considered for size tracking, so the rules here decide which
windows the engine will ever see as candidates.
"""

from __future__ import annotations

import logging

from sizekeeper.core.system import WindowType
from sizekeeper.core.window import Window

log = logging.getLogger(__name__)

# ============================================================================
# Known system class names that are never application windows
# ============================================================================
IGNORED_CLASSES: frozenset[str] = frozenset({
    # Windows shell / explorer
    "Shell_TrayWnd",            # Taskbar
    "Shell_SecondaryTrayWnd",   # Secondary monitor taskbar
    "Progman",                  # Desktop Program Manager
    "WorkerW",                  # Desktop wallpaper worker
    "DV2ControlHost",           # Start menu
    "Windows.UI.Core.CoreWindow",  # Some UWP overlays

    # System UI
    "NotifyIconOverflowWindow", # System tray overflow
    "TopLevelWindowForOverflowXamlIsland",  # Tray overflow (Win11)
    "Shell_InputSwitchTopLevelWindow",  # Language switcher
    "MultitaskingViewFrame",    # Alt-Tab / Task View
    "TaskListThumbnailWnd",     # Taskbar thumbnails
    "ForegroundStaging",        # Focus transition overlay

    # Other
    "tooltips_class32",         # Tooltips
    "IME",                      # Input method editor
    "MSCTFIME UI",              # Text input framework
    "#32768",                   # Popup menus
    "#32769",                   # Desktop
})

DIALOG_CLASS = "#32770"


def classify(window: Window) -> WindowType:
    """
    Return the WindowType of *window*.

    The rules, in order:
        1. Child windows and known shell classes are OTHER.
        2. The stock dialog class, owned windows and modal frames are DIALOG.
        3. Tool windows without WS_EX_APPWINDOW are UTILITY.
        4. Caption-less popups and WS_EX_NOACTIVATE overlays are POPUP.
        5. Everything else is NORMAL.
    """
    if window.is_child:
        return WindowType.OTHER

    cls = window.class_name
    if cls in IGNORED_CLASSES:
        return WindowType.OTHER

    if cls == DIALOG_CLASS or window.owner or window.is_dialog_frame:
        return WindowType.DIALOG

    if window.is_tool_window and not window.is_app_window:
        return WindowType.UTILITY

    if (window.is_popup and not window.has_caption) or window.is_no_activate:
        return WindowType.POPUP

    return WindowType.NORMAL


def is_skip_taskbar(window: Window) -> bool:
    """
    True if the window has no taskbar button.

    Tool windows are hidden from the taskbar unless they opt in with
    WS_EX_APPWINDOW.
    """
    return window.is_tool_window and not window.is_app_window
