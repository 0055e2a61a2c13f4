"""
sizekeeper.core.monitor - Monitor enumeration and work areas.

Uses win32api/win32con from pywin32 to obtain the work area of each
monitor (the monitor rectangle minus the taskbar and other appbars),
and to find which monitor a window currently occupies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import win32api
import win32con

from sizekeeper.core.rect import Rect

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Monitor:
    """
    A physical monitor attached to the system.

    Attributes:
        handle:     HMONITOR value.
        name:       Device name (e.g. r'\\\\.\\DISPLAY1').
        full_rect:  Whole monitor area.
        work_rect:  Work area (without taskbar and appbars).
        is_primary: True for the primary monitor.
    """

    handle: int
    name: str
    full_rect: Rect
    work_rect: Rect
    is_primary: bool = False


def get_monitors() -> list[Monitor]:
    """
    Enumerate every monitor attached to the system.

    Returns:
        Monitors ordered primary first, then by device name.  The index
        in this list is the monitor index reported to the engine.
    """
    monitors: list[Monitor] = []

    for hmonitor, _hdc, _rect in win32api.EnumDisplayMonitors(None, None):
        try:
            info = win32api.GetMonitorInfo(hmonitor)
        except Exception:
            log.warning("Could not read monitor info for %s", hmonitor)
            continue

        # info['Monitor'] = (left, top, right, bottom) - whole monitor
        # info['Work']    = (left, top, right, bottom) - work area
        monitors.append(
            Monitor(
                handle=int(hmonitor),
                name=info["Device"],
                full_rect=Rect.from_ltrb(*info["Monitor"]),
                work_rect=Rect.from_ltrb(*info["Work"]),
                is_primary=bool(info["Flags"] & win32con.MONITORINFOF_PRIMARY),
            )
        )

    monitors.sort(key=lambda m: (not m.is_primary, m.name))
    return monitors


def monitor_index_for_window(hwnd: int, monitors: list[Monitor]) -> int:
    """
    Index into *monitors* of the monitor the window mostly occupies.

    Falls back to 0 (the primary monitor) when the lookup fails.
    """
    try:
        hmonitor = int(
            win32api.MonitorFromWindow(hwnd, win32con.MONITOR_DEFAULTTONEAREST)
        )
    except Exception:
        log.debug("MonitorFromWindow failed for %#010x", hwnd)
        return 0

    for index, monitor in enumerate(monitors):
        if monitor.handle == hmonitor:
            return index
    return 0
