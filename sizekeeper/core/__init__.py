"""
sizekeeper.core - Window-system layer.

This package contains:
    - rect         : Immutable Rect geometry
    - system       : WindowSystem capability interface, Signal/WindowType/GrabOp
    - fake         : Deterministic FakeWindowSystem (virtual clock)
    - win32        : Low-level Win32 API bindings via ctypes (Windows only)
    - window       : Live handle to a Win32 top-level window (Windows only)
    - filter       : Win32 window classification rules (Windows only)
    - monitor      : Monitor work areas via pywin32 (Windows only)
    - win32_system : Production Win32WindowSystem (Windows only)

Only the portable modules are re-exported here; the Win32 modules are
imported explicitly by the entry point.
"""

from sizekeeper.core.rect import Rect
from sizekeeper.core.system import GrabOp, Signal, WindowSystem, WindowType
from sizekeeper.core.fake import FakeWindow, FakeWindowSystem

__all__ = [
    "Rect",
    "GrabOp", "Signal", "WindowSystem", "WindowType",
    "FakeWindow", "FakeWindowSystem",
]
