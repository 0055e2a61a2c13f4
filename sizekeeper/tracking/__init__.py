"""
sizekeeper.tracking - Size persistence and restoration engine.

This package contains:
    - store    : PersistentStore, the WindowID -> WindowRecord JSON file
    - identity : WindowID resolution and bounded identification polls
    - tracked  : TrackedWindow, the per-window arena entry
    - debounce : SizeChangeDebouncer for live resize storms
    - restore  : RestorationEngine and its per-window state machine
    - registry : WindowRegistry, the window lifecycle controller
    - tracker  : SizeTracker, the enable()/disable() host entry point
"""

from sizekeeper.tracking.store import PersistentStore, WindowRecord
from sizekeeper.tracking.identity import IdentificationResolver, Poll, WindowID
from sizekeeper.tracking.tracked import TrackedWindow
from sizekeeper.tracking.debounce import SizeChangeDebouncer
from sizekeeper.tracking.restore import (
    RestorationEngine, Restoration, RestorePhase, Strategy,
)
from sizekeeper.tracking.registry import WindowRegistry
from sizekeeper.tracking.tracker import SizeTracker

__all__ = [
    "PersistentStore", "WindowRecord",
    "IdentificationResolver", "Poll", "WindowID",
    "TrackedWindow", "SizeChangeDebouncer",
    "RestorationEngine", "Restoration", "RestorePhase", "Strategy",
    "WindowRegistry", "SizeTracker",
]
