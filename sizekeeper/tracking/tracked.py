"""
sizekeeper.tracking.tracked - Per-window tracking state.

A TrackedWindow is the registry's arena entry for one window.  It holds
every handle the engine acquired on behalf of that window so teardown can
release all of them in one place.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from sizekeeper.core.system import SignalHandle, TimerHandle

if TYPE_CHECKING:
    from sizekeeper.tracking.identity import Poll
    from sizekeeper.tracking.restore import Restoration


@dataclass(eq=False)
class TrackedWindow:
    """Everything the engine holds for one window."""

    window: Hashable
    window_id: Optional[str] = None

    # SIZE_CHANGED / UNMANAGING subscriptions (empty until tracked)
    signals: list[SignalHandle] = field(default_factory=list)

    identify_poll: Optional[Poll] = None
    successor_poll: Optional[Poll] = None
    restoration: Optional[Restoration] = None
    debounce_timer: Optional[TimerHandle] = None

    @property
    def is_tracked(self) -> bool:
        return bool(self.signals)

    @property
    def is_idle(self) -> bool:
        """True once nothing is pending and no signal is connected."""
        return (
            not self.signals
            and self.identify_poll is None
            and self.successor_poll is None
            and self.restoration is None
            and self.debounce_timer is None
        )
