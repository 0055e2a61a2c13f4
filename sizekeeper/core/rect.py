"""
sizekeeper.core.rect - Immutable Rect geometry.

A Rect describes a screen area: a monitor work area, the current frame of
a window, or the target frame computed when a saved size is restored.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Rect:
    """
    Immutable rectangle defined by position (x, y) and size (w, h).

    All coordinates are in pixels.  The origin (0, 0) is the top-left
    corner of the primary monitor.
    """

    x: int
    y: int
    w: int
    h: int

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------
    @property
    def left(self) -> int:
        return self.x

    @property
    def top(self) -> int:
        return self.y

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    @property
    def is_empty(self) -> bool:
        """True if the rect has no measurable extent yet."""
        return self.w <= 0 or self.h <= 0

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def centered(self, width: int, height: int) -> Rect:
        """
        Return a rect of (width, height) clamped to this rect and
        centered inside it.

        Args:
            width:  Desired width.
            height: Desired height.

        Returns:
            New Rect that always fits inside self.
        """
        w = min(width, self.w)
        h = min(height, self.h)
        return Rect(
            self.x + (self.w - w) // 2,
            self.y + (self.h - h) // 2,
            w,
            h,
        )

    def matches(self, other: Rect, tolerance: int = 0) -> bool:
        """True if position and size are within *tolerance* pixels."""
        return (
            abs(self.x - other.x) <= tolerance
            and abs(self.y - other.y) <= tolerance
            and abs(self.w - other.w) <= tolerance
            and abs(self.h - other.h) <= tolerance
        )

    # ------------------------------------------------------------------
    # Win32 (left, top, right, bottom) conversion
    # ------------------------------------------------------------------
    def to_ltrb(self) -> tuple[int, int, int, int]:
        return (self.left, self.top, self.right, self.bottom)

    @classmethod
    def from_ltrb(cls, left: int, top: int, right: int, bottom: int) -> Rect:
        """Build a Rect from (left, top, right, bottom) coordinates."""
        return cls(left, top, right - left, bottom - top)

    def __str__(self) -> str:
        return f"Rect({self.w}x{self.h}+{self.x}+{self.y})"
