"""
sizekeeper.config.settings - Tracker configuration.

Every timing constant, the size floor, the identity predicates, and the
location of the state file live here.  TrackerConfig is frozen; tests
build variants with dataclasses.replace().

Timing (milliseconds):
    SAVE_DEBOUNCE_MS            Quiet period before the store hits disk
    SIZE_CHANGE_DEBOUNCE_MS     Quiet period before a live resize is saved
    WINDOW_READY_TIMEOUT_MS     Identification poll interval
    WINDOW_READY_MAX_ATTEMPTS   Identification poll budget (~5 s)
    RESTORE_FALLBACK_DELAY_MS   Fallback if first-frame never fires
    RESTORE_RETRY_DELAY_MS      Spacing of fallback restore attempts
    RESTORE_MAX_ATTEMPTS        Fallback restore budget
    SUCCESSOR_WAIT_MS           Poll interval for a more specific identity
    SUCCESSOR_MAX_ATTEMPTS      Poll budget for a more specific identity
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

SAVE_DEBOUNCE_MS = 1000
SIZE_CHANGE_DEBOUNCE_MS = 500
WINDOW_READY_TIMEOUT_MS = 100
WINDOW_READY_MAX_ATTEMPTS = 50
RESTORE_FALLBACK_DELAY_MS = 50
RESTORE_RETRY_DELAY_MS = 50
RESTORE_MAX_ATTEMPTS = 5
SUCCESSOR_WAIT_MS = 100
SUCCESSOR_MAX_ATTEMPTS = 5

MIN_WINDOW_SIZE = 50
RESTORE_TOLERANCE_PX = 5

APP_NAME = "SizeKeeper"
DATA_FILE_NAME = "window-sizes.json"
DATA_FILE_ENV = "SIZEKEEPER_DATA_FILE"

# Identity suffixes stripped during normalization
IDENTITY_SUFFIXES: tuple[str, ...] = (".exe", ".desktop")

# Canonical identities that mean "not associated with an app yet".
# ApplicationFrameHost owns every UWP frame until the hosted app is known.
PLACEHOLDER_IDENTITIES: frozenset[str] = frozenset({
    "applicationframehost.exe",
})
PLACEHOLDER_PREFIXES: tuple[str, ...] = ("window:",)

# Identities that are replaced by a location-qualified one shortly after
# the window is created (file manager windows).
PROVISIONAL_IDENTITIES: frozenset[str] = frozenset({
    "explorer",
    "org.gnome.nautilus",
})
SUCCESSOR_PREFIXES: tuple[str, ...] = (
    "location:",
    "mountable-volume:",
    "network:",
)


def default_data_file() -> Path:
    """
    Resolve the per-install state file.

    Order: $SIZEKEEPER_DATA_FILE, %APPDATA%, $XDG_DATA_HOME,
    ~/.local/share.
    """
    override = os.environ.get(DATA_FILE_ENV)
    if override:
        return Path(override)

    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / APP_NAME / DATA_FILE_NAME

    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / APP_NAME.lower() / DATA_FILE_NAME


@dataclass(frozen=True, slots=True)
class TrackerConfig:
    """Tunables for the store, resolver, debouncer and restoration engine."""

    data_file: Path = field(default_factory=default_data_file)

    min_size: int = MIN_WINDOW_SIZE
    tolerance: int = RESTORE_TOLERANCE_PX

    save_debounce_ms: int = SAVE_DEBOUNCE_MS
    size_change_debounce_ms: int = SIZE_CHANGE_DEBOUNCE_MS
    window_ready_timeout_ms: int = WINDOW_READY_TIMEOUT_MS
    window_ready_max_attempts: int = WINDOW_READY_MAX_ATTEMPTS
    restore_fallback_delay_ms: int = RESTORE_FALLBACK_DELAY_MS
    restore_retry_delay_ms: int = RESTORE_RETRY_DELAY_MS
    restore_max_attempts: int = RESTORE_MAX_ATTEMPTS
    successor_wait_ms: int = SUCCESSOR_WAIT_MS
    successor_max_attempts: int = SUCCESSOR_MAX_ATTEMPTS

    identity_suffixes: tuple[str, ...] = IDENTITY_SUFFIXES
    placeholder_identities: frozenset[str] = PLACEHOLDER_IDENTITIES
    placeholder_prefixes: tuple[str, ...] = PLACEHOLDER_PREFIXES
    provisional_identities: frozenset[str] = PROVISIONAL_IDENTITIES
    successor_prefixes: tuple[str, ...] = SUCCESSOR_PREFIXES

    # ------------------------------------------------------------------
    # Identity predicates
    # ------------------------------------------------------------------
    def is_placeholder(self, app_id: str) -> bool:
        """True if a raw app identity means "no app associated yet"."""
        lowered = app_id.lower()
        return (
            lowered in self.placeholder_identities
            or lowered.startswith(self.placeholder_prefixes)
        )

    def awaits_successor(self, window_id: str) -> bool:
        """True if *window_id* is generic and may be replaced shortly."""
        return window_id in self.provisional_identities

    def is_successor(self, window_id: Optional[str]) -> bool:
        """True if *window_id* is a location-qualified identity."""
        return bool(window_id) and window_id.startswith(self.successor_prefixes)
