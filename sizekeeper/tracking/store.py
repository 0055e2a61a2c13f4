"""
sizekeeper.tracking.store - Persistent WindowID -> WindowRecord mapping.

The whole mapping lives in memory and is mirrored to a single JSON file:

    {
      "code": {"width": 1280, "height": 900, "lastUpdated": 1760000000000},
      "location:downloads": {"width": 900, "height": 640, "lastUpdated": ...}
    }

Reads happen once, synchronously, at startup so stored sizes are
available before the first window appears.  Writes are debounced
(bursts of set() collapse into one write) and run in the background;
shutdown uses a synchronous flush because no later chance exists.

Every write is an atomic replace (temp file in the same directory, fsync,
os.replace) so a reader never observes a partial file.  I/O failures are
logged and never propagated: a failed load yields an empty mapping and a
failed write leaves the store dirty for the next flush to retry.
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from sizekeeper.config.settings import TrackerConfig
from sizekeeper.core.system import TimerHandle, WindowSystem

log = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


# ============================================================================
# WindowRecord
# ============================================================================
@dataclass(frozen=True, slots=True)
class WindowRecord:
    """Last normal (non-maximized) size of a window identity."""

    width: int
    height: int
    last_updated: int

    def to_json(self) -> dict[str, int]:
        return {
            "width": self.width,
            "height": self.height,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_json(cls, raw: Any) -> Optional[WindowRecord]:
        """Parse one stored entry, or None if it is not a valid record."""
        if not isinstance(raw, dict):
            return None
        width = raw.get("width")
        height = raw.get("height")
        updated = raw.get("lastUpdated", 0)
        for value in (width, height, updated):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return None
            # json accepts NaN and Infinity
            if not math.isfinite(value):
                return None
        return cls(int(width), int(height), int(updated))


# ============================================================================
# PersistentStore
# ============================================================================
class PersistentStore:
    """
    In-memory mirror of the state file plus a dirty flag and a pending
    flush timer.

    Usage:
        store = PersistentStore(system, config)
        store.load()
        store.set("code", 1280, 900)     # schedules a debounced flush
        ...
        store.close()                    # synchronous final flush
    """

    def __init__(
        self,
        system: WindowSystem,
        config: TrackerConfig,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._system = system
        self._config = config
        self._path = Path(config.data_file)
        self._clock = clock

        self._data: dict[str, WindowRecord] = {}
        self._dirty = False
        self._flush_timer: Optional[TimerHandle] = None

        # Bumped on every mutation; a background write only clears the
        # dirty flag if nothing changed since its snapshot was taken.
        self._generation = 0
        self._writing = False

        # Serializes file replacement between the background writer and
        # flush_now(); a write never replaces a newer generation on disk.
        self._io_lock = threading.Lock()
        self._written_generation = -1

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def flush_pending(self) -> bool:
        return self._flush_timer is not None

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, window_id: object) -> bool:
        return window_id in self._data

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------
    def load(self) -> dict[str, WindowRecord]:
        """
        Synchronously read the state file.

        Returns:
            The loaded mapping (also kept as the in-memory state).  Missing,
            unreadable or malformed files yield an empty mapping.
        """
        self._data = {}
        if not self._path.exists():
            log.info("No state file at %s, starting empty", self._path)
            return dict(self._data)

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log.error("Invalid JSON in state file %s: %s", self._path, e)
            return dict(self._data)
        except (OSError, UnicodeDecodeError) as e:
            log.error("Failed to read state file %s: %s", self._path, e)
            return dict(self._data)

        if not isinstance(raw, dict):
            log.warning(
                "State file %s holds %s instead of an object, resetting",
                self._path, type(raw).__name__,
            )
            return dict(self._data)

        for window_id, entry in raw.items():
            record = WindowRecord.from_json(entry)
            if record is None or not self._valid_size(record.width, record.height):
                log.warning("Dropping malformed entry %r: %r", window_id, entry)
                continue
            self._data[str(window_id)] = record

        log.info("STATE LOADED: %d entries from %s", len(self._data), self._path)
        return dict(self._data)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def get(self, window_id: str) -> Optional[WindowRecord]:
        return self._data.get(window_id)

    def set(self, window_id: str, width: int, height: int) -> bool:
        """
        Store a new size for *window_id*.

        Sizes below the floor and unchanged sizes are ignored, so duplicate
        events never cause redundant disk writes.

        Returns:
            True if the record changed and a flush was scheduled.
        """
        if not self._valid_size(width, height):
            log.debug("Ignoring %r: %dx%d below minimum", window_id, width, height)
            return False

        existing = self._data.get(window_id)
        if existing is not None and existing.width == width and existing.height == height:
            return False

        self._data[window_id] = WindowRecord(width, height, self._clock())
        self._generation += 1
        self._dirty = True
        log.info("SAVED %r -> %dx%d", window_id, width, height)
        self.schedule_flush()
        return True

    def _valid_size(self, width: int, height: int) -> bool:
        return width >= self._config.min_size and height >= self._config.min_size

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------
    def schedule_flush(self) -> None:
        """(Re)start the debounce window; the flush runs when it expires."""
        self._cancel_flush_timer()
        self._flush_timer = self._system.schedule(
            self._config.save_debounce_ms, self._on_flush_timer,
        )

    def _on_flush_timer(self) -> None:
        self._flush_timer = None
        self.flush_async()

    def _cancel_flush_timer(self) -> None:
        if self._flush_timer is not None:
            self._system.cancel(self._flush_timer)
            self._flush_timer = None

    def flush_async(self) -> None:
        """
        Write the current mapping in the background.

        The snapshot is serialized here, on the event loop thread; only the
        file I/O runs in the background.  The completion clears the dirty
        flag unless set() ran in the meantime.
        """
        if self._writing:
            # The running write will be followed by another one
            self.schedule_flush()
            return

        payload = self._serialize()
        generation = self._generation
        self._writing = True

        def _done(error: Optional[BaseException]) -> None:
            self._writing = False
            if error is not None:
                log.error("Failed to write state file %s: %s", self._path, error)
                return
            if self._generation == generation:
                self._dirty = False
            log.info("STATE WRITTEN: %s", self._path)

        self._system.run_in_background(lambda: self._write(payload, generation), _done)

    def flush_now(self) -> bool:
        """
        Cancel any pending flush and, if dirty, write synchronously.

        Returns:
            True if nothing is left unwritten.
        """
        self._cancel_flush_timer()
        if not self._dirty:
            return True
        try:
            self._write(self._serialize(), self._generation)
        except Exception as e:
            log.error("Failed to write state file %s: %s", self._path, e)
            return False
        self._dirty = False
        log.info("STATE WRITTEN (sync): %s", self._path)
        return True

    def close(self) -> None:
        """Final flush at shutdown."""
        self.flush_now()

    def _serialize(self) -> str:
        return json.dumps(
            {key: record.to_json() for key, record in self._data.items()},
            indent=2,
        )

    def _write(self, payload: str, generation: int) -> None:
        """Atomically replace the state file with *payload*."""
        with self._io_lock:
            if generation < self._written_generation:
                return
            self._replace(payload)
            self._written_generation = generation

    def _replace(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=str(self._path.parent),
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())

            os.replace(tmp_path, self._path)
            tmp_path = None
        finally:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except FileNotFoundError:
                    pass
