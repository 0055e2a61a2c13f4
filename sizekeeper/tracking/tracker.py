"""
sizekeeper.tracking.tracker - Host-facing entry point.

SizeTracker wires a PersistentStore and a WindowRegistry to one
WindowSystem and exposes the two lifecycle calls a host needs:

    tracker = SizeTracker(system)
    tracker.enable()      # load state, adopt windows, start listening
    ...
    tracker.disable()     # release everything, flush state to disk
"""

from __future__ import annotations

import logging
from typing import Optional

from sizekeeper.config.settings import TrackerConfig
from sizekeeper.core.system import WindowSystem
from sizekeeper.tracking.registry import WindowRegistry
from sizekeeper.tracking.store import PersistentStore

log = logging.getLogger(__name__)


class SizeTracker:
    """Owns the store and the registry for one activation at a time."""

    def __init__(
        self,
        system: WindowSystem,
        config: Optional[TrackerConfig] = None,
    ) -> None:
        self._system = system
        self._config = config or TrackerConfig()
        self._store: Optional[PersistentStore] = None
        self._registry: Optional[WindowRegistry] = None

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._registry is not None

    @property
    def store(self) -> Optional[PersistentStore]:
        return self._store

    @property
    def registry(self) -> Optional[WindowRegistry]:
        return self._registry

    def enable(self) -> None:
        if self._registry is not None:
            log.warning("SizeTracker already enabled, ignoring")
            return

        self._store = PersistentStore(self._system, self._config)
        self._store.load()

        self._registry = WindowRegistry(self._system, self._store, self._config)
        self._registry.enable()
        log.info("SizeTracker enabled (state file: %s)", self._store.path)

    def disable(self) -> None:
        if self._registry is None:
            return

        self._registry.disable()
        self._registry = None

        if self._store is not None:
            self._store.close()
            self._store = None
        log.info("SizeTracker disabled")
