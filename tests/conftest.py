"""Shared pytest configuration and fixtures for the SizeKeeper test suite."""

import json
from pathlib import Path

import pytest

from sizekeeper.config import TrackerConfig
from sizekeeper.core import FakeWindowSystem
from sizekeeper.tracking import PersistentStore, WindowRegistry


class StepClock:
    """Epoch-ms clock that advances by one on every read."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def system() -> FakeWindowSystem:
    """Window system on a virtual clock with one 1920x1080 work area."""
    return FakeWindowSystem()


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """State file path whose parent directory does not exist yet."""
    return tmp_path / "state" / "window-sizes.json"


@pytest.fixture
def config(data_file: Path) -> TrackerConfig:
    return TrackerConfig(data_file=data_file)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def store(system, config, clock) -> PersistentStore:
    return PersistentStore(system, config, clock=clock)


@pytest.fixture
def registry(system, store, config) -> WindowRegistry:
    return WindowRegistry(system, store, config)


@pytest.fixture
def seed(store, data_file):
    """
    Write records straight to the state file and load them, so no flush
    timer is left behind.

    Usage:
        seed({"code": (800, 600)})
    """

    def _seed(sizes: dict) -> None:
        data_file.parent.mkdir(parents=True, exist_ok=True)
        data_file.write_text(json.dumps({
            window_id: {"width": w, "height": h, "lastUpdated": 1}
            for window_id, (w, h) in sizes.items()
        }))
        store.load()

    return _seed
