"""Tests for the SizeTracker host entry point."""

import json
import logging

import pytest

from sizekeeper.core import Rect
from sizekeeper.tracking import SizeTracker


@pytest.fixture
def tracker(system, config):
    tracker = SizeTracker(system, config)
    yield tracker
    tracker.disable()


def test_enable_loads_state_and_restores(tracker, system, data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(json.dumps({"code": {"width": 800, "height": 600, "lastUpdated": 1}}))
    window = system.add_window(app_id="Code.exe")

    tracker.enable()

    assert tracker.enabled
    assert "code" in tracker.store
    assert window.moves == [Rect(560, 240, 800, 600)]


def test_second_enable_is_a_logged_no_op(tracker, system, caplog):
    tracker.enable()
    registry = tracker.registry
    subscriptions = system.live_subscription_count

    with caplog.at_level(logging.WARNING, logger="sizekeeper.tracking.tracker"):
        tracker.enable()

    assert tracker.registry is registry
    assert system.live_subscription_count == subscriptions
    assert "already enabled" in caplog.text


def test_disable_flushes_and_releases_everything(tracker, system, data_file):
    tracker.enable()
    window = system.create_window(app_id="Code.exe")
    system.resize(window, 1024, 768)
    system.advance(500)
    assert tracker.store.flush_pending

    tracker.disable()

    state = json.loads(data_file.read_text(encoding="utf-8"))
    assert (state["code"]["width"], state["code"]["height"]) == (1024, 768)
    assert system.live_timer_count == 0
    assert system.live_subscription_count == 0
    assert not tracker.enabled
    assert tracker.store is None


def test_disable_without_enable_is_a_no_op(tracker, system):
    tracker.disable()
    assert system.live_subscription_count == 0


def test_reenable_after_disable(tracker, system):
    tracker.enable()
    tracker.disable()
    tracker.enable()

    window = system.create_window(app_id="Code.exe")

    assert tracker.registry.tracked_windows == [window]
