"""Tests for the restoration engine and its per-window state machine."""

import pytest

from sizekeeper.core import Rect, Signal
from sizekeeper.tracking import (
    RestorationEngine,
    RestorePhase,
    Strategy,
    TrackedWindow,
    WindowRecord,
)

CENTERED_800x600 = Rect(560, 240, 800, 600)


@pytest.fixture
def engine(system, store, config):
    return RestorationEngine(system, store, config)


@pytest.fixture
def code_window(system, seed):
    seed({"code": (800, 600)})
    return system.add_window(app_id="Code.exe")


# =============================================================================
# apply_size
# =============================================================================

def test_round_trip_geometry(engine, code_window):
    record = WindowRecord(800, 600, 0)

    assert engine.apply_size(code_window, record, ("code", 1)) is True
    assert code_window.moves == [CENTERED_800x600]

    # Already in place: success without another move
    assert engine.apply_size(code_window, record, ("code", 2)) is True
    assert code_window.moves == [CENTERED_800x600]


def test_within_tolerance_is_not_moved(engine, code_window):
    code_window.rect = Rect(563, 236, 797, 604)

    assert engine.apply_size(code_window, WindowRecord(800, 600, 0), ("code", 1)) is True
    assert code_window.moves == []
    assert ("code", 1) in engine.restored


@pytest.mark.parametrize("state", ["maximized", "fullscreen"])
def test_maximized_and_fullscreen_short_circuit(engine, code_window, state):
    setattr(code_window, state, True)
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")

    assert restoration.phase is RestorePhase.RESTORED
    assert restoration.attempt == 1
    assert code_window.moves == []
    assert engine.is_restored(code_window, "code")


@pytest.mark.parametrize(
    "attrs",
    [
        {"surface": False},
        {"minimized": True},
        {"rect": Rect(0, 0, 0, 0)},
        {"has_workspace": False},
        {"monitor": 3},
    ],
)
def test_not_ready_window_is_retried_later(engine, code_window, attrs):
    for name, value in attrs.items():
        setattr(code_window, name, value)

    assert engine.apply_size(code_window, WindowRecord(800, 600, 0), ("code", 1)) is False
    assert code_window.moves == []
    assert engine.restored == frozenset()


def test_failed_move_counts_as_not_ready(engine, code_window):
    code_window.fail_move = True

    assert engine.apply_size(code_window, WindowRecord(800, 600, 0), ("code", 1)) is False
    assert engine.restored == frozenset()


def test_saved_size_is_clamped_to_work_area(engine, system, seed):
    seed({"huge": (3000, 2000)})
    window = system.add_window(app_id="huge")

    engine.schedule_restore(TrackedWindow(window), "huge")

    assert window.moves == [Rect(0, 0, 1920, 1080)]


def test_restores_on_the_window_monitor(system, store, config, seed):
    system.work_areas.append(Rect(1920, 0, 2560, 1400))
    seed({"code": (800, 600)})
    window = system.add_window(app_id="Code.exe", monitor=1)

    RestorationEngine(system, store, config).schedule_restore(TrackedWindow(window), "code")

    assert window.moves == [Rect(2800, 400, 800, 600)]


# =============================================================================
# Strategies
# =============================================================================

def test_immediate_restore(engine, system, code_window):
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")

    assert restoration.phase is RestorePhase.RESTORED
    assert restoration.strategy is Strategy.IMMEDIATE
    assert code_window.moves == [CENTERED_800x600]
    assert entry.restoration is None
    assert system.live_timer_count == 0
    assert system.live_subscription_count == 0


def test_no_record_is_a_no_op(engine, system):
    window = system.add_window(app_id="unknown")
    entry = TrackedWindow(window)

    assert engine.schedule_restore(entry, "unknown") is None
    assert entry.restoration is None
    assert system.live_timer_count == 0


def test_first_frame_restores_unrendered_window(engine, system, code_window):
    code_window.surface = False
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")

    assert restoration.phase is RestorePhase.PENDING
    assert restoration.strategy is Strategy.FIRST_FRAME
    assert system.subscriptions_for(code_window) == [Signal.FIRST_FRAME]
    assert system.live_timer_count == 1

    system.render_first_frame(code_window)

    assert restoration.phase is RestorePhase.RESTORED
    assert code_window.moves == [CENTERED_800x600]
    assert system.live_timer_count == 0
    assert system.live_subscription_count == 0


def test_failed_first_frame_attempt_keeps_fallback_armed(engine, system, code_window):
    code_window.surface = False
    code_window.rect = Rect(0, 0, 0, 0)
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")
    system.render_first_frame(code_window)

    assert restoration.phase is RestorePhase.PENDING
    assert system.live_subscription_count == 0
    assert system.live_timer_count == 1

    code_window.rect = Rect(100, 100, 640, 480)
    system.advance(50)

    assert restoration.phase is RestorePhase.RESTORED
    assert restoration.strategy is Strategy.FALLBACK_RETRY
    assert restoration.attempt == 1
    assert code_window.moves == [CENTERED_800x600]


def test_fallback_drops_first_frame_subscription_and_retries(engine, system, code_window):
    code_window.surface = False
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")
    system.advance(50)

    assert restoration.strategy is Strategy.FALLBACK_RETRY
    assert restoration.attempt == 1
    assert system.subscriptions_for(code_window) == []

    code_window.surface = True
    system.advance(50)

    assert restoration.phase is RestorePhase.RESTORED
    assert restoration.attempt == 2
    assert code_window.moves == [CENTERED_800x600]


def test_fallback_gives_up_after_max_attempts(engine, system, code_window, config):
    code_window.surface = False
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")
    system.advance(config.restore_fallback_delay_ms
                   + config.restore_retry_delay_ms * (config.restore_max_attempts - 1))

    assert restoration.phase is RestorePhase.ABANDONED
    assert restoration.attempt == config.restore_max_attempts
    assert entry.restoration is None
    assert code_window.moves == []
    assert system.scheduled == [50, 50, 50, 50, 50]
    assert system.live_timer_count == 0
    assert system.live_subscription_count == 0

    # Nothing left to fire
    code_window.surface = True
    system.advance(1000)
    assert code_window.moves == []


def test_window_identified_after_first_frame_converges_via_fallback(
    engine, system, code_window,
):
    # First frame already rendered but the window is still minimized, so
    # the immediate attempt fails and the first-frame signal never comes.
    code_window.minimized = True
    entry = TrackedWindow(code_window)

    restoration = engine.schedule_restore(entry, "code")
    assert restoration.phase is RestorePhase.PENDING

    code_window.minimized = False
    system.advance(50)

    assert restoration.phase is RestorePhase.RESTORED
    assert code_window.moves == [CENTERED_800x600]


# =============================================================================
# At-most-once and cancellation
# =============================================================================

def test_restored_instance_is_never_restored_again(engine, system, code_window):
    entry = TrackedWindow(code_window)
    engine.schedule_restore(entry, "code")

    code_window.rect = Rect(0, 0, 300, 300)
    assert engine.schedule_restore(entry, "code") is None
    system.render_first_frame(code_window)
    system.advance(1000)

    assert code_window.moves == [CENTERED_800x600]


def test_new_instance_of_same_app_is_restored(engine, system, code_window):
    engine.schedule_restore(TrackedWindow(code_window), "code")
    second = system.add_window(app_id="Code.exe")

    engine.schedule_restore(TrackedWindow(second), "code")

    assert second.moves == [CENTERED_800x600]
    assert len(engine.restored) == 2


def test_cancel_releases_timer_and_subscription(engine, system, code_window):
    code_window.surface = False
    entry = TrackedWindow(code_window)
    restoration = engine.schedule_restore(entry, "code")

    engine.cancel(entry)
    engine.cancel(entry)

    assert restoration.phase is RestorePhase.ABANDONED
    assert entry.restoration is None
    assert system.live_timer_count == 0
    assert system.live_subscription_count == 0

    code_window.surface = True
    system.render_first_frame(code_window)
    system.advance(1000)
    assert code_window.moves == []


def test_reset_forgets_restored_instances(engine, code_window):
    engine.schedule_restore(TrackedWindow(code_window), "code")
    assert engine.restored

    engine.reset()

    assert engine.restored == frozenset()
