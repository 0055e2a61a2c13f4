"""Tests for the size-change debouncer."""

from sizekeeper.tracking import SizeChangeDebouncer, TrackedWindow


def test_burst_settles_once_after_quiet_period(system):
    window = system.add_window()
    entry = TrackedWindow(window)
    settled = []
    debouncer = SizeChangeDebouncer(system, 500, settled.append)

    debouncer.touch(entry)
    system.advance(200)
    debouncer.touch(entry)
    system.advance(499)
    debouncer.touch(entry)
    system.advance(499)
    assert settled == []

    system.advance(1)

    assert settled == [window]
    assert entry.debounce_timer is None
    assert system.live_timer_count == 0


def test_only_one_timer_per_window(system):
    entry = TrackedWindow(system.add_window())
    debouncer = SizeChangeDebouncer(system, 500, lambda window: None)

    for _ in range(10):
        debouncer.touch(entry)

    assert system.live_timer_count == 1


def test_windows_are_debounced_independently(system):
    first = TrackedWindow(system.add_window(name="first"))
    second = TrackedWindow(system.add_window(name="second"))
    settled = []
    debouncer = SizeChangeDebouncer(system, 500, settled.append)

    debouncer.touch(first)
    system.advance(300)
    debouncer.touch(second)
    system.advance(200)

    assert settled == [first.window]

    system.advance(300)

    assert settled == [first.window, second.window]


def test_cancel(system):
    entry = TrackedWindow(system.add_window())
    settled = []
    debouncer = SizeChangeDebouncer(system, 500, settled.append)

    debouncer.touch(entry)
    debouncer.cancel(entry)
    debouncer.cancel(entry)
    system.advance(1000)

    assert settled == []
    assert entry.debounce_timer is None
    assert system.live_timer_count == 0
