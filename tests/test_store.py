"""Tests for the persistent WindowID -> WindowRecord store."""

import json
from dataclasses import replace

import pytest

from sizekeeper.tracking import PersistentStore, WindowRecord


def read_state(path):
    return json.loads(path.read_text(encoding="utf-8"))


# =============================================================================
# Load
# =============================================================================

def test_load_missing_file_starts_empty(store):
    assert store.load() == {}
    assert len(store) == 0
    assert not store.dirty


@pytest.mark.parametrize("content", ['"oops"', "42", "[1, 2, 3]", "null"])
def test_load_non_object_json_resets_to_empty(store, data_file, content):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(content)

    assert store.load() == {}
    assert len(store) == 0


def test_load_invalid_json_resets_to_empty(store, data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text('{"code": {"width": 800,')

    assert store.load() == {}


def test_load_drops_malformed_entries(store, data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(json.dumps({
        "code": {"width": 1280, "height": 900, "lastUpdated": 1760000000000},
        "no-height": {"width": 800},
        "text": {"width": "800", "height": "600"},
        "flag": {"width": True, "height": 600},
        "tiny": {"width": 20, "height": 600},
        "scalar": 7,
    }))

    loaded = store.load()

    assert list(loaded) == ["code"]
    assert store.get("code") == WindowRecord(1280, 900, 1760000000000)
    assert "tiny" not in store


@pytest.mark.parametrize("bad", ["NaN", "Infinity", "-Infinity"])
def test_load_drops_non_finite_entries(store, data_file, bad):
    data_file.parent.mkdir(parents=True)
    # Python's json module writes and reads these literals
    data_file.write_text(
        '{"code": {"width": %s, "height": 600, "lastUpdated": 1},'
        ' "late": {"width": 800, "height": 600, "lastUpdated": %s},'
        ' "notepad": {"width": 640, "height": 480, "lastUpdated": 1}}' % (bad, bad)
    )

    loaded = store.load()

    assert list(loaded) == ["notepad"]
    assert "code" not in store
    assert "late" not in store


def test_load_accepts_missing_timestamp(store, data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(json.dumps({"code": {"width": 800, "height": 600}}))

    store.load()

    assert store.get("code") == WindowRecord(800, 600, 0)


# =============================================================================
# Set
# =============================================================================

def test_set_stores_record_and_schedules_flush(store, system, config):
    assert store.set("code", 800, 600) is True

    record = store.get("code")
    assert (record.width, record.height) == (800, 600)
    assert store.dirty
    assert store.flush_pending
    assert system.scheduled == [config.save_debounce_ms]


def test_set_identical_size_is_idempotent(store, system):
    store.set("code", 800, 600)
    first = store.get("code")

    assert store.set("code", 800, 600) is False

    assert store.get("code").last_updated == first.last_updated
    assert len(system.scheduled) == 1
    assert system.live_timer_count == 1


@pytest.mark.parametrize("width, height", [(49, 600), (800, 49), (0, 0), (-5, 600)])
def test_set_below_minimum_is_ignored(store, system, width, height):
    assert store.set("code", width, height) is False

    assert "code" not in store
    assert not store.dirty
    assert system.scheduled == []


def test_set_at_minimum_is_accepted(store):
    assert store.set("code", 50, 50) is True


def test_set_below_minimum_keeps_existing_record(store):
    store.set("code", 800, 600)
    store.set("code", 10, 10)

    assert (store.get("code").width, store.get("code").height) == (800, 600)


# =============================================================================
# Flushing
# =============================================================================

def test_burst_of_sets_collapses_into_one_write(store, system, data_file):
    store.set("code", 800, 600)
    system.advance(999)
    store.set("notepad", 640, 480)
    system.advance(999)

    assert not data_file.exists()

    system.advance(1)

    assert read_state(data_file) == {
        "code": {"width": 800, "height": 600, "lastUpdated": store.get("code").last_updated},
        "notepad": {"width": 640, "height": 480, "lastUpdated": store.get("notepad").last_updated},
    }
    assert not store.dirty
    assert not store.flush_pending


def test_flush_creates_parent_directory(store, data_file):
    assert not data_file.parent.exists()

    store.set("code", 800, 600)
    assert store.flush_now() is True

    assert data_file.exists()


def test_flush_leaves_no_temp_files(store, system, data_file):
    store.set("code", 800, 600)
    system.advance(1000)
    store.set("code", 900, 700)
    store.flush_now()

    assert [p.name for p in data_file.parent.iterdir()] == [data_file.name]


def test_set_during_background_write_keeps_dirty(store, system, data_file):
    store.set("code", 800, 600)
    store.flush_async()
    assert system.pending_background == 1

    # Lands after the snapshot was taken
    store.set("notepad", 640, 480)
    system.run_background()

    assert store.dirty
    assert "notepad" not in read_state(data_file)

    system.advance(1000)

    assert not store.dirty
    assert set(read_state(data_file)) == {"code", "notepad"}


def test_stale_background_write_does_not_replace_newer_file(store, system, data_file):
    store.set("code", 800, 600)
    store.flush_async()
    store.set("code", 900, 700)
    assert store.flush_now() is True

    # The older snapshot finishes last
    system.run_background()

    assert read_state(data_file)["code"]["width"] == 900
    assert not store.dirty


def test_failed_write_keeps_dirty(system, config, clock, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    broken = PersistentStore(
        system, replace(config, data_file=blocker / "window-sizes.json"), clock=clock,
    )

    broken.set("code", 800, 600)
    assert broken.flush_now() is False
    assert broken.dirty

    broken.set("code", 900, 700)
    system.advance(1000)
    assert broken.dirty


def test_flush_now_cancels_pending_timer(store, system):
    store.set("code", 800, 600)
    assert store.flush_pending

    store.flush_now()

    assert not store.flush_pending
    assert system.live_timer_count == 0


def test_flush_now_when_clean_does_not_write(store, data_file):
    assert store.flush_now() is True
    assert not data_file.exists()


def test_close_persists_for_next_session(store, system, config, clock):
    store.set("code", 800, 600)
    store.close()

    reloaded = PersistentStore(system, config, clock=clock)
    reloaded.load()

    assert reloaded.get("code") == store.get("code")
