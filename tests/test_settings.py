"""Tests for TrackerConfig and the state file location."""

from dataclasses import replace
from pathlib import Path

import pytest

from sizekeeper.config import TrackerConfig, default_data_file


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("SIZEKEEPER_DATA_FILE", "APPDATA", "XDG_DATA_HOME"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_env_override_wins(clean_env, tmp_path):
    clean_env.setenv("SIZEKEEPER_DATA_FILE", str(tmp_path / "custom.json"))
    clean_env.setenv("APPDATA", str(tmp_path / "roaming"))

    assert default_data_file() == tmp_path / "custom.json"


def test_appdata_location(clean_env, tmp_path):
    clean_env.setenv("APPDATA", str(tmp_path))

    assert default_data_file() == tmp_path / "SizeKeeper" / "window-sizes.json"


def test_xdg_location(clean_env, tmp_path):
    clean_env.setenv("XDG_DATA_HOME", str(tmp_path))

    assert default_data_file() == tmp_path / "sizekeeper" / "window-sizes.json"


def test_home_fallback(clean_env):
    expected = Path.home() / ".local" / "share" / "sizekeeper" / "window-sizes.json"
    assert default_data_file() == expected


def test_defaults():
    config = TrackerConfig(data_file=Path("state.json"))

    assert config.min_size == 50
    assert config.tolerance == 5
    assert config.save_debounce_ms == 1000
    assert config.size_change_debounce_ms == 500
    assert (config.window_ready_timeout_ms, config.window_ready_max_attempts) == (100, 50)
    assert (config.restore_fallback_delay_ms, config.restore_retry_delay_ms) == (50, 50)
    assert config.restore_max_attempts == 5


def test_placeholder_predicate():
    config = TrackerConfig(data_file=Path("state.json"))

    assert config.is_placeholder("ApplicationFrameHost.exe")
    assert config.is_placeholder("window:12.desktop")
    assert not config.is_placeholder("Code.exe")


def test_provisional_identities_are_configurable():
    config = replace(
        TrackerConfig(data_file=Path("state.json")),
        provisional_identities=frozenset({"totalcmd"}),
    )

    assert config.awaits_successor("totalcmd")
    assert not config.awaits_successor("explorer")
