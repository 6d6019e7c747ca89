"""Tests for config module."""

from __future__ import annotations

import dataclasses

import pytest

from study_tracker.config import Config


class TestConfigConstants:
    """Tests for static configuration values."""

    def test_storage_names(self) -> None:
        """Verifies storage names match the documented layout.

        Business context:
        The local blob lives under a well-known name; changing it would
        orphan every user's saved sessions.
        """
        assert Config.STORAGE_DIR == ".study_tracker"
        assert Config.SESSIONS_FILE == "sessions.json"
        assert Config.ACTIVE_TIMER_FILE == "active_timer.json"

    def test_intensity_thresholds(self) -> None:
        assert Config.HIGH_INTENSITY_HOURS == 5.0
        assert Config.MEDIUM_INTENSITY_HOURS == 3.0

    def test_no_task_label(self) -> None:
        assert Config.NO_TASK_LABEL == "No Task Available"

    def test_config_is_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            Config().STORAGE_DIR = "/elsewhere"  # type: ignore[misc]


class TestEnvironmentSettings:
    """Tests for environment-driven getters."""

    def test_storage_dir_default(self) -> None:
        assert Config.get_storage_dir() == ".study_tracker"

    def test_storage_dir_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUDY_TRACKER_DIR", "/srv/study")
        assert Config.get_storage_dir() == "/srv/study"

    def test_override_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUDY_TRACKER_DIR", "/srv/study")
        Config.set_test_overrides(storage_dir="/tmp/st")
        assert Config.get_storage_dir() == "/tmp/st"
        Config.reset_test_overrides()
        assert Config.get_storage_dir() == "/srv/study"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("remote", "remote"), ("REMOTE", "remote"), ("local", "local"), ("cloud", "local")],
    )
    def test_backend(self, monkeypatch: pytest.MonkeyPatch, value: str, expected: str) -> None:
        """Unknown backends fall back to local."""
        monkeypatch.setenv("STUDY_TRACKER_BACKEND", value)
        assert Config.get_backend() == expected

    def test_backend_default(self) -> None:
        assert Config.get_backend() == "local"

    def test_remote_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUDY_TRACKER_REMOTE_URL", "https://example.supabase.co/")
        monkeypatch.setenv("STUDY_TRACKER_REMOTE_KEY", "k")
        assert Config.get_remote_url() == "https://example.supabase.co"
        assert Config.get_remote_key() == "k"
        assert Config.get_remote_table() == "sessions"

    def test_import_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert Config.get_import_file() is None
        monkeypatch.setenv("STUDY_TRACKER_IMPORT_FILE", "tracker.json")
        assert Config.get_import_file() == "tracker.json"

    def test_empty_import_override_disables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUDY_TRACKER_IMPORT_FILE", "tracker.json")
        Config.set_test_overrides(import_file="")
        assert Config.get_import_file() is None


class TestIntensityColor:
    """Tests for Config.intensity_color()."""

    def test_known(self) -> None:
        assert Config.intensity_color("high") == Config.INTENSITY_COLORS["high"]

    def test_unknown_falls_back(self) -> None:
        assert Config.intensity_color("extreme") == Config.INTENSITY_COLORS["none"]
