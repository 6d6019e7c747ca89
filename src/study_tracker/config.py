"""
Configuration for Study Session Tracker.

PURPOSE: Centralized configuration constants and runtime settings.
AI CONTEXT: All configurable values live here - modify this file to change behavior.

CONFIGURATION CATEGORIES:
- Storage: Directory and file names for the local backend
- Intensity: Hour thresholds for heat-map buckets
- Display: Fallback labels that are never stored
- Remote: REST table defaults for the remote backend
- Import: Placeholders emitted by the spreadsheet converter

ENVIRONMENT VARIABLES:
- STUDY_TRACKER_DIR: Local storage directory (default: .study_tracker)
- STUDY_TRACKER_BACKEND: "local" (default) or "remote"
- STUDY_TRACKER_REMOTE_URL: Base URL of the remote backend
- STUDY_TRACKER_REMOTE_KEY: API key sent to the remote backend
- STUDY_TRACKER_REMOTE_TABLE: Table name (default: sessions)
- STUDY_TRACKER_IMPORT_FILE: Legacy import file merged on load

USAGE:
    from study_tracker.config import Config
    storage_dir = Config.get_storage_dir()
    high = Config.HIGH_INTENSITY_HOURS
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for Study Session Tracker.

    DESIGN: Frozen dataclass ensures configuration immutability at runtime.
    All values are class-level constants - no instance creation needed.

    STORAGE STRUCTURE:
        .study_tracker/
        ├── sessions.json      # Serialized session list (the local blob)
        ├── active_timer.json  # Running timer, present only while studying
        └── pending_sessions.json  # Unsaved sessions awaiting a retry
    """

    # =========================================================================
    # STORAGE CONFIGURATION
    # =========================================================================
    STORAGE_DIR: ClassVar[str] = ".study_tracker"
    SESSIONS_FILE: ClassVar[str] = "sessions.json"
    ACTIVE_TIMER_FILE: ClassVar[str] = "active_timer.json"
    PENDING_FILE: ClassVar[str] = "pending_sessions.json"

    BACKENDS: ClassVar[frozenset[str]] = frozenset({"local", "remote"})
    DEFAULT_BACKEND: ClassVar[str] = "local"

    # =========================================================================
    # INTENSITY THRESHOLDS (hours per calendar day)
    # =========================================================================
    HIGH_INTENSITY_HOURS: ClassVar[float] = 5.0
    """Inclusive: a day with exactly 5h is High."""

    MEDIUM_INTENSITY_HOURS: ClassVar[float] = 3.0
    """Exclusive: a day with exactly 3h is still Low."""

    # =========================================================================
    # DISPLAY
    # =========================================================================
    NO_TASK_LABEL: ClassVar[str] = "No Task Available"

    INTENSITY_COLORS: ClassVar[dict[str, str]] = {
        "none": "#1e293b",
        "low": "#166534",
        "medium": "#16a34a",
        "high": "#4ade80",
    }

    # =========================================================================
    # REMOTE BACKEND
    # =========================================================================
    DEFAULT_REMOTE_TABLE: ClassVar[str] = "sessions"
    REMOTE_TIMEOUT_SECONDS: ClassVar[float] = 10.0

    # =========================================================================
    # IMPORT FILE
    # =========================================================================
    IMPORT_DATE_FORMATS: ClassVar[tuple[str, ...]] = ("%Y-%m-%d", "%Y/%m/%d")
    IMPORT_TIME_FORMATS: ClassVar[tuple[str, ...]] = (
        "%I:%M %p",
        "%I:%M%p",
        "%H:%M",
        "%H:%M:%S",
    )
    IMPORT_PLACEHOLDER_TASKS: ClassVar[frozenset[str]] = frozenset({"No Task"})
    """Task placeholders written by the spreadsheet converter for blank cells."""

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _storage_dir_override: ClassVar[str | None] = None
    _backend_override: ClassVar[str | None] = None
    _import_file_override: ClassVar[str | None] = None

    @classmethod
    def get_storage_dir(cls) -> str:
        """
        Get the directory holding the local session blob.

        Priority: test override, then STUDY_TRACKER_DIR, then STORAGE_DIR
        relative to the working directory.

        Returns:
            Directory path as a string.

        Example:
            >>> Config.get_storage_dir()
            '.study_tracker'
        """
        if cls._storage_dir_override is not None:
            return cls._storage_dir_override
        return os.environ.get("STUDY_TRACKER_DIR", cls.STORAGE_DIR)

    @classmethod
    def get_backend(cls) -> str:
        """
        Get the active durable backend name.

        Unknown values fall back to the local backend so that a typo in the
        environment never prevents the tracker from starting.

        Returns:
            "local" or "remote".

        Example:
            >>> # With env var: STUDY_TRACKER_BACKEND=remote
            >>> Config.get_backend()
            'remote'
        """
        if cls._backend_override is not None:
            return cls._backend_override
        backend = os.environ.get("STUDY_TRACKER_BACKEND", cls.DEFAULT_BACKEND).lower()
        return backend if backend in cls.BACKENDS else cls.DEFAULT_BACKEND

    @classmethod
    def get_remote_url(cls) -> str:
        """Base URL of the remote backend, without trailing slash."""
        return os.environ.get("STUDY_TRACKER_REMOTE_URL", "").rstrip("/")

    @classmethod
    def get_remote_key(cls) -> str:
        """API key for the remote backend (empty when unset)."""
        return os.environ.get("STUDY_TRACKER_REMOTE_KEY", "")

    @classmethod
    def get_remote_table(cls) -> str:
        """Remote table name holding session rows."""
        return os.environ.get("STUDY_TRACKER_REMOTE_TABLE", cls.DEFAULT_REMOTE_TABLE)

    @classmethod
    def get_import_file(cls) -> str | None:
        """
        Get the legacy import file merged into the working collection on load.

        Returns:
            Path string, or None when no import source is configured.
        """
        if cls._import_file_override is not None:
            return cls._import_file_override or None
        return os.environ.get("STUDY_TRACKER_IMPORT_FILE") or None

    @classmethod
    def set_test_overrides(
        cls,
        storage_dir: str | None = None,
        backend: str | None = None,
        import_file: str | None = None,
    ) -> None:
        """
        Set test overrides for environment-based settings.

        Must be paired with reset_test_overrides() in teardown so that one
        test's configuration never leaks into the next.

        Args:
            storage_dir: Override for the storage directory. None to clear.
            backend: Override for the backend name. None to clear.
            import_file: Override for the import file. Empty string disables
                importing regardless of the environment. None to clear.

        Example:
            >>> Config.set_test_overrides(storage_dir="/tmp/st", backend="local")
            >>> Config.get_storage_dir()
            '/tmp/st'
            >>> Config.reset_test_overrides()
        """
        cls._storage_dir_override = storage_dir
        cls._backend_override = backend
        cls._import_file_override = import_file

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Clear all overrides set by set_test_overrides()."""
        cls._storage_dir_override = None
        cls._backend_override = None
        cls._import_file_override = None

    @classmethod
    def intensity_color(cls, intensity: str) -> str:
        """
        Map an intensity bucket name to its heat-map color.

        Args:
            intensity: One of "none", "low", "medium", "high".

        Returns:
            Hex color string; unknown names get the "none" color.
        """
        return cls.INTENSITY_COLORS.get(intensity, cls.INTENSITY_COLORS["none"])
