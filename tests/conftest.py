"""
Pytest configuration and shared fixtures for Study Session Tracker tests.

This module contains:
- MockFileSystem: In-memory filesystem for testing without actual I/O
- FixedClock: Controllable clock for timer tests
- InMemoryStore: SessionStore fake with failure injection
- Shared fixtures available to all test modules
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime, timedelta

import pytest

from study_tracker.config import Config
from study_tracker.errors import StorageError
from study_tracker.models import Origin, Session


class MockFileSystem:
    """
    In-memory file system for testing.

    Simulates a file system using dictionaries:
    - _files: dict mapping path -> content (str)
    - _dirs: set of directory paths
    - _read_only: paths whose writes raise PermissionError

    FEATURES:
    - No actual I/O operations
    - Fast test execution
    - Easy to inspect state
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._read_only: set[str] = set()
        self.fail_reads = False

    def exists(self, path: str) -> bool:
        return path in self._files or path in self._dirs

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create mock directory and parent directories.

        Raises:
            OSError: If directory exists and exist_ok is False,
                or if path is an existing file.
        """
        if path in self._dirs:
            if not exist_ok:
                raise OSError(f"Directory exists: {path}")
            return

        if path in self._files:
            raise OSError(f"Path is a file, not directory: {path}")

        # Create all parent directories
        parts = path.rstrip("/").split("/")
        for i in range(1, len(parts) + 1):
            parent = "/".join(parts[:i])
            if parent:
                self._dirs.add(parent)

    def read_text(self, path: str, _encoding: str = "utf-8") -> str:
        """
        Read mock file contents.

        Raises:
            FileNotFoundError: If path not in _files.
            OSError: If fail_reads is set.
        """
        if self.fail_reads:
            raise OSError(f"I/O error: {path}")
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[path]

    def write_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        """
        Write text to mock file, auto-creating parent directories.

        Raises:
            PermissionError: If path is marked read-only.
        """
        if path in self._read_only:
            raise PermissionError(f"Permission denied: {path}")

        parent = "/".join(path.rstrip("/").split("/")[:-1])
        if parent and parent not in self._dirs:
            self.makedirs(parent, exist_ok=True)

        self._files[path] = content

    def remove(self, path: str) -> None:
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        del self._files[path]

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    def get_file(self, path: str) -> str | None:
        """Get file content or None if not exists."""
        return self._files.get(path)

    def set_file(self, path: str, content: str) -> None:
        """Set file content directly."""
        self.write_text(path, content)

    def set_read_only(self, path: str) -> None:
        """Make subsequent writes to path raise PermissionError."""
        self._read_only.add(path)

    def list_files(self) -> list[str]:
        return sorted(self._files.keys())

    def is_dir(self, path: str) -> bool:
        return path in self._dirs


class FixedClock:
    """Clock returning a settable instant; advance() moves it forward."""

    def __init__(self, current: datetime | None = None) -> None:
        self.current = current or datetime(2024, 3, 5, 9, 0)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        """Move the clock by a timedelta, e.g. advance(minutes=90)."""
        self.current += timedelta(**kwargs)


class InMemoryStore:
    """
    SessionStore fake kept in a list.

    Attributes:
        sessions: Persisted sessions, in insertion order.
        fail: When True, every operation raises StorageError.
        assign_ids: When True, append() returns the session with a new id,
            like the remote backend.
        calls: Names of the operations invoked, for assertions.
    """

    def __init__(self, sessions: Sequence[Session] = (), assign_ids: bool = False) -> None:
        self.sessions: list[Session] = list(sessions)
        self.fail = False
        self.assign_ids = assign_ids
        self.calls: list[str] = []
        self._next_id = 1

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise StorageError(f"{name} failed")

    def load(self) -> list[Session]:
        self._check("load")
        return list(self.sessions)

    def replace_all(self, sessions: Sequence[Session]) -> None:
        self._check("replace_all")
        self.sessions = list(sessions)

    def append(self, session: Session) -> Session:
        self._check("append")
        if self.assign_ids:
            session = session.with_id(str(self._next_id))
            self._next_id += 1
        self.sessions.append(session)
        return session

    def delete(self, session: Session) -> None:
        self._check("delete")
        self.sessions = [s for s in self.sessions if not s.same_identity(session)]

    def clear(self) -> None:
        self._check("clear")
        self.sessions = []


def make_session(
    task: str = "Read",
    start: datetime | None = None,
    minutes: float = 90,
    origin: Origin = Origin.LOCAL,
    **kwargs: object,
) -> Session:
    """Build a valid Session starting at `start` and lasting `minutes`."""
    start = start or datetime(2024, 3, 5, 9, 0)
    return Session.create(
        task, start, start + timedelta(minutes=minutes), origin=origin, **kwargs  # type: ignore[arg-type]
    )


@pytest.fixture
def mock_fs() -> MockFileSystem:
    """Fresh in-memory filesystem for each test."""
    return MockFileSystem()


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at 2024-03-05 09:00."""
    return FixedClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep the developer's environment out of every test."""
    for name in (
        "STUDY_TRACKER_DIR",
        "STUDY_TRACKER_BACKEND",
        "STUDY_TRACKER_REMOTE_URL",
        "STUDY_TRACKER_REMOTE_KEY",
        "STUDY_TRACKER_REMOTE_TABLE",
        "STUDY_TRACKER_IMPORT_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    Config.reset_test_overrides()
