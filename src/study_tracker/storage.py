"""
Storage management for Study Session Tracker.

PURPOSE: Durable storage of the session list behind one small protocol.
AI CONTEXT: All persistence goes through a SessionStore; see remote.py for the
second backend.

STORAGE STRUCTURE (local backend):
    .study_tracker/
    ├── sessions.json      # JSON array of session records (the blob)
    ├── active_timer.json  # Running timer; removed when the timer ends
    └── pending_sessions.json  # Sessions whose durable write failed

ERROR HANDLING STRATEGY:
- File not found: Load as empty list
- JSON corruption: Log error, raise StorageError
- Unparseable record: Log warning, skip the record
- Write failure: Log error, raise StorageError
Callers (the service layer) decide whether to surface, retry or ignore.

USAGE:
    # Production
    store = LocalSessionStore()

    # Testing with MockFileSystem
    store = LocalSessionStore(storage_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

from .config import Config
from .errors import ParseError, StorageError
from .filesystem import RealFileSystem
from .models import RunningTimer, Session

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["SessionStore", "LocalSessionStore", "ActiveTimerStore"]

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """
    Capability set every durable session backend provides.

    All methods raise StorageError on I/O, network or serialization
    failure; callers must not assume success.
    """

    def load(self) -> list[Session]:
        """Return every persisted session, in storage order."""
        ...

    def replace_all(self, sessions: Sequence[Session]) -> None:
        """Overwrite the persisted list with exactly these sessions."""
        ...

    def append(self, session: Session) -> Session:
        """Persist one session; return it, possibly with an assigned id."""
        ...

    def delete(self, session: Session) -> None:
        """Remove one persisted session by identity."""
        ...

    def clear(self) -> None:
        """Remove every persisted session."""
        ...


class _JsonFile:
    """JSON read/write helpers shared by the local stores."""

    def __init__(self, path: str, filesystem: FileSystem) -> None:
        self.path = path
        self._fs = filesystem

    def read(self, default: Any) -> Any:
        """
        Read JSON file.

        Args:
            default: Value returned when the file does not exist.

        Returns:
            Parsed JSON data or default.

        Raises:
            StorageError: If the file cannot be read or is not valid JSON.
        """
        try:
            content = self._fs.read_text(self.path)
        except FileNotFoundError:
            return default
        except OSError as e:
            logger.error(f"Error reading {self.path}: {e}")
            raise StorageError(f"Cannot read {self.path}: {e}") from e

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.path}: {e}")
            raise StorageError(f"Corrupt data in {self.path}: {e}") from e

    def write(self, data: Any) -> None:
        """
        Write JSON file with 2-space indent, UTF-8.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            self._fs.write_text(self.path, json.dumps(data, indent=2, default=str))
        except OSError as e:
            logger.error(f"Error writing {self.path}: {e}")
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def remove(self) -> None:
        """Delete the file if present."""
        try:
            if self._fs.exists(self.path):
                self._fs.remove(self.path)
        except OSError as e:
            logger.error(f"Error removing {self.path}: {e}")
            raise StorageError(f"Cannot remove {self.path}: {e}") from e


def _ensure_dir(filesystem: FileSystem, storage_dir: str) -> None:
    """Create the storage directory, logging (not raising) on failure."""
    try:
        filesystem.makedirs(storage_dir, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to initialize storage: {e}")


class LocalSessionStore:
    """
    Local backend: one serialized session list under a well-known name.

    DESIGN PRINCIPLES:
    1. Single blob: load/replace_all operate on the whole array
    2. append and delete edit the raw array; no identity is assigned and
       records that fail to parse survive every write except replace_all
    3. delete is identity-based (id when present, else value equality)
    4. Read-modify-write operations hold a lock so concurrent appends
       cannot lose each other's updates
    5. Testable: FileSystem can be injected for mocking
    """

    def __init__(
        self,
        storage_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize the store and its directory.

        Args:
            storage_dir: Custom storage path. Default: Config.get_storage_dir()
            filesystem: FileSystem implementation. Default: RealFileSystem

        Creates:
            The storage directory (the blob itself is created on first write).
        """
        self.storage_dir = storage_dir or Config.get_storage_dir()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.sessions_file = os.path.join(self.storage_dir, Config.SESSIONS_FILE)
        self._file = _JsonFile(self.sessions_file, self._fs)
        self._lock = threading.Lock()

        _ensure_dir(self._fs, self.storage_dir)
        logger.info(f"Storage initialized: {self.storage_dir}")

    def load(self) -> list[Session]:
        """
        Load all persisted sessions.

        Records that fail to parse are skipped with a warning rather than
        failing the whole load.

        Returns:
            Sessions in storage order. Empty list if the blob doesn't exist.

        Raises:
            StorageError: If the blob is unreadable, corrupt, or not an array.
        """
        sessions: list[Session] = []
        for index, record in enumerate(self._read_records()):
            session = self._parse(index, record)
            if session is not None:
                sessions.append(session)
        return sessions

    def _read_records(self) -> list[Any]:
        """Return the raw blob array, unparsed."""
        data = self._file.read([])
        if not isinstance(data, list):
            logger.error(f"Expected a JSON array in {self.sessions_file}")
            raise StorageError(f"Corrupt data in {self.sessions_file}: expected a list")
        return data

    def _parse(self, index: int, record: Any) -> Session | None:
        """Parse one raw record, or log and return None when it is unusable."""
        if not isinstance(record, dict):
            logger.warning(f"Skipping non-object record #{index} in {self.sessions_file}")
            return None
        try:
            return Session.from_dict(record)
        except ParseError as e:
            logger.warning(f"Skipping record #{index} in {self.sessions_file}: {e}")
            return None

    def replace_all(self, sessions: Sequence[Session]) -> None:
        """
        Overwrite the blob with the given sessions.

        Raises:
            StorageError: If the write fails.
        """
        with self._lock:
            self._file.write([s.to_dict() for s in sessions])

    def append(self, session: Session) -> Session:
        """
        Append one session to the blob.

        Works on the raw array so records this version cannot parse are
        written back untouched.

        Args:
            session: Session to persist.

        Returns:
            The same session; the local backend assigns no identity.

        Raises:
            StorageError: If the load or the write fails.
        """
        with self._lock:
            records = self._read_records()
            records.append(session.to_dict())
            self._file.write(records)
        return session

    def delete(self, session: Session) -> None:
        """
        Remove the first persisted record with the same identity.

        A session that is not in the blob is treated as already deleted.
        Unparseable records are never matched and are kept as they are.

        Raises:
            StorageError: If the load or the write fails.
        """
        with self._lock:
            records = self._read_records()
            for index, record in enumerate(records):
                stored = self._parse(index, record)
                if stored is not None and stored.same_identity(session):
                    del records[index]
                    self._file.write(records)
                    return
        logger.warning(f"Session {session.ref} not found in {self.sessions_file}")

    def clear(self) -> None:
        """
        Reset the blob to an empty list.

        WARNING: Destroys all locally persisted sessions.
        """
        with self._lock:
            self._file.write([])
        logger.info("Local session store cleared")


class ActiveTimerStore:
    """
    Persists the state that must outlive one process.

    The CLI runs one action per process: `start` and `end` happen in
    different processes, so the Running(task, start) payload is written to
    a small JSON file and removed when the timer returns to Idle. Sessions
    whose durable write failed are kept in a second file until a later
    write succeeds, so an `end` that could not save is not lost on exit.
    """

    def __init__(
        self,
        storage_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self.storage_dir = storage_dir or Config.get_storage_dir()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.timer_file = os.path.join(self.storage_dir, Config.ACTIVE_TIMER_FILE)
        self._file = _JsonFile(self.timer_file, self._fs)
        self.pending_file = os.path.join(self.storage_dir, Config.PENDING_FILE)
        self._pending = _JsonFile(self.pending_file, self._fs)
        _ensure_dir(self._fs, self.storage_dir)

    def load(self) -> RunningTimer | None:
        """
        Load the running timer, if any.

        Valid JSON of the wrong shape is logged and treated as Idle.

        Returns:
            RunningTimer or None when idle.

        Raises:
            StorageError: If the file exists but cannot be read or decoded.
        """
        data = self._file.read(None)
        if data is None:
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed timer file {self.timer_file}")
            return None
        try:
            return RunningTimer.from_dict(data)
        except ParseError as e:
            logger.warning(f"Ignoring malformed timer file {self.timer_file}: {e}")
            return None

    def save(self, timer: RunningTimer) -> None:
        """Persist the running timer. Raises StorageError on failure."""
        self._file.write(timer.to_dict())

    def clear(self) -> None:
        """Remove the timer file. Raises StorageError on failure."""
        self._file.remove()

    def load_pending(self) -> list[Session]:
        """
        Load sessions still waiting for a durable write.

        Unparseable entries are logged and dropped.

        Raises:
            StorageError: If the file exists but cannot be read or decoded.
        """
        data = self._pending.read([])
        if not isinstance(data, list):
            logger.warning(f"Ignoring malformed pending file {self.pending_file}")
            return []
        sessions: list[Session] = []
        for index, record in enumerate(data):
            try:
                sessions.append(Session.from_dict(record))
            except ParseError as e:
                logger.warning(f"Dropping pending record #{index}: {e}")
        return sessions

    def save_pending(self, sessions: Sequence[Session]) -> None:
        """Replace the pending queue; an empty queue removes the file."""
        if sessions:
            self._pending.write([s.to_dict() for s in sessions])
        else:
            self._pending.remove()
