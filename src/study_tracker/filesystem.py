"""
FileSystem abstraction for Study Session Tracker.

PURPOSE: The narrow file I/O surface used by the local stores and importer.
AI CONTEXT: The local store, timer store and importer never touch os directly.

DESIGN:
- FileSystem protocol lists the five operations the tracker performs
- RealFileSystem uses actual os operations
- MockFileSystem in tests/conftest.py keeps files in memory

USAGE:
    # Production
    store = LocalSessionStore(filesystem=RealFileSystem())

    # In tests, an in-memory double from tests/conftest.py
    store = LocalSessionStore(storage_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import os
from typing import Protocol

__all__ = ["FileSystem", "RealFileSystem"]


class FileSystem(Protocol):
    """
    Protocol for the file operations the tracker needs.

    All paths are strings. Implementations include RealFileSystem for
    production and MockFileSystem for tests.

    Business context: The session blob, the running-timer file and the
    legacy import file are the only files the tracker reads or writes;
    injecting the filesystem lets every storage path be tested without
    temp directories.
    """

    def exists(self, path: str) -> bool:
        """
        Report whether a file or directory is present at path.

        Args:
            path: Path to check.

        Returns:
            True if the path exists. Never raises.
        """
        ...

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create directory and all parent directories (like `mkdir -p`).

        Args:
            path: Directory to create.
            exist_ok: If True, don't raise if the directory exists.

        Raises:
            OSError: If the directory exists and exist_ok is False.
        """
        ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """
        Return the whole file as a string.

        Args:
            path: File to read.
            encoding: Text encoding (default utf-8).

        Returns:
            File contents.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            OSError: On other read failures.
        """
        ...

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """
        Write text to file, replacing existing content.

        Args:
            path: File to write.
            content: Text to write.
            encoding: Text encoding (default utf-8).

        Raises:
            PermissionError: If the file is read-only.
            OSError: On other write failures.
        """
        ...

    def remove(self, path: str) -> None:
        """
        Remove a file.

        Args:
            path: File to remove.

        Raises:
            FileNotFoundError: If the file doesn't exist.
        """
        ...


class RealFileSystem:
    """
    Real file system implementation using os.

    Business context: Used in production to keep the session blob and the
    running-timer file on disk. Each method delegates directly to the
    corresponding os or built-in function.
    """

    def exists(self, path: str) -> bool:  # pragma: no cover
        """Delegate to os.path.exists()."""
        return os.path.exists(path)

    def makedirs(self, path: str, exist_ok: bool = False) -> None:  # pragma: no cover
        """Delegate to os.makedirs()."""
        os.makedirs(path, exist_ok=exist_ok)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:  # pragma: no cover
        """
        Open path and return its decoded contents.

        Args:
            path: File to read.
            encoding: Text encoding (default utf-8).

        Returns:
            Decoded file contents.

        Raises:
            FileNotFoundError: If nothing exists at path.
        """
        with open(path, encoding=encoding) as f:
            return f.read()

    def write_text(
        self, path: str, content: str, encoding: str = "utf-8"
    ) -> None:  # pragma: no cover
        """
        Atomically replace the file at path with content.

        Writes to a sibling temp file first and renames it over the target,
        so a crash mid-write never leaves a truncated session blob.

        Args:
            path: File to write.
            content: Full new contents.
            encoding: Text encoding (default utf-8).

        Raises:
            PermissionError: If the directory is not writable.
            OSError: If the storage directory is missing.
        """
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding=encoding) as f:
            f.write(content)
        os.replace(tmp_path, path)

    def remove(self, path: str) -> None:  # pragma: no cover
        """Delegate to os.remove()."""
        os.remove(path)
