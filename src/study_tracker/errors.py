"""
Error taxonomy for Study Session Tracker.

PURPOSE: One exception family shared by stores, parsers and services.
AI CONTEXT: Stores and parsers raise; the service layer converts to ServiceResult.

TAXONOMY:
- ValidationError: bad user input (empty task, unconfirmed reset)
- StorageError: local or remote I/O, network or serialization failure
- PermissionDeniedError: delete attempted on a non-local session
- ParseError: a date, instant or import record could not be parsed
- SessionNotFoundError: a ref did not match any session

No error in this package is fatal to the process.
"""

from __future__ import annotations

from typing import ClassVar

__all__ = [
    "StudyTrackerError",
    "ValidationError",
    "StorageError",
    "PermissionDeniedError",
    "ParseError",
    "SessionNotFoundError",
]


class StudyTrackerError(Exception):
    """
    Base class for all tracker errors.

    The class-level ``code`` is a short stable string used in ServiceResult
    payloads and for mapping errors to HTTP status codes.
    """

    code: ClassVar[str] = "error"


class ValidationError(StudyTrackerError):
    """User input rejected; the operation was aborted with state unchanged."""

    code: ClassVar[str] = "validation"


class StorageError(StudyTrackerError):
    """Durable storage (file or remote backend) failed."""

    code: ClassVar[str] = "storage"


class PermissionDeniedError(StudyTrackerError):
    """Deletion refused because the session did not originate locally."""

    code: ClassVar[str] = "permission"


class ParseError(StudyTrackerError, ValueError):
    """A date, clock time or record could not be normalized."""

    code: ClassVar[str] = "parse"


class SessionNotFoundError(StudyTrackerError):
    """No session in the working collection matched the given ref."""

    code: ClassVar[str] = "not_found"
