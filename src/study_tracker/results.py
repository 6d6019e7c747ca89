"""
Result type shared by the service layer.

PURPOSE: Uniform return value for every user-facing operation.
AI CONTEXT: TimerController, SessionMerger and TrackerService return
ServiceResult instead of raising; the CLI and web routes render it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import StudyTrackerError

__all__ = ["ServiceResult"]


@dataclass
class ServiceResult:
    """
    Result from a service operation.

    Provides a consistent return type for all service methods with
    success/failure status and optional data or error message.

    Attributes:
        success: Whether the operation completed successfully.
        message: Human-readable result message.
        data: Optional dict with operation-specific data.
        error: Optional error message. May be set on a successful result
            when the operation degraded (e.g. a session was recorded in
            memory but its durable write failed).
        exception: The taxonomy error behind ``error``, if any.
    """

    success: bool
    message: str
    data: dict[str, Any] | None = None
    error: str | None = None
    exception: StudyTrackerError | None = None

    @classmethod
    def failure(
        cls,
        message: str,
        exception: StudyTrackerError,
        data: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Build a failed result from a taxonomy error."""
        return cls(
            success=False,
            message=message,
            data=data,
            error=str(exception),
            exception=exception,
        )

    @property
    def error_code(self) -> str | None:
        """Short code of the underlying error ('validation', 'storage', ...)."""
        return self.exception.code if self.exception is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert this ServiceResult to a JSON-serializable dictionary.

        Fields with None/empty values (data, error) are omitted to keep
        payloads compact.

        Returns:
            Dict with keys 'success' and 'message', plus optional 'data',
            'error' and 'error_code' when present.

        Example:
            >>> ServiceResult(success=True, message="Done", data={"ref": "abc"}).to_dict()
            {'success': True, 'message': 'Done', 'data': {'ref': 'abc'}}
        """
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
        }
        if self.data:
            result["data"] = self.data
        if self.error:
            result["error"] = self.error
        if self.error_code:
            result["error_code"] = self.error_code
        return result
