"""
Clock abstraction for Study Session Tracker.

PURPOSE: Injectable source of the current instant.
AI CONTEXT: TimerController never calls datetime.now() directly.

DESIGN:
- Clock protocol defines now()
- SystemClock returns the local wall clock (naive datetime)
- FixedClock in tests/conftest.py returns a settable instant

USAGE:
    clock = SystemClock()
    timer = TimerController(state, merger, store, clock=clock)
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

__all__ = ["Clock", "SystemClock"]


class Clock(Protocol):
    """
    Protocol for anything that can report the current instant.

    Instants are naive datetimes on the local wall clock. Sessions are
    bucketed by the local calendar day of their start, so no timezone
    normalization happens here.
    """

    def now(self) -> datetime:
        """
        Return the current local instant.

        Returns:
            Naive datetime in local wall-clock time.
        """
        ...


class SystemClock:
    """Production clock backed by datetime.now()."""

    def now(self) -> datetime:  # pragma: no cover
        """
        Return the current local wall-clock time.

        Microseconds are kept so that very short sessions still produce a
        non-zero duration.

        Returns:
            Naive datetime for the local timezone.

        Example:
            >>> SystemClock().now().tzinfo is None
            True
        """
        return datetime.now()
