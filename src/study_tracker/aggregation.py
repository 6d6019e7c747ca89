"""
Per-date aggregation for Study Session Tracker.

PURPOSE: Reduce sessions to per-day totals and heat-map intensity buckets.
AI CONTEXT: Pure data processing - no visualization, no I/O.

INTENSITY MODEL (hours of study per calendar day):
    hours >= 5  ──► high     (inclusive boundary)
    hours >  3  ──► medium   (exclusive boundary: exactly 3h is low)
    hours >  0  ──► low
    otherwise   ──► none

USAGE:
    aggregator = DateAggregator()
    totals = aggregator.aggregate(sessions)        # {'2024-03-05': 180.0}
    aggregator.classify(totals["2024-03-05"])      # Intensity.LOW
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from .config import Config
from .errors import ParseError
from .models import Intensity, Session, normalize_date

__all__ = ["DateAggregator"]

logger = logging.getLogger(__name__)


class DateAggregator:
    """
    Calculator for per-date study totals.

    DESIGN:
    - Stateless: Each method operates on provided sessions
    - Pure: No side effects, only data transformation
    - Thresholds come from Config
    """

    def _date_key(self, session: Session) -> str | None:
        """Normalized date of a session, or None when it cannot be derived."""
        try:
            if session.date:
                return normalize_date(session.date)
            return normalize_date(session.start)
        except ParseError as e:
            logger.warning(f"Excluding session {session.ref} from aggregation: {e}")
            return None

    def aggregate(self, sessions: Iterable[Session]) -> dict[str, float]:
        """
        Sum session durations per calendar day.

        Each session's date is normalized, falling back to the day of its
        start instant when the date is empty. Sessions whose date cannot be
        normalized are excluded, consistent with the importer's drop policy.

        Business context: The calendar heat map and the day totals shown
        under it both read from this mapping.

        Args:
            sessions: Sessions from the working collection.

        Returns:
            Dict of YYYY-MM-DD to total minutes (two-decimal precision), in
            first-seen order. Days without sessions are absent.

        Example:
            >>> DateAggregator().aggregate([ninety_min_a, ninety_min_b])
            {'2024-03-05': 180.0}
        """
        totals: dict[str, float] = {}
        for session in sessions:
            key = self._date_key(session)
            if key is None:
                continue
            totals[key] = totals.get(key, 0.0) + session.duration
        return {key: round(minutes, 2) for key, minutes in totals.items()}

    def classify(self, total_minutes: float | None) -> Intensity:
        """
        Bucket a day's total study time.

        Args:
            total_minutes: Minutes studied that day; None means no entry.

        Returns:
            Intensity bucket. The 5-hour boundary is inclusive, the 3-hour
            boundary exclusive.

        Example:
            >>> aggregator.classify(180)
            <Intensity.LOW: 'low'>
            >>> aggregator.classify(181)
            <Intensity.MEDIUM: 'medium'>
            >>> aggregator.classify(300)
            <Intensity.HIGH: 'high'>
        """
        if total_minutes is None:
            return Intensity.NONE
        hours = total_minutes / 60.0
        if hours >= Config.HIGH_INTENSITY_HOURS:
            return Intensity.HIGH
        if hours > Config.MEDIUM_INTENSITY_HOURS:
            return Intensity.MEDIUM
        if hours > 0:
            return Intensity.LOW
        return Intensity.NONE

    def total_for_date(self, sessions: Iterable[Session], day: Any) -> float:
        """
        Total minutes studied on one day.

        Args:
            sessions: Sessions from the working collection.
            day: Date in any form normalize_date() accepts.

        Returns:
            Total minutes, 0.0 when the day has no sessions.

        Raises:
            ParseError: If ``day`` cannot be normalized.
        """
        return self.aggregate(sessions).get(normalize_date(day), 0.0)

    def total_minutes(self, sessions: Iterable[Session]) -> float:
        """Grand total of minutes across every session."""
        return round(sum(s.duration for s in sessions), 2)

    def sessions_for_date(self, sessions: Iterable[Session], day: Any) -> list[Session]:
        """
        Sessions recorded on one day, in collection order.

        Raises:
            ParseError: If ``day`` cannot be normalized.
        """
        key = normalize_date(day)
        return [s for s in sessions if self._date_key(s) == key]

    def heatmap(self, sessions: Iterable[Session]) -> dict[str, Intensity]:
        """Intensity bucket for every day that has sessions."""
        return {day: self.classify(total) for day, total in self.aggregate(sessions).items()}

    def current_streak(self, sessions: Iterable[Session], today: date) -> int:
        """
        Count consecutive study days ending today.

        Returns 0 if today has no study time; a single skipped day breaks
        the streak.

        Args:
            sessions: Sessions from the working collection.
            today: The current calendar day.

        Returns:
            Number of consecutive days (including today) with study time.

        Example:
            >>> aggregator.current_streak(sessions, date(2024, 3, 5))
            3
        """
        studied = {day for day, total in self.aggregate(sessions).items() if total > 0}
        streak = 0
        current = today
        while current.isoformat() in studied:
            streak += 1
            current -= timedelta(days=1)
        return streak
