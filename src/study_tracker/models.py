"""
Data models for Study Session Tracker.

PURPOSE: Type-safe dataclasses representing core domain entities.
AI CONTEXT: These models define the data schema for sessions and timer state.

MODEL HIERARCHY:
- Session: One completed interval of studying (immutable value)
- Origin: Provenance tag deciding whether a Session may be deleted
- Intensity: Heat-map bucket for one calendar day
- RunningTimer: Payload of the timer's Running state
- TrackerState: The owned, mutable application state (working collection)

SERIALIZATION:
Session and RunningTimer have to_dict() for JSON persistence and from_dict()
for loading. Instants are naive local wall-clock datetimes written in ISO 8601.
from_dict() also accepts the legacy blob written by the legacy mobile app,
whose instants carry a UTC "Z" suffix and whose durations are strings.

USAGE:
    session = Session.create("Calculus", start, end)
    session.date        # '2024-03-05'
    session.is_deletable  # True for Origin.LOCAL only
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field, replace
from datetime import date as date_type
from datetime import datetime
from enum import StrEnum
from typing import Any

from .config import Config
from .errors import ParseError, ValidationError

__all__ = [
    "Origin",
    "Intensity",
    "Session",
    "RunningTimer",
    "TrackerState",
    "normalize_date",
    "parse_instant",
    "minutes_between",
]


def normalize_date(value: Any) -> str:
    """
    Normalize a calendar-day value to the canonical YYYY-MM-DD key.

    Accepts the two forms the import file uses (YYYY/MM/DD and YYYY-MM-DD),
    date and datetime objects, and full ISO datetime strings. Normalizing
    an already-canonical key returns it unchanged.

    Business context: Every session entering the working collection must
    carry a valid date key, because aggregation and the calendar are keyed
    by it. Values that cannot be normalized are dropped by callers.

    Args:
        value: str, date or datetime.

    Returns:
        Date string in YYYY-MM-DD form.

    Raises:
        ParseError: If the value is empty, of an unsupported type, or not a
            real calendar date (e.g. '2024/02/30').

    Example:
        >>> normalize_date("2024/03/05")
        '2024-03-05'
        >>> normalize_date("2024-03-05")
        '2024-03-05'
    """
    if isinstance(value, datetime):
        return parse_instant(value).date().isoformat()
    if isinstance(value, date_type):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        raise ParseError(f"Invalid date: {value!r}")

    text = value.strip()
    for fmt in Config.IMPORT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    # Full ISO timestamps (e.g. a start instant used as a date)
    if "T" in text:
        return parse_instant(text).date().isoformat()

    raise ParseError(f"Invalid date: {value!r}")


def parse_instant(value: Any) -> datetime:
    """
    Parse an instant into a naive local wall-clock datetime.

    Timezone-aware values (including ISO strings with a 'Z' suffix, as
    written by the legacy mobile app) are converted to the
    local timezone and made naive.

    Args:
        value: ISO 8601 string or datetime.

    Returns:
        Naive datetime in local time.

    Raises:
        ParseError: If the value cannot be parsed.

    Example:
        >>> parse_instant("2024-03-05T09:00:00")
        datetime.datetime(2024, 3, 5, 9, 0)
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ParseError(f"Invalid instant: {value!r}") from e
    else:
        raise ParseError(f"Invalid instant: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes from start to end, rounded to two decimals."""
    return round((end - start).total_seconds() / 60.0, 2)


class Origin(StrEnum):
    """
    Provenance of a session.

    VALUES:
    - local: Created by this instance's timer; the only deletable origin
    - imported: Read from the legacy spreadsheet export
    - remote: Fetched from the remote backend
    """

    LOCAL = "local"
    IMPORTED = "imported"
    REMOTE = "remote"


class Intensity(StrEnum):
    """Heat-map bucket for the total study time of one calendar day."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Session:
    """
    One completed interval of studying.

    INVARIANTS:
    - end is never earlier than start
    - duration is non-negative minutes at two-decimal precision
    - date is always a valid YYYY-MM-DD key
    - immutable; the only lifecycle change is whole-record removal

    IDENTITY:
    - id: assigned by the remote backend on insert, None otherwise
    - ref: id when present, else a stable digest of the session's values
    """

    start: datetime
    end: datetime
    duration: float
    task: str
    date: str
    origin: Origin = Origin.LOCAL
    id: str | None = None

    @classmethod
    def create(
        cls,
        task: str,
        start: datetime,
        end: datetime,
        *,
        origin: Origin = Origin.LOCAL,
        date: Any = None,
        duration: float | None = None,
        id: str | None = None,  # noqa: A002
    ) -> Session:
        """
        Factory enforcing the session invariants.

        Business context: Locally produced sessions always recompute their
        duration from the instants. Imported sessions may pass an
        authoritative duration from the spreadsheet, which wins.

        Args:
            task: Free-text label (may be empty for imported records).
            start: Start instant.
            end: End instant; must not precede start.
            origin: Provenance tag.
            date: Optional calendar-day key; derived from start when None.
            duration: Optional authoritative duration in minutes.
            id: Optional backend identity.

        Returns:
            New Session.

        Raises:
            ValidationError: If end precedes start or duration is negative or not finite.
            ParseError: If a supplied date cannot be normalized.

        Example:
            >>> s = Session.create("Read", datetime(2024, 3, 5, 9), datetime(2024, 3, 5, 10, 30))
            >>> s.duration, s.date
            (90.0, '2024-03-05')
        """
        if end < start:
            raise ValidationError(f"Session end {end.isoformat()} precedes start {start.isoformat()}")

        if duration is None:
            minutes = minutes_between(start, end)
        else:
            minutes = round(float(duration), 2)
            if not math.isfinite(minutes) or minutes < 0:
                raise ValidationError(f"Duration must be a finite, non-negative number: {duration}")

        day = normalize_date(date) if date is not None else start.date().isoformat()

        return cls(
            start=start,
            end=end,
            duration=minutes,
            task=task,
            date=day,
            origin=Origin(origin),
            id=id,
        )

    @property
    def display_task(self) -> str:
        """Task label for display; never stored."""
        return self.task or Config.NO_TASK_LABEL

    @property
    def is_deletable(self) -> bool:
        """Only sessions created by this instance's timer may be deleted."""
        return self.origin is Origin.LOCAL

    @property
    def ref(self) -> str:
        """
        Stable identity used by the CLI and web surfaces.

        Returns the backend id when one was assigned. Otherwise a 12-char
        SHA-1 digest of origin, instants and task, which is stable across
        process restarts because sessions are immutable.

        Example:
            >>> session.ref
            '3f2a9c0d1b7e'
        """
        if self.id is not None:
            return str(self.id)
        key = f"{self.origin}|{self.start.isoformat()}|{self.end.isoformat()}|{self.task}"
        return hashlib.sha1(key.encode("utf-8"), usedforsecurity=False).hexdigest()[:12]

    def same_identity(self, other: Session) -> bool:
        """
        Check whether two sessions denote the same record.

        Sessions with backend ids compare by id; otherwise by value,
        ignoring a one-sided id.
        """
        if self.id is not None and other.id is not None:
            return str(self.id) == str(other.id)
        return replace(self, id=None) == replace(other, id=None)

    def with_id(self, session_id: str | None) -> Session:
        """Return a copy carrying the backend-assigned identity."""
        return replace(self, id=session_id)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize session to dictionary for JSON storage.

        Returns:
            Dict with ISO instants and the origin as its string value.

        Example:
            >>> session.to_dict()["origin"]
            'local'
        """
        return {
            "id": self.id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration": self.duration,
            "task": self.task,
            "date": self.date,
            "origin": str(self.origin),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], origin: Origin | None = None) -> Session:
        """
        Deserialize session from dictionary.

        Handles both the canonical shape written by to_dict() and the legacy
        blob of the legacy mobile app ({start, end, duration: "12.34"} with no
        task, date or origin). A stored duration is retained as written;
        a missing one is recomputed from the instants.

        Args:
            data: Stored session dict.
            origin: Forces the origin (used for rows fetched from a remote
                backend). When None, the stored origin is used, defaulting to
                local for legacy records.

        Returns:
            Session instance.

        Raises:
            ParseError: If required fields are missing or invalid.

        Example:
            >>> Session.from_dict({"start": "2024-03-05T09:00:00",
            ...                    "end": "2024-03-05T09:45:00", "duration": "45.00"}).duration
            45.0
        """
        try:
            start = parse_instant(data["start"])
            end = parse_instant(data["end"])
            raw_duration = data.get("duration")
            duration = float(raw_duration) if raw_duration not in (None, "") else None
            resolved_origin = origin or Origin(data.get("origin") or Origin.LOCAL)
            session_id = data.get("id")
            return cls.create(
                task=data.get("task") or "",
                start=start,
                end=end,
                origin=resolved_origin,
                date=data.get("date") or None,
                duration=duration,
                id=str(session_id) if session_id is not None else None,
            )
        except ParseError:
            raise
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise ParseError(f"Invalid session record: {e}") from e


@dataclass(frozen=True)
class RunningTimer:
    """Payload of the timer's Running state: the task and when it started."""

    task: str
    start: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"task": self.task, "start": self.start.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunningTimer:
        try:
            return cls(task=str(data["task"]), start=parse_instant(data["start"]))
        except (KeyError, TypeError) as e:
            raise ParseError(f"Invalid timer record: {e}") from e


@dataclass
class TrackerState:
    """
    Explicit application state owned by the service layer.

    Replaces per-screen UI state: the working collection, the timer state
    (None means Idle), the calendar date the user selected, and sessions
    whose durable write failed and awaits retry.

    Only TimerController changes ``timer``; only SessionMerger changes
    ``sessions``.
    """

    sessions: list[Session] = field(default_factory=list)
    timer: RunningTimer | None = None
    selected_date: str | None = None
    pending_writes: list[Session] = field(default_factory=list)
