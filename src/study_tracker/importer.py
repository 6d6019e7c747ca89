"""
Legacy import for Study Session Tracker.

PURPOSE: Convert spreadsheet-export records into canonical Session values.
AI CONTEXT: Input is the JSON array written by the external spreadsheet
converter; output feeds SessionMerger as the first source.

RECORD SHAPE:
    {"Date": "YYYY/MM/DD" | "YYYY-MM-DD", "Task": str,
     "Start": "hh:mm A", "End": "hh:mm A", "Duration_minutes"?: number | str}

ALGORITHM (per record):
1. Normalize Date to YYYY-MM-DD; drop the record on failure
2. Combine the date with Start and End into two instants
3. If End is earlier than Start, the session crossed midnight:
   advance End by one day
4. Drop the record if either clock time fails to parse
5. Use Duration_minutes when supplied, else compute from the instants
6. Tag the Session with origin=imported

Bad records are logged and skipped; they never abort the batch. Output
order matches input order.

USAGE:
    importer = Importer()
    sessions = importer.import_records(importer.load_file("tracker.json"))
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from .config import Config
from .errors import ParseError, StorageError, ValidationError
from .filesystem import RealFileSystem
from .models import Origin, Session, normalize_date

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["Importer", "ImportReport", "SkippedRecord", "parse_clock_time"]

logger = logging.getLogger(__name__)


def parse_clock_time(value: Any) -> time:
    """
    Parse a clock-time string such as "09:30 AM" or "21:30".

    Args:
        value: Clock-time string.

    Returns:
        datetime.time.

    Raises:
        ParseError: If no supported format matches (this includes the
            converter's "No Start Time"/"No End Time" placeholders).

    Example:
        >>> parse_clock_time("11:30 PM")
        datetime.time(23, 30)
    """
    if not isinstance(value, str) or not value.strip():
        raise ParseError(f"Invalid clock time: {value!r}")
    text = value.strip().upper()
    for fmt in Config.IMPORT_TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ParseError(f"Invalid clock time: {value!r}")


@dataclass(frozen=True)
class SkippedRecord:
    """A raw record the importer dropped, with the reason."""

    index: int
    reason: str
    raw: Any = None


@dataclass
class ImportReport:
    """Sessions produced by an import plus the records that were dropped."""

    sessions: list[Session] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.sessions) + len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "imported": len(self.sessions),
            "skipped": [{"index": s.index, "reason": s.reason} for s in self.skipped],
        }


class Importer:
    """
    Converter from legacy day/task/time records to Session values.

    Stateless apart from the injected filesystem used by load_file().
    """

    def __init__(self, filesystem: FileSystem | None = None) -> None:
        self._fs: FileSystem = filesystem or RealFileSystem()

    def load_file(self, path: str) -> list[Any]:
        """
        Read the converter's JSON array from disk.

        Args:
            path: Path to the import file.

        Returns:
            The raw records (not yet validated).

        Raises:
            StorageError: If the file cannot be read.
            ParseError: If the content is not a JSON array.
        """
        try:
            content = self._fs.read_text(path)
        except OSError as e:
            logger.error(f"Cannot read import file {path}: {e}")
            raise StorageError(f"Cannot read import file {path}: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in import file {path}: {e}")
            raise ParseError(f"Invalid JSON in import file {path}: {e}") from e

        if not isinstance(data, list):
            raise ParseError(f"Import file {path} must contain a JSON array")
        return data

    def import_records(self, records: Iterable[Any]) -> list[Session]:
        """
        Convert raw records to imported Sessions, dropping invalid ones.

        Args:
            records: Raw record dicts.

        Returns:
            Valid sessions, order-preserving.

        Example:
            >>> Importer().import_records([{"Date": "2024/03/05", "Task": "Read",
            ...     "Start": "09:00 AM", "End": "10:30 AM"}])[0].duration
            90.0
        """
        return self.import_with_report(records).sessions

    def import_with_report(self, records: Iterable[Any]) -> ImportReport:
        """
        Convert raw records and report what was dropped and why.

        Each drop is logged as a warning; processing continues with the
        next record.

        Args:
            records: Raw record dicts.

        Returns:
            ImportReport with kept sessions and skipped records.
        """
        report = ImportReport()
        for index, raw in enumerate(records):
            try:
                report.sessions.append(self.convert(raw))
            except (ParseError, ValidationError) as e:
                logger.warning(f"Skipping import record #{index}: {e}")
                report.skipped.append(SkippedRecord(index=index, reason=str(e), raw=raw))

        if report.skipped:
            logger.warning(
                f"Imported {len(report.sessions)} of {report.total} record(s); "
                f"{len(report.skipped)} skipped"
            )
        else:
            logger.info(f"Imported {len(report.sessions)} record(s)")
        return report

    def convert(self, raw: Any) -> Session:
        """
        Convert one raw record.

        Args:
            raw: Record dict.

        Returns:
            Session with origin=imported.

        Raises:
            ParseError: If the date or either clock time is invalid, or the
                record is not an object.
        """
        if not isinstance(raw, dict):
            raise ParseError(f"Record is not an object: {raw!r}")

        day = normalize_date(raw.get("Date"))
        day_value = datetime.strptime(day, "%Y-%m-%d").date()
        start = datetime.combine(day_value, parse_clock_time(raw.get("Start")))
        end = datetime.combine(day_value, parse_clock_time(raw.get("End")))
        if end < start:
            end += timedelta(days=1)

        task = str(raw.get("Task") or "").strip()
        if task in Config.IMPORT_PLACEHOLDER_TASKS:
            task = ""

        return Session.create(
            task=task,
            start=start,
            end=end,
            origin=Origin.IMPORTED,
            date=day,
            duration=self._explicit_duration(raw),
        )

    @staticmethod
    def _explicit_duration(raw: dict[str, Any]) -> float | None:
        """
        Read the authoritative Duration_minutes, if usable.

        Non-numeric or negative values are ignored with a warning so the
        duration falls back to the one computed from the instants.
        """
        value = raw.get("Duration_minutes")
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if isinstance(value, bool):
            logger.warning(f"Ignoring non-numeric Duration_minutes {value!r}")
            return None
        try:
            minutes = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric Duration_minutes {value!r}")
            return None
        if minutes < 0 or not math.isfinite(minutes):
            logger.warning(f"Ignoring invalid Duration_minutes {value!r}")
            return None
        return minutes
