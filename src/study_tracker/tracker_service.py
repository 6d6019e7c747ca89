"""
Tracker Service - application layer for Study Session Tracker.

PURPOSE: Wire sources, state and components; expose every user action.
AI CONTEXT: This is the shared service layer used by both cli.py and web/.

ARCHITECTURE:
    CLI commands ──┐                  ┌──► TimerController ──► SessionStore
                   ├──► TrackerService ┼──► SessionMerger   ──► SessionStore
    Web routes   ──┘                  └──► DateAggregator
                         ▲
                  Importer + SessionStore (load)

Every public method returns a ServiceResult; taxonomy errors raised below
this layer are converted here and never escape to the surfaces.

USAGE:
    from .tracker_service import TrackerService
    service = TrackerService()
    service.load()
    result = service.start_session("Linear algebra")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .aggregation import DateAggregator
from .clock import SystemClock
from .config import Config
from .errors import (
    ParseError,
    SessionNotFoundError,
    StorageError,
    StudyTrackerError,
    ValidationError,
)
from .importer import Importer
from .merger import SessionMerger
from .models import Session, TrackerState, normalize_date
from .remote import RemoteSessionStore
from .results import ServiceResult
from .storage import ActiveTimerStore, LocalSessionStore
from .timer import TimerController

if TYPE_CHECKING:
    from datetime import date

    from .clock import Clock
    from .storage import SessionStore

__all__ = ["TrackerService", "build_store", "describe_session"]

logger = logging.getLogger(__name__)


def build_store(backend: str | None = None, storage_dir: str | None = None) -> SessionStore:
    """
    Build the durable store selected by configuration.

    Args:
        backend: "local" or "remote". Default: Config.get_backend()
        storage_dir: Directory for the local backend.
            Default: Config.get_storage_dir()

    Returns:
        LocalSessionStore or RemoteSessionStore.

    Raises:
        StorageError: If the remote backend is selected but no URL is set.
    """
    backend = backend or Config.get_backend()
    if backend == "remote":
        return RemoteSessionStore(
            Config.get_remote_url(),
            api_key=Config.get_remote_key(),
            table=Config.get_remote_table(),
        )
    return LocalSessionStore(storage_dir)


def describe_session(session: Session) -> dict[str, Any]:
    """Serialize a session for the surfaces, with its ref and display fields."""
    data = session.to_dict()
    data["ref"] = session.ref
    data["display_task"] = session.display_task
    data["deletable"] = session.is_deletable
    return data


class TrackerService:
    """
    Core study tracking service.

    Owns the TrackerState and the components operating on it. Used by both
    cli.py (one action per process) and the web dashboard (long-lived).

    OPERATIONS:
    - load: Merge the import file and the durable store into the state
    - start_session / end_session: Drive the timer
    - status: Timer state and headline totals
    - list_sessions / select_date: Sessions and totals, optionally per day
    - calendar: Per-date totals with intensity buckets
    - delete_session: Origin-protected delete by ref
    - reset_all: Destructive clear (requires confirmation)
    - retry_pending: Re-attempt failed durable writes
    - import_preview: Validate an import file without merging it
    - report: Plain-text summary

    Example:
        >>> service = TrackerService(store=InMemoryStore())
        >>> service.load()
        >>> service.start_session("Read chapter 4").success
        True
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        importer: Importer | None = None,
        timer_store: ActiveTimerStore | None = None,
        clock: Clock | None = None,
        aggregator: DateAggregator | None = None,
        import_file: str | None = None,
    ) -> None:
        """Initialize the service with its collaborators.

        All dependencies are optional to support easy testing (inject
        fakes) and simple bootstrapping (defaults read Config).

        Args:
            store: Durable session store. Default: build_store()
            importer: Legacy record importer. Default: Importer()
            timer_store: Running-timer persistence. Default: ActiveTimerStore()
            clock: Source of the current instant. Default: SystemClock()
            aggregator: Per-date calculator. Default: DateAggregator()
            import_file: Legacy import file merged on load.
                Default: Config.get_import_file()

        Raises:
            StorageError: If the configured remote backend has no URL.
        """
        self.store: SessionStore = store if store is not None else build_store()
        self.importer = importer or Importer()
        self.timer_store = timer_store or ActiveTimerStore()
        self.clock: Clock = clock or SystemClock()
        self.aggregator = aggregator or DateAggregator()
        self.import_file = import_file if import_file is not None else Config.get_import_file()

        self.state = TrackerState()
        self.merger = SessionMerger(self.store)
        self.timer = TimerController(self.state, self.merger, self.store, self.clock)

    def today(self) -> date:
        return self.clock.now().date()

    # =========================================================================
    # LOAD
    # =========================================================================

    def load(self) -> ServiceResult:
        """
        Seed the working collection from the configured sources.

        Merge order is imported first, then the durable store. A source
        that fails to load is logged and contributes nothing; the other
        source is still merged.

        Returns:
            ServiceResult, always successful. ``error`` lists the sources
            that failed.
        """
        problems: list[str] = []

        imported: list[Session] = []
        if self.import_file:
            try:
                imported = self.importer.import_records(self.importer.load_file(self.import_file))
            except (StorageError, ParseError) as e:
                logger.error(f"Import source unavailable: {e}")
                problems.append(str(e))

        persisted: list[Session] = []
        try:
            persisted = self.store.load()
        except StorageError as e:
            logger.error(f"Session store unavailable: {e}")
            problems.append(str(e))

        self.merger.seed(self.state, imported, persisted)

        try:
            self.state.timer = self.timer_store.load()
        except StorageError as e:
            logger.error(f"Running timer unavailable: {e}")
            problems.append(str(e))

        try:
            pending = self.timer_store.load_pending()
        except StorageError as e:
            logger.error(f"Pending sessions unavailable: {e}")
            problems.append(str(e))
        else:
            for session in pending:
                self.merger.append(self.state, session)
                self.state.pending_writes.append(session)
            if pending:
                logger.warning(f"{len(pending)} session(s) from an earlier run are still unsaved")

        return ServiceResult(
            success=True,
            message=f"Loaded {len(self.state.sessions)} session(s)",
            data={
                "imported": len(imported),
                "persisted": len(persisted),
                "running": self.timer.is_running,
                "pending": len(self.state.pending_writes),
            },
            error="; ".join(problems) or None,
        )

    # =========================================================================
    # TIMER
    # =========================================================================

    def start_session(self, task: str) -> ServiceResult:
        """
        Start the study timer for a task.

        The running timer is also written to the active-timer file so a
        later process (e.g. the next CLI invocation) can end it.

        Args:
            task: Task label; required.

        Returns:
            ServiceResult from TimerController.start(). A failed timer-file
            write keeps the timer running in memory and sets ``error``.
        """
        result = self.timer.start(task)
        if result.success and result.data and result.data.get("changed"):
            try:
                self.timer_store.save(self.state.timer)
            except StorageError as e:
                logger.error(f"Failed to persist running timer: {e}")
                result.error = str(e)
                result.exception = e
        return result

    def end_session(self) -> ServiceResult:
        """
        End the running timer and record the session.

        An unsaved session is written to the pending file before the
        timer file is removed. If neither write succeeds the timer file
        is kept, so the session can still be ended by a later process.

        Returns:
            ServiceResult from TimerController.end(); data["session"] holds
            the new session and data["persisted"] whether it reached the
            durable store.
        """
        result = self.timer.end()
        if result.data and result.data.get("changed"):
            if not self._save_pending(result) and not result.data["persisted"]:
                logger.warning("Keeping running timer file; the session exists only in memory")
                return result
            try:
                self.timer_store.clear()
            except StorageError as e:
                logger.error(f"Failed to clear running timer: {e}")
                if result.error is None:
                    result.error = str(e)
                    result.exception = e
        return result

    def retry_pending(self) -> ServiceResult:
        """Re-attempt durable writes that failed earlier."""
        written = self.timer.flush_pending()
        remaining = len(self.state.pending_writes)
        if remaining:
            result = ServiceResult.failure(
                f"Saved {written} session(s); {remaining} still pending",
                StorageError(f"{remaining} session(s) could not be saved"),
                data={"written": written, "pending": remaining},
            )
        else:
            result = ServiceResult(
                success=True,
                message=f"Saved {written} pending session(s)",
                data={"written": written, "pending": 0},
            )
        if written:
            self._save_pending(result)
        return result

    def _save_pending(self, result: ServiceResult) -> bool:
        """
        Mirror the pending-write queue to disk.

        A failure is logged and attached to ``result`` unless it already
        carries an error.

        Returns:
            True when the queue was written.
        """
        try:
            self.timer_store.save_pending(self.state.pending_writes)
        except StorageError as e:
            logger.error(f"Failed to persist pending sessions: {e}")
            if result.error is None:
                result.error = str(e)
                result.exception = e
            return False
        return True

    def status(self) -> ServiceResult:
        """
        Report timer state and headline totals.

        Returns:
            ServiceResult with data keys: running, task, start,
            elapsed_minutes, today, today_minutes, today_intensity,
            total_minutes, streak, pending_writes, selected_date.
        """
        today = self.today()
        today_minutes = self.aggregator.total_for_date(self.state.sessions, today)
        timer = self.state.timer
        data: dict[str, Any] = {
            "running": timer is not None,
            "task": timer.task if timer else None,
            "start": timer.start.isoformat() if timer else None,
            "elapsed_minutes": self.timer.elapsed_minutes(),
            "today": today.isoformat(),
            "today_minutes": today_minutes,
            "today_intensity": str(self.aggregator.classify(today_minutes)),
            "total_minutes": self.aggregator.total_minutes(self.state.sessions),
            "streak": self.aggregator.current_streak(self.state.sessions, today),
            "pending_writes": len(self.state.pending_writes),
            "selected_date": self.state.selected_date,
        }
        message = f"Studying: {timer.task}" if timer else "Idle"
        return ServiceResult(success=True, message=message, data=data)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_sessions(self, day: Any = None) -> ServiceResult:
        """
        List sessions, optionally restricted to one calendar day.

        Args:
            day: Date in any form normalize_date() accepts; None lists the
                whole working collection.

        Returns:
            ServiceResult with data["sessions"] (described sessions) and
            data["total_minutes"]. With a day, also data["date"] and
            data["intensity"]. An invalid day fails with ParseError.
        """
        if day is None:
            sessions = list(self.state.sessions)
            return ServiceResult(
                success=True,
                message=f"{len(sessions)} session(s)",
                data={
                    "sessions": [describe_session(s) for s in sessions],
                    "total_minutes": self.aggregator.total_minutes(sessions),
                },
            )

        try:
            key = normalize_date(day)
        except ParseError as e:
            return ServiceResult.failure("Invalid date", e)

        sessions = self.aggregator.sessions_for_date(self.state.sessions, key)
        total = self.aggregator.total_for_date(self.state.sessions, key)
        return ServiceResult(
            success=True,
            message=f"{len(sessions)} session(s) on {key}",
            data={
                "date": key,
                "sessions": [describe_session(s) for s in sessions],
                "total_minutes": total,
                "intensity": str(self.aggregator.classify(total)),
            },
        )

    def select_date(self, day: Any) -> ServiceResult:
        """Select a calendar day and return its sessions and total."""
        result = self.list_sessions(day)
        if result.success and result.data:
            self.state.selected_date = result.data["date"]
        return result

    def calendar(self) -> ServiceResult:
        """
        Per-date totals with intensity buckets, sorted by date.

        Returns:
            ServiceResult with data["days"] (date, total_minutes, intensity),
            data["total_minutes"] and data["streak"].
        """
        totals = self.aggregator.aggregate(self.state.sessions)
        days = [
            {
                "date": day,
                "total_minutes": totals[day],
                "intensity": str(self.aggregator.classify(totals[day])),
            }
            for day in sorted(totals)
        ]
        return ServiceResult(
            success=True,
            message=f"{len(days)} day(s) with study time",
            data={
                "days": days,
                "total_minutes": self.aggregator.total_minutes(self.state.sessions),
                "streak": self.aggregator.current_streak(self.state.sessions, self.today()),
            },
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def delete_session(self, ref: str) -> ServiceResult:
        """
        Delete a session by ref, subject to origin protection.

        Args:
            ref: Session.ref as shown by list_sessions().

        Returns:
            ServiceResult; failures carry SessionNotFoundError,
            PermissionDeniedError or StorageError.
        """
        session = self.merger.find(self.state, ref)
        if session is None:
            return ServiceResult.failure(
                "Session not found",
                SessionNotFoundError(f"No session with ref {ref}"),
            )
        queued = len(self.state.pending_writes)
        result = self.merger.request_delete(self.state, session)
        if len(self.state.pending_writes) != queued:
            self._save_pending(result)
        return result

    def reset_all(self, confirm: bool = False) -> ServiceResult:
        """
        Delete every persisted session and clear local state.

        WARNING: Destructive. Imported sessions reappear on the next load
        because the import file is never modified.

        Args:
            confirm: Must be True; otherwise nothing happens.

        Returns:
            ServiceResult. Unconfirmed: failure with ValidationError. Store
            failure: failure with StorageError and state unchanged.
        """
        if not confirm:
            return ServiceResult.failure(
                "Reset not confirmed",
                ValidationError("Reset deletes all sessions; confirmation is required"),
            )

        try:
            self.store.clear()
        except StorageError as e:
            logger.error(f"Reset failed: {e}")
            return ServiceResult.failure("Failed to reset data", e)

        cleared = len(self.state.sessions)
        self.merger.seed(self.state)
        self.state.pending_writes.clear()
        self.state.timer = None
        self.state.selected_date = None

        result = ServiceResult(
            success=True,
            message=f"Reset complete; removed {cleared} session(s)",
            data={"cleared": cleared},
        )
        try:
            self.timer_store.clear()
        except StorageError as e:
            logger.error(f"Failed to clear running timer: {e}")
            result.error = str(e)
            result.exception = e
        self._save_pending(result)
        logger.info("All study data reset")
        return result

    # =========================================================================
    # IMPORT & REPORTING
    # =========================================================================

    def import_preview(self, path: str) -> ServiceResult:
        """
        Validate an import file and report kept and skipped records.

        The working collection is not changed.

        Args:
            path: Path to the converter's JSON array.

        Returns:
            ServiceResult with data["imported"], data["skipped"] (index and
            reason per dropped record) and data["total_minutes"].
        """
        try:
            report = self.importer.import_with_report(self.importer.load_file(path))
        except StudyTrackerError as e:
            return ServiceResult.failure("Cannot import file", e)

        data = report.to_dict()
        data["total_minutes"] = self.aggregator.total_minutes(report.sessions)
        return ServiceResult(
            success=True,
            message=f"{len(report.sessions)} of {report.total} record(s) importable",
            data=data,
        )

    def report(self) -> ServiceResult:
        """Generate a plain-text study summary."""
        sessions = self.state.sessions
        totals = self.aggregator.aggregate(sessions)
        total = self.aggregator.total_minutes(sessions)
        streak = self.aggregator.current_streak(sessions, self.today())

        lines = [
            "STUDY SUMMARY",
            "=" * 40,
            f"Sessions:        {len(sessions)}",
            f"Days studied:    {len(totals)}",
            f"Total time:      {total:.2f} min ({total / 60:.1f}h)",
            f"Current streak:  {streak} day(s)",
        ]
        if self.state.pending_writes:
            lines.append(f"Unsaved:         {len(self.state.pending_writes)} session(s)")
        if totals:
            lines += ["", "DAILY TOTALS", "-" * 40]
            for day in sorted(totals):
                intensity = self.aggregator.classify(totals[day])
                lines.append(f"{day}  {totals[day]:>8.2f} min  {intensity}")

        return ServiceResult(
            success=True,
            message="Report generated",
            data={"report": "\n".join(lines)},
        )
