"""
Study timer state machine.

PURPOSE: Start and end study sessions for the current task.
AI CONTEXT: The only code that changes TrackerState.timer.

STATES:
    Idle ──start(task)──► Running(task, start) ──end()──► Idle
    start() while Running and end() while Idle are silent no-ops.

PERSISTENCE CONTRACT:
end() appends the new session to the working collection first, then asks
the store for a durable write. A failed write is logged and reported but
never rolls the append back; the session is queued in
TrackerState.pending_writes and retried before the next write.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .clock import SystemClock
from .errors import StorageError, ValidationError
from .models import Origin, RunningTimer, Session, TrackerState, minutes_between
from .results import ServiceResult

if TYPE_CHECKING:
    from .clock import Clock
    from .merger import SessionMerger
    from .storage import SessionStore

__all__ = ["TimerController"]

logger = logging.getLogger(__name__)


class TimerController:
    """
    Idle/Running state machine producing local sessions.

    At most one timer runs at a time; transitions are serialized through
    start() and end(), so two sessions can never be open concurrently.
    """

    def __init__(
        self,
        state: TrackerState,
        merger: SessionMerger,
        store: SessionStore,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the controller around the owned tracker state.

        Args:
            state: Shared TrackerState; its ``timer`` field is the machine's
                state (None = Idle).
            merger: Append path into the working collection.
            store: Durable store receiving each finished session.
            clock: Source of the current instant. Default: SystemClock
        """
        self.state = state
        self.merger = merger
        self.store = store
        self.clock: Clock = clock or SystemClock()

    @property
    def is_running(self) -> bool:
        return self.state.timer is not None

    def elapsed_minutes(self) -> float:
        """Minutes since the running timer started; 0.0 when idle."""
        timer = self.state.timer
        if timer is None:
            return 0.0
        return max(0.0, minutes_between(timer.start, self.clock.now()))

    def start(self, task: str) -> ServiceResult:
        """
        Start timing a session for the given task.

        Args:
            task: Task label; required.

        Returns:
            ServiceResult. Empty task: failure with ValidationError, state
            unchanged. Already running: success with changed=False.

        Example:
            >>> timer.start("Organic chemistry").data["task"]
            'Organic chemistry'
        """
        if self.state.timer is not None:
            logger.debug("start() ignored: timer already running")
            return ServiceResult(
                success=True,
                message=f"Already studying: {self.state.timer.task}",
                data={"changed": False, **self._timer_data(self.state.timer)},
            )

        label = (task or "").strip()
        if not label:
            return ServiceResult.failure(
                "Cannot start session",
                ValidationError("Enter a task before starting a study session"),
            )

        self.state.timer = RunningTimer(task=label, start=self.clock.now())
        logger.info(f"Study session started: {label}")
        return ServiceResult(
            success=True,
            message=f"Started studying: {label}",
            data={"changed": True, **self._timer_data(self.state.timer)},
        )

    def end(self) -> ServiceResult:
        """
        End the running session, record it, and request a durable write.

        Returns:
            ServiceResult. Idle: success with changed=False. Otherwise
            success with the new session in data; when the durable write
            failed, data["persisted"] is False and ``error`` explains why.
        """
        timer = self.state.timer
        if timer is None:
            logger.debug("end() ignored: timer idle")
            return ServiceResult(
                success=True,
                message="No study session is running",
                data={"changed": False},
            )

        # Clamp so a clock that moved backwards never yields end < start.
        end = max(self.clock.now(), timer.start)
        session = Session.create(
            task=timer.task,
            start=timer.start,
            end=end,
            origin=Origin.LOCAL,
        )
        self.merger.append(self.state, session)
        self.state.timer = None
        logger.info(f"Study session ended: {session.task} ({session.duration:.2f} min)")

        saved, error = self._persist(session)
        data = {"changed": True, "persisted": error is None, "session": saved.to_dict()}
        data["session"]["ref"] = saved.ref

        if error is not None:
            return ServiceResult(
                success=True,
                message="Session recorded but not saved; it will be retried",
                data=data,
                error=str(error),
                exception=error,
            )
        return ServiceResult(
            success=True,
            message=f"Studied {session.display_task} for {session.duration:.2f} minutes",
            data=data,
        )

    def flush_pending(self) -> int:
        """
        Retry durable writes that failed earlier, oldest first.

        Stops at the first failure and keeps the rest queued.

        Returns:
            Number of sessions persisted by this call.
        """
        written = 0
        while self.state.pending_writes:
            session = self.state.pending_writes[0]
            try:
                saved = self.store.append(session)
            except StorageError as e:
                logger.warning(f"Retry of pending write failed: {e}")
                break
            self.state.pending_writes.pop(0)
            self._adopt_identity(session, saved)
            written += 1
        if written:
            logger.info(f"Persisted {written} pending session(s)")
        return written

    def _persist(self, session: Session) -> tuple[Session, StorageError | None]:
        self.flush_pending()
        if self.state.pending_writes:
            # Keep write order: an earlier session is still unsaved.
            self.state.pending_writes.append(session)
            return session, StorageError("Earlier sessions are still waiting to be saved")
        try:
            saved = self.store.append(session)
        except StorageError as e:
            logger.error(f"Failed to save session: {e}")
            self.state.pending_writes.append(session)
            return session, e
        self._adopt_identity(session, saved)
        return saved, None

    def _adopt_identity(self, session: Session, saved: Session) -> None:
        if saved is not session and saved.id is not None:
            self.merger.replace(self.state, session, saved)

    @staticmethod
    def _timer_data(timer: RunningTimer) -> dict[str, str]:
        return {"task": timer.task, "start": timer.start.isoformat()}
