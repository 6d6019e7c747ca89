"""
Working-collection management for Study Session Tracker.

PURPOSE: Merge session sources and guard deletion.
AI CONTEXT: The only code that changes TrackerState.sessions.

MERGE ORDER:
    imported ──┐
    local    ──┼──► merge() ──► TrackerState.sessions
    remote   ──┘
Sources are concatenated as given; nothing is deduplicated. A session that
is both imported and persisted locally appears twice.

DELETE AUTHORIZATION:
    request_delete(session)
      origin != local  ──► PermissionDeniedError, store never called
      origin == local  ──► store.delete ──ok──► remove from working collection
                                        └─err─► StorageError, nothing removed
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from .errors import PermissionDeniedError, SessionNotFoundError, StorageError
from .models import Session, TrackerState
from .results import ServiceResult

if TYPE_CHECKING:
    from .storage import SessionStore

__all__ = ["SessionMerger"]

logger = logging.getLogger(__name__)


class SessionMerger:
    """
    Owner of the working collection's append and delete paths.

    The merger holds the durable store used for authorized deletes; the
    collection itself lives in the TrackerState passed to each call.
    """

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    @staticmethod
    def merge(*sources: Iterable[Session]) -> list[Session]:
        """
        Concatenate session sources in the order given.

        No deduplication is performed.

        Args:
            *sources: Session sequences (typically imported, local, remote).

        Returns:
            New list holding every session from every source.

        Example:
            >>> len(SessionMerger.merge([a], [a, b]))
            3
        """
        merged: list[Session] = []
        for source in sources:
            merged.extend(source)
        return merged

    def seed(self, state: TrackerState, *sources: Iterable[Session]) -> None:
        """Replace the working collection with the merge of the sources."""
        state.sessions = self.merge(*sources)
        logger.info(f"Working collection seeded with {len(state.sessions)} session(s)")

    def append(self, state: TrackerState, session: Session) -> None:
        """Append one session to the working collection."""
        state.sessions.append(session)

    def replace(self, state: TrackerState, old: Session, new: Session) -> None:
        """
        Swap a session for its identified copy (same record, id assigned).

        Used after a remote insert returns the backend id.
        """
        for index, existing in enumerate(state.sessions):
            if existing is old:
                state.sessions[index] = new
                return

    def find(self, state: TrackerState, ref: str) -> Session | None:
        """
        Look a session up by its ref.

        Args:
            state: Tracker state holding the working collection.
            ref: Session.ref (backend id or value digest).

        Returns:
            First matching session, or None.
        """
        for session in state.sessions:
            if session.ref == ref:
                return session
        return None

    def request_delete(self, state: TrackerState, session: Session) -> ServiceResult:
        """
        Delete a session if its origin allows it.

        Business context: Records imported from the spreadsheet or fetched
        from the remote backend are shared history; only sessions timed by
        this instance may be removed by the user.

        Args:
            state: Tracker state holding the working collection.
            session: The session to delete.

        Returns:
            ServiceResult. Failures carry PermissionDeniedError (non-local
            origin), SessionNotFoundError (not in the working collection) or
            StorageError (backend rejected the delete). On any failure the
            working collection and the store are unchanged.

        Example:
            >>> result = merger.request_delete(state, imported_session)
            >>> result.error_code
            'permission'
        """
        if not session.is_deletable:
            logger.warning(f"Refused delete of {session.origin} session {session.ref}")
            return ServiceResult.failure(
                "Session cannot be deleted",
                PermissionDeniedError(
                    f"Only locally created sessions can be deleted; "
                    f"this session is {session.origin}"
                ),
            )

        index = self._index_of(state.sessions, session)
        if index is None:
            return ServiceResult.failure(
                "Session not found",
                SessionNotFoundError(f"No session with ref {session.ref}"),
            )

        if session in state.pending_writes:
            # Never reached the store; dropping it from the retry queue suffices.
            state.pending_writes.remove(session)
        else:
            try:
                self.store.delete(session)
            except StorageError as e:
                logger.error(f"Failed to delete session {session.ref}: {e}")
                return ServiceResult.failure("Failed to delete session", e)

        del state.sessions[index]
        logger.info(f"Deleted session {session.ref}")
        return ServiceResult(
            success=True,
            message="Session deleted",
            data={"ref": session.ref, "date": session.date},
        )

    @staticmethod
    def _index_of(sessions: Sequence[Session], target: Session) -> int | None:
        for index, session in enumerate(sessions):
            if session.same_identity(target):
                return index
        return None
