"""
Remote session backend for Study Session Tracker.

PURPOSE: SessionStore over a REST table that assigns an id to each insert.
AI CONTEXT: Speaks the PostgREST dialect (Supabase-style `/rest/v1/<table>`).

ROW SCHEMA (two observed variants, both readable):
    canonical: {id, start, end, duration, task, date}
    legacy:    {id, Start, End, Duration_minutes, Task, Date}
Rows are written in the canonical variant.

OPERATIONS:
- load:    GET    /rest/v1/<table>?select=*&order=start.asc
- append:  POST   /rest/v1/<table>      (Prefer: return=representation)
- delete:  DELETE /rest/v1/<table>?id=eq.<id>
- clear:   DELETE /rest/v1/<table>?id=not.is.null

ERROR HANDLING:
Every requests.RequestException, non-2xx status and undecodable payload is
logged and re-raised as StorageError.

USAGE:
    store = RemoteSessionStore("https://xyz.supabase.co", api_key="...")
    saved = store.append(session)
    saved.id   # backend-assigned
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import requests

from .config import Config
from .errors import ParseError, StorageError
from .models import Origin, Session

__all__ = ["RemoteSessionStore", "row_to_session", "session_to_row"]

logger = logging.getLogger(__name__)

# (canonical key, legacy key)
_FIELD_ALIASES: dict[str, tuple[str, str]] = {
    "start": ("start", "Start"),
    "end": ("end", "End"),
    "duration": ("duration", "Duration_minutes"),
    "task": ("task", "Task"),
    "date": ("date", "Date"),
}


def _pick(row: dict[str, Any], name: str) -> Any:
    canonical, legacy = _FIELD_ALIASES[name]
    value = row.get(canonical)
    return row.get(legacy) if value is None else value


def row_to_session(row: dict[str, Any]) -> Session:
    """
    Convert a backend row (either schema variant) to a remote Session.

    Args:
        row: Row dict as returned by the backend.

    Returns:
        Session with origin=remote and the row's id.

    Raises:
        ParseError: If the row lacks instants or holds invalid values.

    Example:
        >>> row_to_session({"id": 7, "Start": "2024-03-05T09:00:00",
        ...                 "End": "2024-03-05T10:00:00", "Duration_minutes": 60,
        ...                 "Task": "Read", "Date": "2024/03/05"}).id
        '7'
    """
    record = {
        "id": row.get("id"),
        "start": _pick(row, "start"),
        "end": _pick(row, "end"),
        "duration": _pick(row, "duration"),
        "task": _pick(row, "task"),
        "date": _pick(row, "date"),
    }
    return Session.from_dict(record, origin=Origin.REMOTE)


def session_to_row(session: Session) -> dict[str, Any]:
    """Serialize a session as a canonical row; the backend assigns the id."""
    return {
        "start": session.start.isoformat(),
        "end": session.end.isoformat(),
        "duration": session.duration,
        "task": session.task,
        "date": session.date,
    }


class RemoteSessionStore:
    """
    SessionStore backed by a remote REST table.

    DESIGN:
    - requests.Session is injectable (tests pass a MagicMock)
    - append MUST return the backend-assigned id
    - delete requires an id; deletion authorization is enforced by the
      caller (SessionMerger) before this store is reached
    - replace_all is clear + one bulk insert
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        table: str | None = None,
        http_session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the remote store.

        Args:
            base_url: Backend root URL, e.g. "https://xyz.supabase.co".
            api_key: Key sent as `apikey` and bearer token. Optional.
            table: Table name. Default: Config.DEFAULT_REMOTE_TABLE
            http_session: requests.Session to reuse. Default: new session.
            timeout: Per-request timeout in seconds.
                Default: Config.REMOTE_TIMEOUT_SECONDS

        Raises:
            StorageError: If base_url is empty.
        """
        if not base_url:
            raise StorageError("Remote backend URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.table = table or Config.DEFAULT_REMOTE_TABLE
        self.timeout = timeout or Config.REMOTE_TIMEOUT_SECONDS
        self._http = http_session or requests.Session()
        self._http.headers.update({"Content-Type": "application/json"})
        if api_key:
            self._http.headers.update(
                {"apikey": api_key, "Authorization": f"Bearer {api_key}"}
            )

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _request(self, method: str, **kwargs: Any) -> requests.Response:
        """
        Send one request to the table endpoint.

        Raises:
            StorageError: On network failure or a non-2xx status.
        """
        try:
            response = self._http.request(
                method, self.table_url, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Remote {method} {self.table_url} failed: {e}")
            raise StorageError(f"Remote backend error: {e}") from e
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Undecodable response from remote backend: {e}")
            raise StorageError(f"Invalid response from remote backend: {e}") from e

    def load(self) -> list[Session]:
        """
        Fetch all rows ordered by ascending start.

        Rows that cannot be converted are skipped with a warning.

        Returns:
            Sessions with origin=remote.

        Raises:
            StorageError: On network/HTTP failure or a non-list payload.
        """
        response = self._request("GET", params={"select": "*", "order": "start.asc"})
        rows = self._json(response)
        if not isinstance(rows, list):
            raise StorageError("Remote backend returned a non-list payload")

        sessions: list[Session] = []
        for row in rows:
            try:
                sessions.append(row_to_session(row))
            except (ParseError, AttributeError) as e:
                logger.warning(f"Skipping remote row {row!r}: {e}")
        logger.info(f"Loaded {len(sessions)} session(s) from remote backend")
        return sessions

    def append(self, session: Session) -> Session:
        """
        Insert one row and return the session with its assigned id.

        The origin is left unchanged: a session created by this instance
        stays deletable for the rest of the process.

        Raises:
            StorageError: On failure, or if the backend returned no id.
        """
        response = self._request(
            "POST",
            json=session_to_row(session),
            headers={"Prefer": "return=representation"},
        )
        payload = self._json(response)
        row = payload[0] if isinstance(payload, list) and payload else payload
        assigned = row.get("id") if isinstance(row, dict) else None
        if assigned is None:
            raise StorageError("Remote backend did not return an id for the inserted row")
        logger.info(f"Inserted remote session id={assigned}")
        return session.with_id(str(assigned))

    def delete(self, session: Session) -> None:
        """
        Delete the row with the session's id.

        Raises:
            StorageError: If the session has no id, or on failure.
        """
        if session.id is None:
            raise StorageError("Cannot delete a remote row without an id")
        self._request("DELETE", params={"id": f"eq.{session.id}"})
        logger.info(f"Deleted remote session id={session.id}")

    def clear(self) -> None:
        """
        Bulk-delete every row (used by the reset action).

        PostgREST refuses an unfiltered DELETE, so the filter matches every
        row with a non-null id.
        """
        self._request("DELETE", params={"id": "not.is.null"})
        logger.info(f"Cleared remote table {self.table}")

    def replace_all(self, sessions: Sequence[Session]) -> None:
        """Clear the table, then bulk-insert the given sessions."""
        self.clear()
        if sessions:
            self._request("POST", json=[session_to_row(s) for s in sessions])
