"""Tests for remote module."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent))

from conftest import make_session

from study_tracker.errors import StorageError
from study_tracker.models import Origin
from study_tracker.remote import RemoteSessionStore, row_to_session, session_to_row

BASE = "https://example.supabase.co"
TABLE_URL = f"{BASE}/rest/v1/sessions"


@pytest.fixture
def http() -> MagicMock:
    """MagicMock standing in for requests.Session."""
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def remote(http: MagicMock) -> RemoteSessionStore:
    return RemoteSessionStore(BASE + "/", api_key="secret", http_session=http)


def _respond(http: MagicMock, payload: object) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    http.request.return_value = response
    return response


class TestRowConversion:
    """Tests for row_to_session() and session_to_row()."""

    def test_canonical_row(self) -> None:
        s = row_to_session(
            {
                "id": 3,
                "start": "2024-03-05T09:00:00",
                "end": "2024-03-05T10:00:00",
                "duration": 60,
                "task": "Read",
                "date": "2024-03-05",
            }
        )
        assert s.id == "3"
        assert s.origin is Origin.REMOTE
        assert s.duration == 60.0

    def test_legacy_row(self) -> None:
        """Capitalized legacy columns are read too."""
        s = row_to_session(
            {
                "id": 7,
                "Start": "2024-03-05T09:00:00",
                "End": "2024-03-05T10:00:00",
                "Duration_minutes": "55",
                "Task": "Essay",
                "Date": "2024/03/05",
            }
        )
        assert (s.id, s.task, s.duration, s.date) == ("7", "Essay", 55.0, "2024-03-05")

    def test_session_to_row_has_no_id(self) -> None:
        row = session_to_row(make_session("Read").with_id("5"))
        assert row == {
            "start": "2024-03-05T09:00:00",
            "end": "2024-03-05T10:30:00",
            "duration": 90.0,
            "task": "Read",
            "date": "2024-03-05",
        }


class TestRemoteSessionStoreInit:
    """Tests for construction."""

    def test_requires_url(self, http: MagicMock) -> None:
        with pytest.raises(StorageError):
            RemoteSessionStore("", http_session=http)

    def test_table_url_strips_slash(self, remote: RemoteSessionStore) -> None:
        assert remote.table_url == TABLE_URL

    def test_auth_headers(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        assert http.headers["apikey"] == "secret"
        assert http.headers["Authorization"] == "Bearer secret"
        assert http.headers["Content-Type"] == "application/json"

    def test_no_key_no_auth_headers(self, http: MagicMock) -> None:
        RemoteSessionStore(BASE, http_session=http, table="study")
        assert "Authorization" not in http.headers


class TestRemoteSessionStoreLoad:
    """Tests for load()."""

    def test_ordered_query(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(http, [])
        remote.load()
        http.request.assert_called_once_with(
            "GET",
            TABLE_URL,
            timeout=10.0,
            params={"select": "*", "order": "start.asc"},
        )

    def test_bad_rows_skipped(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(
            http,
            [
                {"id": 1, "start": "2024-03-05T09:00:00", "end": "2024-03-05T09:30:00"},
                {"id": 2, "start": "garbage"},
                "not a row",
                {
                    "id": 3,
                    "start": "2024-03-05T09:00:00",
                    "end": "2024-03-05T09:30:00",
                    "duration": "NaN",
                },
            ],
        )
        sessions = remote.load()
        assert [s.id for s in sessions] == ["1"]

    def test_non_list_payload(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(http, {"message": "nope"})
        with pytest.raises(StorageError):
            remote.load()

    def test_network_error(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        http.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(StorageError):
            remote.load()

    def test_http_error(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        response = _respond(http, [])
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        with pytest.raises(StorageError):
            remote.load()

    def test_undecodable_body(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        response = _respond(http, None)
        response.json.side_effect = ValueError("no json")
        with pytest.raises(StorageError):
            remote.load()


class TestRemoteSessionStoreWrites:
    """Tests for append, delete, clear and replace_all."""

    def test_append_returns_assigned_id(
        self, http: MagicMock, remote: RemoteSessionStore
    ) -> None:
        _respond(http, [{"id": 17}])
        session = make_session("Read")
        saved = remote.append(session)
        assert saved.id == "17"
        assert saved.origin is Origin.LOCAL
        http.request.assert_called_once_with(
            "POST",
            TABLE_URL,
            timeout=10.0,
            json=session_to_row(session),
            headers={"Prefer": "return=representation"},
        )

    def test_append_single_object_payload(
        self, http: MagicMock, remote: RemoteSessionStore
    ) -> None:
        _respond(http, {"id": "abc"})
        assert remote.append(make_session()).id == "abc"

    def test_append_without_id_fails(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(http, [])
        with pytest.raises(StorageError):
            remote.append(make_session())

    def test_delete_by_id(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(http, [])
        remote.delete(make_session().with_id("9"))
        http.request.assert_called_once_with(
            "DELETE", TABLE_URL, timeout=10.0, params={"id": "eq.9"}
        )

    def test_delete_requires_id(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        with pytest.raises(StorageError):
            remote.delete(make_session())
        http.request.assert_not_called()

    def test_clear(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(http, [])
        remote.clear()
        http.request.assert_called_once_with(
            "DELETE", TABLE_URL, timeout=10.0, params={"id": "not.is.null"}
        )

    def test_replace_all(self, http: MagicMock, remote: RemoteSessionStore) -> None:
        _respond(http, [])
        session = make_session()
        remote.replace_all([session])
        methods = [c.args[0] for c in http.request.call_args_list]
        assert methods == ["DELETE", "POST"]
        assert http.request.call_args.kwargs["json"] == [session_to_row(session)]

    def test_replace_all_empty_only_clears(
        self, http: MagicMock, remote: RemoteSessionStore
    ) -> None:
        _respond(http, [])
        remote.replace_all([])
        assert http.request.call_count == 1
