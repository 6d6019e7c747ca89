"""Tests for merger module."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from conftest import InMemoryStore, make_session

from study_tracker.merger import SessionMerger
from study_tracker.models import Origin, TrackerState


@pytest.fixture
def merger(store: InMemoryStore) -> SessionMerger:
    return SessionMerger(store)


class TestMerge:
    """Tests for merging sources."""

    def test_concatenates_in_order(self) -> None:
        a = make_session("A", origin=Origin.IMPORTED)
        b = make_session("B")
        c = make_session("C", origin=Origin.REMOTE)
        assert SessionMerger.merge([a], [b], [c]) == [a, b, c]

    def test_no_deduplication(self) -> None:
        """The same session in two sources appears twice."""
        s = make_session("Dup")
        assert SessionMerger.merge([s], [s]) == [s, s]

    def test_seed_replaces_collection(self, merger: SessionMerger) -> None:
        state = TrackerState(sessions=[make_session("Old")])
        fresh = make_session("New")
        merger.seed(state, [fresh])
        assert state.sessions == [fresh]


class TestAppendReplaceFind:
    """Tests for append, replace and find."""

    def test_append(self, merger: SessionMerger) -> None:
        state = TrackerState()
        s = make_session()
        merger.append(state, s)
        assert state.sessions == [s]

    def test_replace_swaps_identified_copy(self, merger: SessionMerger) -> None:
        state = TrackerState()
        s = make_session()
        merger.append(state, s)
        merger.replace(state, s, s.with_id("5"))
        assert state.sessions[0].id == "5"

    def test_find_by_ref(self, merger: SessionMerger) -> None:
        state = TrackerState()
        a = make_session("A")
        b = make_session("B")
        merger.seed(state, [a, b])
        assert merger.find(state, b.ref) is b
        assert merger.find(state, "missing") is None


class TestRequestDelete:
    """Tests for the delete-authorization rule."""

    def test_local_session_deleted(self, merger: SessionMerger, store: InMemoryStore) -> None:
        s = make_session("Mine")
        store.sessions = [s]
        state = TrackerState(sessions=[s])

        result = merger.request_delete(state, s)

        assert result.success
        assert state.sessions == []
        assert store.sessions == []
        assert result.data == {"ref": s.ref, "date": "2024-03-05"}

    @pytest.mark.parametrize("origin", [Origin.IMPORTED, Origin.REMOTE])
    def test_foreign_session_refused(
        self, merger: SessionMerger, store: InMemoryStore, origin: Origin
    ) -> None:
        """Imported and remote sessions are protected; the store is never called."""
        s = make_session("Shared", origin=origin)
        state = TrackerState(sessions=[s])

        result = merger.request_delete(state, s)

        assert not result.success
        assert result.error_code == "permission"
        assert state.sessions == [s]
        assert store.calls == []

    def test_storage_failure_keeps_session(
        self, merger: SessionMerger, store: InMemoryStore
    ) -> None:
        """A rejected backend delete leaves the working collection intact."""
        s = make_session()
        state = TrackerState(sessions=[s])
        store.fail = True

        result = merger.request_delete(state, s)

        assert not result.success
        assert result.error_code == "storage"
        assert state.sessions == [s]

    def test_not_in_collection(self, merger: SessionMerger) -> None:
        result = merger.request_delete(TrackerState(), make_session())
        assert result.error_code == "not_found"

    def test_only_first_duplicate_removed(self, merger: SessionMerger) -> None:
        s = make_session()
        other = make_session("Other", start=datetime(2024, 3, 6, 9))
        state = TrackerState(sessions=[s, other, s])
        merger.request_delete(state, s)
        assert state.sessions == [other, s]

    def test_pending_session_skips_store(
        self, merger: SessionMerger, store: InMemoryStore
    ) -> None:
        """A never-saved session is dropped from the retry queue instead."""
        s = make_session()
        state = TrackerState(sessions=[s], pending_writes=[s])
        store.fail = True

        result = merger.request_delete(state, s)

        assert result.success
        assert state.sessions == []
        assert state.pending_writes == []
        assert store.calls == []
