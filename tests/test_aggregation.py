"""Tests for aggregation module."""

from __future__ import annotations

import sys
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from conftest import make_session

from study_tracker.aggregation import DateAggregator
from study_tracker.errors import ParseError
from study_tracker.models import Intensity, Origin


@pytest.fixture
def aggregator() -> DateAggregator:
    return DateAggregator()


def _on(day: int, minutes: float, hour: int = 9, **kwargs: object):
    return make_session(start=datetime(2024, 3, day, hour), minutes=minutes, **kwargs)


class TestClassify:
    """Tests for DateAggregator.classify()."""

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [
            (None, Intensity.NONE),
            (0, Intensity.NONE),
            (1, Intensity.LOW),
            (180, Intensity.LOW),
            (181, Intensity.MEDIUM),
            (240, Intensity.MEDIUM),
            (299, Intensity.MEDIUM),
            (300, Intensity.HIGH),
            (600, Intensity.HIGH),
        ],
    )
    def test_boundaries(
        self, aggregator: DateAggregator, minutes: float | None, expected: Intensity
    ) -> None:
        """Exactly 3h stays low; exactly 5h is high."""
        assert aggregator.classify(minutes) is expected


class TestAggregate:
    """Tests for DateAggregator.aggregate()."""

    def test_sums_per_day(self, aggregator: DateAggregator) -> None:
        totals = aggregator.aggregate([_on(5, 90), _on(5, 90, hour=14), _on(6, 30)])
        assert totals == {"2024-03-05": 180.0, "2024-03-06": 30.0}

    def test_two_ninety_minute_sessions_are_low(self, aggregator: DateAggregator) -> None:
        totals = aggregator.aggregate([_on(5, 90), _on(5, 90, hour=14)])
        assert aggregator.classify(totals.get("2024-03-05")) is Intensity.LOW

    def test_empty(self, aggregator: DateAggregator) -> None:
        assert aggregator.aggregate([]) == {}

    def test_first_seen_order(self, aggregator: DateAggregator) -> None:
        totals = aggregator.aggregate([_on(7, 10), _on(5, 10), _on(7, 5)])
        assert list(totals) == ["2024-03-07", "2024-03-05"]

    def test_origins_mixed(self, aggregator: DateAggregator) -> None:
        sessions = [_on(5, 60, origin=Origin.IMPORTED), _on(5, 30, origin=Origin.REMOTE)]
        assert aggregator.aggregate(sessions) == {"2024-03-05": 90.0}

    def test_two_decimal_precision(self, aggregator: DateAggregator) -> None:
        sessions = [_on(5, 0.1), _on(5, 0.2, hour=10)]
        assert aggregator.aggregate(sessions) == {"2024-03-05": 0.3}

    def test_empty_date_falls_back_to_start(self, aggregator: DateAggregator) -> None:
        session = replace(_on(5, 45), date="")
        assert aggregator.aggregate([session]) == {"2024-03-05": 45.0}

    def test_slash_date_normalized(self, aggregator: DateAggregator) -> None:
        session = replace(_on(5, 45), date="2024/03/05")
        assert aggregator.aggregate([session]) == {"2024-03-05": 45.0}

    def test_unparseable_date_excluded(self, aggregator: DateAggregator) -> None:
        session = replace(_on(5, 45), date="someday")
        assert aggregator.aggregate([session, _on(6, 10)]) == {"2024-03-06": 10.0}


class TestDayQueries:
    """Tests for per-day lookups."""

    def test_total_for_date(self, aggregator: DateAggregator) -> None:
        sessions = [_on(5, 90), _on(6, 30)]
        assert aggregator.total_for_date(sessions, "2024/03/05") == 90.0
        assert aggregator.total_for_date(sessions, date(2024, 3, 6)) == 30.0
        assert aggregator.total_for_date(sessions, "2024-03-09") == 0.0

    def test_total_for_invalid_date(self, aggregator: DateAggregator) -> None:
        with pytest.raises(ParseError):
            aggregator.total_for_date([], "not a date")

    def test_sessions_for_date(self, aggregator: DateAggregator) -> None:
        a, b, c = _on(5, 10), _on(6, 10), _on(5, 20, hour=15)
        assert aggregator.sessions_for_date([a, b, c], "2024-03-05") == [a, c]

    def test_total_minutes(self, aggregator: DateAggregator) -> None:
        assert aggregator.total_minutes([_on(5, 90), _on(6, 30.5)]) == 120.5
        assert aggregator.total_minutes([]) == 0.0

    def test_heatmap(self, aggregator: DateAggregator) -> None:
        heat = aggregator.heatmap([_on(5, 300), _on(6, 200), _on(7, 60)])
        assert heat == {
            "2024-03-05": Intensity.HIGH,
            "2024-03-06": Intensity.MEDIUM,
            "2024-03-07": Intensity.LOW,
        }


class TestStreak:
    """Tests for DateAggregator.current_streak()."""

    def test_consecutive_days(self, aggregator: DateAggregator) -> None:
        sessions = [_on(3, 10), _on(4, 10), _on(5, 10)]
        assert aggregator.current_streak(sessions, date(2024, 3, 5)) == 3

    def test_gap_breaks_streak(self, aggregator: DateAggregator) -> None:
        sessions = [_on(2, 10), _on(4, 10), _on(5, 10)]
        assert aggregator.current_streak(sessions, date(2024, 3, 5)) == 2

    def test_nothing_today(self, aggregator: DateAggregator) -> None:
        assert aggregator.current_streak([_on(4, 10)], date(2024, 3, 5)) == 0

    def test_zero_minute_day_does_not_count(self, aggregator: DateAggregator) -> None:
        sessions = [_on(4, 10), _on(5, 0)]
        assert aggregator.current_streak(sessions, date(2024, 3, 5)) == 0
