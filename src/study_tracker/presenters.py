"""
Presenters for Study Session Tracker dashboards.

PURPOSE: Testable business logic layer between the service and the UI.
AI CONTEXT: Pure data transformation - no I/O; the chart presenter renders
PNG bytes with matplotlib.

DESIGN PRINCIPLES:
1. Presenters receive the service state, return view models (dataclasses)
2. No dependencies on a specific UI framework
3. Display fallbacks (e.g. "No Task Available") are applied here, never stored

USAGE:
    presenter = DashboardPresenter(service)
    overview = presenter.get_overview()
    # overview is a dataclass ready for template rendering
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from .config import Config
from .models import Intensity, Session

if TYPE_CHECKING:
    from .tracker_service import TrackerService

__all__ = [
    "SessionViewModel",
    "DayViewModel",
    "CalendarCell",
    "TimerViewModel",
    "DashboardOverview",
    "DashboardPresenter",
    "ChartPresenter",
    "format_duration",
]


def format_duration(minutes: float) -> str:
    """
    Format duration as human-readable string.

    Args:
        minutes: Duration in minutes.

    Returns:
        String like "45m" or "1.5h".
    """
    if minutes < 60:
        return f"{minutes:.0f}m"
    return f"{minutes / 60:.1f}h"


@dataclass
class SessionViewModel:
    """View model for a single session in the list."""

    ref: str
    task: str
    origin: str
    date: str
    start: str
    end: str
    duration_minutes: float
    deletable: bool

    @classmethod
    def from_session(cls, session: Session) -> SessionViewModel:
        return cls(
            ref=session.ref,
            task=session.display_task,
            origin=str(session.origin),
            date=session.date,
            start=session.start.strftime("%H:%M"),
            end=session.end.strftime("%H:%M"),
            duration_minutes=session.duration,
            deletable=session.is_deletable,
        )

    @property
    def duration_display(self) -> str:
        """
        Format duration as human-readable string.

        Example:
            >>> vm.duration_minutes = 90
            >>> vm.duration_display
            '1.5h'
        """
        return format_duration(self.duration_minutes)


@dataclass
class DayViewModel:
    """Sessions and total for the selected calendar day."""

    date: str
    total_minutes: float
    intensity: Intensity
    sessions: list[SessionViewModel] = field(default_factory=list)

    @property
    def total_display(self) -> str:
        return f"{self.total_minutes:.2f} minutes"


@dataclass
class CalendarCell:
    """One day of the heat map."""

    date: str
    total_minutes: float
    intensity: Intensity

    @property
    def color(self) -> str:
        return Config.intensity_color(str(self.intensity))


@dataclass
class TimerViewModel:
    """State of the study timer for display."""

    running: bool
    task: str | None = None
    started: str | None = None
    elapsed_minutes: float = 0.0

    @property
    def elapsed_display(self) -> str:
        return format_duration(self.elapsed_minutes)


@dataclass
class DashboardOverview:
    """Complete view model for dashboard overview page."""

    timer: TimerViewModel
    selected_day: DayViewModel
    calendar: list[CalendarCell] = field(default_factory=list)
    total_minutes: float = 0.0
    streak: int = 0
    pending_writes: int = 0


class DashboardPresenter:
    """
    Presenter for the main dashboard view.

    Transforms the service's working collection into view models ready for
    rendering. All methods are pure - no side effects.
    """

    def __init__(self, service: TrackerService) -> None:
        """
        Initialize dashboard presenter with the tracker service.

        Args:
            service: TrackerService whose state and aggregator are read.

        Example:
            >>> presenter = DashboardPresenter(service)
            >>> overview = presenter.get_overview()
        """
        self.service = service

    def get_overview(self, day: str | None = None) -> DashboardOverview:
        """
        Get complete overview data for dashboard.

        Args:
            day: Normalized date to show. Default: the selected date, or
                today when none is selected.

        Returns:
            DashboardOverview with timer, selected day, calendar cells and
            headline totals.
        """
        state = self.service.state
        aggregator = self.service.aggregator
        today = self.service.today()
        selected = day or state.selected_date or today.isoformat()

        return DashboardOverview(
            timer=self.get_timer(),
            selected_day=self.get_day(selected),
            calendar=self.get_calendar(),
            total_minutes=aggregator.total_minutes(state.sessions),
            streak=aggregator.current_streak(state.sessions, today),
            pending_writes=len(state.pending_writes),
        )

    def get_timer(self) -> TimerViewModel:
        timer = self.service.state.timer
        if timer is None:
            return TimerViewModel(running=False)
        return TimerViewModel(
            running=True,
            task=timer.task,
            started=timer.start.strftime("%H:%M"),
            elapsed_minutes=self.service.timer.elapsed_minutes(),
        )

    def get_day(self, day: str) -> DayViewModel:
        """
        Build the view model for one calendar day.

        Args:
            day: Normalized YYYY-MM-DD date.

        Returns:
            DayViewModel with the day's sessions in collection order.
        """
        aggregator = self.service.aggregator
        sessions = self.service.state.sessions
        total = aggregator.total_for_date(sessions, day)
        return DayViewModel(
            date=day,
            total_minutes=total,
            intensity=aggregator.classify(total),
            sessions=[
                SessionViewModel.from_session(s)
                for s in aggregator.sessions_for_date(sessions, day)
            ],
        )

    def get_calendar(self) -> list[CalendarCell]:
        """Calendar cells for every day with study time, sorted by date."""
        aggregator = self.service.aggregator
        totals = aggregator.aggregate(self.service.state.sessions)
        return [
            CalendarCell(date=day, total_minutes=totals[day], intensity=aggregator.classify(totals[day]))
            for day in sorted(totals)
        ]


class ChartPresenter:
    """
    Presenter for generating chart images.

    Uses matplotlib for server-side chart rendering.
    Returns PNG images as bytes.
    """

    def __init__(self, service: TrackerService, weeks: int = 12) -> None:
        """
        Initialize chart presenter.

        Args:
            service: TrackerService whose sessions are charted.
            weeks: Number of weeks shown by the heat map, ending this week.
        """
        self.service = service
        self.weeks = weeks

    def _heatmap_grid(self) -> tuple[list[list[str]], list[date]]:
        """
        Lay out intensity colors as a weekday x week grid.

        Returns:
            (rows, week_starts) where rows[weekday][week] is a hex color and
            week_starts holds the Monday of each column.
        """
        aggregator = self.service.aggregator
        totals = aggregator.aggregate(self.service.state.sessions)
        today = self.service.today()
        first_monday = today - timedelta(days=today.weekday(), weeks=self.weeks - 1)

        week_starts = [first_monday + timedelta(weeks=w) for w in range(self.weeks)]
        rows: list[list[str]] = []
        for weekday in range(7):
            row = []
            for monday in week_starts:
                day = monday + timedelta(days=weekday)
                if day > today:
                    row.append("#ffffff")
                    continue
                intensity = aggregator.classify(totals.get(day.isoformat()))
                row.append(Config.intensity_color(str(intensity)))
            rows.append(row)
        return rows, week_starts

    def render_heatmap(self) -> bytes:
        """
        Render the study calendar as a heat-map PNG.

        One square per day, one column per week, colored by the day's
        intensity bucket.

        Returns:
            PNG image as bytes, suitable for HTTP response or file save.

        Raises:
            ImportError: If matplotlib is not installed. Caller should
                catch this and provide a fallback.
        """
        # Lazy import matplotlib to keep it optional
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend
        import matplotlib.pyplot as plt
        from matplotlib.colors import to_rgb

        rows, week_starts = self._heatmap_grid()
        image: list[list[Any]] = [[to_rgb(color) for color in row] for row in rows]

        fig, ax = plt.subplots(figsize=(max(4, self.weeks * 0.45), 2.6))
        ax.imshow(image, aspect="equal")
        ax.set_yticks(range(7))
        ax.set_yticklabels(["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"], fontsize=7)
        ax.set_xticks(range(len(week_starts)))
        ax.set_xticklabels([d.strftime("%m/%d") for d in week_starts], rotation=45, fontsize=7)
        ax.set_title("Study Calendar")
        for spine in ax.spines.values():
            spine.set_visible(False)

        buf = io.BytesIO()
        plt.tight_layout()
        plt.savefig(buf, format="png", dpi=100, bbox_inches="tight")
        plt.close(fig)
        buf.seek(0)
        return buf.read()
