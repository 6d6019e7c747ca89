"""
FastAPI routes for Study Session Tracker dashboard.

PURPOSE: Thin route handlers that delegate to TrackerService and presenters.
AI CONTEXT: Routes should be simple - business logic lives in the service.

ROUTE STRUCTURE:
- / : Main dashboard page (full HTML), ?date= selects a calendar day
- /api/* : JSON endpoints mirroring the CLI actions
- /charts/* : PNG chart images

WRITES: Handlers that reach the durable store (possibly a remote backend)
run the service call in the threadpool, one at a time under
app.state.write_lock, so a slow backend never stalls the event loop.

ERROR MAPPING (ServiceResult.error_code -> HTTP status):
    validation, parse -> 400    permission -> 403
    not_found         -> 404    storage    -> 503
"""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, Response

from ..presenters import ChartPresenter, DashboardPresenter
from ..tracker_service import TrackerService

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..presenters import CalendarCell, DashboardOverview, SessionViewModel
    from ..results import ServiceResult

__all__ = [
    "router",
    "get_service",
    "get_dashboard_presenter",
    "get_chart_presenter",
    "status_for",
]

router = APIRouter()

_STATUS_BY_CODE: dict[str, int] = {
    "validation": 400,
    "parse": 400,
    "permission": 403,
    "not_found": 404,
    "storage": 503,
}

_DASHBOARD_CSS = """
:root {
    --bg: #0f172a;
    --surface: #1e293b;
    --border: #334155;
    --text: #f1f5f9;
    --text-muted: #94a3b8;
    --primary: #3b82f6;
    --danger: #ef4444;
}
* { box-sizing: border-box; margin: 0; padding: 0; }
body {
    font-family: system-ui, -apple-system, sans-serif;
    background: var(--bg);
    color: var(--text);
    line-height: 1.6;
    padding: 1rem;
}
.container { max-width: 1100px; margin: 0 auto; }
header {
    display: flex;
    justify-content: space-between;
    align-items: center;
    margin-bottom: 1.5rem;
    padding-bottom: 1rem;
    border-bottom: 1px solid var(--border);
}
h1 { font-size: 1.5rem; font-weight: 600; }
.panel {
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: 0.5rem;
    padding: 1rem;
    margin-bottom: 1rem;
}
.panel h2 { font-size: 1rem; font-weight: 500; color: var(--text-muted); margin-bottom: 0.75rem; }
.metric { font-size: 2rem; font-weight: 700; }
.banner { border-color: var(--danger); color: var(--danger); }
.calendar { display: flex; flex-wrap: wrap; gap: 4px; }
.day {
    width: 5.5rem;
    padding: 0.25rem;
    border-radius: 0.25rem;
    text-align: center;
    font-size: 0.75rem;
    color: var(--text);
    text-decoration: none;
}
.day.selected { outline: 2px solid var(--primary); }
table { width: 100%; border-collapse: collapse; }
th, td { text-align: left; padding: 0.5rem; border-bottom: 1px solid var(--border); }
th { color: var(--text-muted); font-weight: 500; font-size: 0.875rem; }
button {
    background: var(--primary);
    color: white;
    border: none;
    border-radius: 0.25rem;
    padding: 0.4rem 0.8rem;
    cursor: pointer;
}
button.danger { background: var(--danger); }
input { padding: 0.4rem; border-radius: 0.25rem; border: 1px solid var(--border); }
.muted { color: var(--text-muted); font-size: 0.875rem; }
"""


# =============================================================================
# Dependencies
# =============================================================================


def get_service(request: Request) -> TrackerService:
    """Return the TrackerService shared through app.state."""
    return request.app.state.service


def get_dashboard_presenter(
    service: Annotated[TrackerService, Depends(get_service)],
) -> DashboardPresenter:
    return DashboardPresenter(service)


def get_chart_presenter(
    service: Annotated[TrackerService, Depends(get_service)],
) -> ChartPresenter:
    return ChartPresenter(service)


def status_for(result: ServiceResult) -> int:
    """
    Map a ServiceResult to its HTTP status code.

    Successful results are 200 even when degraded (``error`` set on a
    success, e.g. a session recorded but not yet saved).
    """
    if result.success:
        return 200
    return _STATUS_BY_CODE.get(result.error_code or "", 500)


def _respond(result: ServiceResult) -> JSONResponse:
    return JSONResponse(content=result.to_dict(), status_code=status_for(result))


async def _write(
    request: Request, func: Callable[..., ServiceResult], *args: Any, **kwargs: Any
) -> JSONResponse:
    """Run a blocking service write off the event loop, serialized with other writes."""
    async with request.app.state.write_lock:
        result = await run_in_threadpool(func, *args, **kwargs)
    return _respond(result)


# ============================================================================
# Full Page Routes
# ============================================================================


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(
    service: Annotated[TrackerService, Depends(get_service)],
    presenter: Annotated[DashboardPresenter, Depends(get_dashboard_presenter)],
    date: str | None = None,
) -> HTMLResponse:
    """
    Render the main dashboard page.

    Args:
        service: TrackerService injected via FastAPI Depends.
        presenter: DashboardPresenter injected via FastAPI Depends.
        date: Optional calendar day to select (YYYY-MM-DD or YYYY/MM/DD).

    Returns:
        HTMLResponse with the timer, heat map, selected day and chart.
        An invalid date is reported in a banner; the page still renders.
    """
    notice = ""
    if date is not None:
        selected = service.select_date(date)
        if not selected.success:
            notice = f"{selected.message}: {selected.error}"

    overview = presenter.get_overview()
    html = _render_dashboard_html(overview, notice)
    return HTMLResponse(content=html, media_type="text/html; charset=utf-8")


# ============================================================================
# JSON API
# ============================================================================


@router.get("/api/status")
async def api_status(
    service: Annotated[TrackerService, Depends(get_service)],
) -> JSONResponse:
    """Timer state and headline totals."""
    return _respond(service.status())


@router.get("/api/sessions")
async def api_sessions(
    service: Annotated[TrackerService, Depends(get_service)],
    date: str | None = None,
) -> JSONResponse:
    """
    List sessions, optionally for one day.

    With ``date`` the day also becomes the selected date, as when a
    calendar cell is clicked.
    """
    result = service.select_date(date) if date is not None else service.list_sessions()
    return _respond(result)


@router.get("/api/calendar")
async def api_calendar(
    service: Annotated[TrackerService, Depends(get_service)],
) -> JSONResponse:
    """Per-date totals with intensity buckets."""
    return _respond(service.calendar())


@router.get("/api/report")
async def api_report(
    service: Annotated[TrackerService, Depends(get_service)],
) -> JSONResponse:
    return _respond(service.report())


@router.post("/api/timer/start")
async def api_timer_start(
    request: Request,
    service: Annotated[TrackerService, Depends(get_service)],
    task: Annotated[str, Body(embed=True)],
) -> JSONResponse:
    """
    Start the study timer.

    Body:
        {"task": "Organic chemistry"}

    Returns:
        200 with the running timer, or 400 when the task is blank.
    """
    return await _write(request, service.start_session, task)


@router.post("/api/timer/end")
async def api_timer_end(
    request: Request,
    service: Annotated[TrackerService, Depends(get_service)],
) -> JSONResponse:
    """End the running session; 200 even when the durable write failed."""
    return await _write(request, service.end_session)


@router.post("/api/pending/retry")
async def api_retry_pending(
    request: Request,
    service: Annotated[TrackerService, Depends(get_service)],
) -> JSONResponse:
    return await _write(request, service.retry_pending)


@router.delete("/api/sessions/{ref}")
async def api_delete_session(
    ref: str,
    request: Request,
    service: Annotated[TrackerService, Depends(get_service)],
) -> JSONResponse:
    """
    Delete a session by ref.

    Returns:
        200 on success; 404 unknown ref; 403 imported or remote session;
        503 when the backend rejected the delete.
    """
    return await _write(request, service.delete_session, ref)


@router.post("/api/reset")
async def api_reset(
    request: Request,
    service: Annotated[TrackerService, Depends(get_service)],
    confirm: Annotated[bool, Body(embed=True)] = False,
) -> JSONResponse:
    """
    Delete every persisted session.

    Body:
        {"confirm": true}
    """
    return await _write(request, service.reset_all, confirm=confirm)


# ============================================================================
# Charts
# ============================================================================


@router.get("/charts/heatmap.png")
async def heatmap_chart(
    presenter: Annotated[ChartPresenter, Depends(get_chart_presenter)],
) -> Response:
    """
    Serve the study calendar heat map as PNG.

    Falls back to an SVG placeholder if matplotlib is not installed.
    """
    try:
        png_bytes = presenter.render_heatmap()
        return Response(content=png_bytes, media_type="image/png")
    except ImportError:
        # matplotlib not installed - return placeholder
        return Response(
            content=_placeholder_chart_svg("Heat Map"),
            media_type="image/svg+xml",
        )


# ============================================================================
# HTML rendering
# ============================================================================


def _placeholder_chart_svg(title: str) -> bytes:
    """
    Generate a placeholder SVG when matplotlib is unavailable.

    Example:
        >>> b'Heat Map Chart' in _placeholder_chart_svg('Heat Map')
        True
    """
    svg = f"""<svg xmlns="http://www.w3.org/2000/svg" width="400" height="200">
        <rect width="100%" height="100%" fill="#f1f5f9"/>
        <text x="50%" y="50%" text-anchor="middle" fill="#64748b" font-size="16">
            {title} Chart (install matplotlib)
        </text>
    </svg>"""
    return svg.encode("utf-8")


def _render_timer_panel(overview: DashboardOverview) -> str:
    timer = overview.timer
    if timer.running:
        return f"""<h2>Studying</h2>
        <div class="metric">{escape(timer.task or "")}</div>
        <p class="muted">Since {timer.started} ({timer.elapsed_display})</p>
        <button hx-post="/api/timer/end" hx-swap="none"
                hx-on::after-request="location.reload()">End Session</button>"""
    return """<h2>Start a study session</h2>
        <form hx-post="/api/timer/start" hx-ext="json-enc" hx-swap="none"
              hx-on::after-request="location.reload()">
            <input name="task" placeholder="What are you studying?" required>
            <button type="submit">Start</button>
        </form>"""


def _render_calendar(cells: list[CalendarCell], selected: str) -> str:
    if not cells:
        return '<p class="muted">No study days yet</p>'
    items = ""
    for cell in cells:
        css = "day selected" if cell.date == selected else "day"
        items += (
            f'<a class="{css}" href="/?date={cell.date}" style="background: {cell.color};" '
            f'title="{cell.intensity}">{cell.date}<br>{cell.total_minutes:.0f}m</a>'
        )
    return f'<div class="calendar">{items}</div>'


def _render_sessions_table(sessions: list[SessionViewModel]) -> str:
    """
    Render the selected day's sessions as an HTML table.

    Only locally created sessions get a delete button; the others are
    shown as protected.
    """
    rows = ""
    for s in sessions:
        if s.deletable:
            action = (
                f'<button class="danger" hx-delete="/api/sessions/{s.ref}" hx-swap="none" '
                f'hx-confirm="Delete this session?" '
                f'hx-on::after-request="location.reload()">Delete</button>'
            )
        else:
            action = '<span class="muted">protected</span>'
        rows += f"""<tr>
            <td>{escape(s.task)}</td>
            <td>{s.start} - {s.end}</td>
            <td>{s.duration_display}</td>
            <td>{s.origin}</td>
            <td>{action}</td>
        </tr>"""

    if not rows:
        rows = (
            '<tr><td colspan="5" style="text-align: center; '
            'color: var(--text-muted);">No sessions on this day</td></tr>'
        )

    return f"""<table>
        <thead>
            <tr><th>Task</th><th>Time</th><th>Duration</th><th>Origin</th><th></th></tr>
        </thead>
        <tbody>
            {rows}
        </tbody>
    </table>"""


def _render_dashboard_html(overview: DashboardOverview, notice: str = "") -> str:
    """
    Render the complete dashboard HTML page from overview data.

    Args:
        overview: DashboardOverview from DashboardPresenter.
        notice: Optional message shown in an error banner.

    Returns:
        Complete HTML string with embedded CSS and htmx.
    """
    day = overview.selected_day
    banner = f'<div class="panel banner">{escape(notice)}</div>' if notice else ""
    pending = (
        f'<p class="muted">{overview.pending_writes} session(s) not yet saved '
        f'<button hx-post="/api/pending/retry" hx-swap="none" '
        f'hx-on::after-request="location.reload()">Retry</button></p>'
        if overview.pending_writes
        else ""
    )
    context: dict[str, Any] = {
        "timer": _render_timer_panel(overview),
        "calendar": _render_calendar(overview.calendar, day.date),
        "sessions": _render_sessions_table(day.sessions),
    }

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Study Session Tracker</title>
    <script src="https://unpkg.com/htmx.org@1.9.10"></script>
    <script src="https://unpkg.com/htmx.org@1.9.10/dist/ext/json-enc.js"></script>
    <style>
        {_DASHBOARD_CSS}
    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>📚 Study Session Tracker</h1>
            <span class="muted">Total Study Duration: {overview.total_minutes:.2f} minutes
                &bull; Streak: {overview.streak} day(s)</span>
        </header>
        {banner}
        <div class="panel" id="timer-panel">
            {context["timer"]}
            {pending}
        </div>

        <div class="panel" id="calendar-panel">
            <h2>📅 Calendar</h2>
            {context["calendar"]}
        </div>

        <div class="panel" id="day-panel">
            <h2>{day.date} &bull; {day.total_display} &bull; {day.intensity}</h2>
            {context["sessions"]}
        </div>

        <div class="panel" id="heatmap-panel">
            <h2>🔥 Heat Map</h2>
            <img src="/charts/heatmap.png" alt="Study heat map" style="max-width: 100%;">
        </div>

        <div class="panel">
            <button class="danger" hx-post="/api/reset" hx-ext="json-enc"
                    hx-vals='{{"confirm": true}}' hx-swap="none"
                    hx-confirm="Delete ALL saved sessions? This cannot be undone."
                    hx-on::after-request="location.reload()">Reset All Data</button>
        </div>
    </div>
</body>
</html>"""
