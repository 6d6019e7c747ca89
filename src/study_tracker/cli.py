"""
CLI entry point for Study Session Tracker.

PURPOSE: Command-line interface for the timer, queries and the dashboard.
AI CONTEXT: One action per process; the running timer survives between
invocations in the active-timer file.

USAGE:
    # Via CLI command (after install)
    study-tracker start "Organic chemistry"
    study-tracker end
    study-tracker status
    study-tracker list --date 2024-03-05
    study-tracker calendar
    study-tracker delete 3f2a9c0d1b7e
    study-tracker reset --yes
    study-tracker import tracker.json
    study-tracker report
    study-tracker dashboard --port 8000

    # Or as a module
    python -m study_tracker status

EXIT CODES:
    0  action succeeded
    1  action failed (message logged)
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import Any

from .errors import StudyTrackerError
from .importer import Importer
from .results import ServiceResult
from .storage import ActiveTimerStore
from .tracker_service import TrackerService, build_store

# Constants
PROG_NAME = "study-tracker"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    logging.basicConfig(level=logging.INFO)
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _fail(result: ServiceResult) -> int:
    """Log a failed (or degraded) result and return the failure exit code."""
    detail = f": {result.error}" if result.error else ""
    _get_logger().error(f"❌ {result.message}{detail}")
    return 1


def build_service(args: argparse.Namespace) -> TrackerService:
    """
    Build and load a TrackerService from the global CLI options.

    CLI flags take precedence over environment variables.

    Args:
        args: Parsed arguments with storage_dir, backend and import_file.

    Returns:
        Loaded TrackerService.

    Raises:
        StorageError: If the remote backend is selected but not configured.
    """
    service = TrackerService(
        store=build_store(args.backend, args.storage_dir),
        importer=Importer(),
        timer_store=ActiveTimerStore(args.storage_dir),
        import_file=args.import_file,
    )
    loaded = service.load()
    if loaded.error:
        _log(f"Some sources could not be loaded: {loaded.error}", emoji="⚠️")
    return service


# =============================================================================
# COMMAND HANDLERS
# =============================================================================


def cmd_start(service: TrackerService, args: argparse.Namespace) -> int:
    result = service.start_session(args.task)
    if not result.success:
        return _fail(result)
    _log(result.message, emoji="▶️")
    if result.error:
        _log(f"Timer not saved; `end` must run in this process: {result.error}", emoji="⚠️")
    return 0


def cmd_end(service: TrackerService, args: argparse.Namespace) -> int:  # noqa: ARG001
    result = service.end_session()
    if not result.success:
        return _fail(result)
    _log(result.message, emoji="⏹️")
    data = result.data or {}
    if data.get("changed") and not data.get("persisted"):
        _log(f"Session was not saved: {result.error}", emoji="⚠️")
        return 1
    return 0


def cmd_status(service: TrackerService, args: argparse.Namespace) -> int:  # noqa: ARG001
    data = service.status().data or {}
    if data["running"]:
        print(f"Studying: {data['task']} (since {data['start']}, {data['elapsed_minutes']:.2f} min)")
    else:
        print("Idle")
    print(f"Today ({data['today']}): {data['today_minutes']:.2f} min [{data['today_intensity']}]")
    print(f"Total: {data['total_minutes']:.2f} min, streak {data['streak']} day(s)")
    return 0


def _print_sessions(sessions: list[dict[str, Any]]) -> None:
    if not sessions:
        print("No sessions")
        return
    for s in sessions:
        start = s["start"][11:16]
        end = s["end"][11:16]
        lock = "" if s["deletable"] else " (protected)"
        print(
            f"{s['ref']}  {s['date']} {start}-{end}  {s['duration']:>8.2f} min  "
            f"{s['display_task']} [{s['origin']}]{lock}"
        )


def cmd_list(service: TrackerService, args: argparse.Namespace) -> int:
    result = service.select_date(args.date) if args.date else service.list_sessions()
    if not result.success:
        return _fail(result)
    data = result.data or {}
    _print_sessions(data["sessions"])
    if "date" in data:
        print(f"Total for {data['date']}: {data['total_minutes']:.2f} minutes [{data['intensity']}]")
    else:
        print(f"Total Study Duration: {data['total_minutes']:.2f} minutes")
    return 0


def cmd_calendar(service: TrackerService, args: argparse.Namespace) -> int:  # noqa: ARG001
    data = service.calendar().data or {}
    if not data["days"]:
        print("No study days yet")
    for day in data["days"]:
        print(f"{day['date']}  {day['total_minutes']:>8.2f} min  {day['intensity']}")
    return 0


def cmd_delete(service: TrackerService, args: argparse.Namespace) -> int:
    result = service.delete_session(args.ref)
    if not result.success:
        return _fail(result)
    _log(result.message, emoji="🗑️")
    return 0


def cmd_reset(service: TrackerService, args: argparse.Namespace) -> int:
    result = service.reset_all(confirm=args.yes)
    if not result.success:
        return _fail(result)
    _log(result.message, emoji="🧹")
    return 0


def cmd_import(service: TrackerService, args: argparse.Namespace) -> int:
    result = service.import_preview(args.file)
    if not result.success:
        return _fail(result)
    data = result.data or {}
    print(result.message)
    for skipped in data["skipped"]:
        print(f"  skipped #{skipped['index']}: {skipped['reason']}")
    print(f"Total: {data['total_minutes']:.2f} minutes")
    return 0


def cmd_report(service: TrackerService, args: argparse.Namespace) -> int:  # noqa: ARG001
    # Note: Using print() intentionally for stdout piping support
    print((service.report().data or {})["report"])
    return 0


def cmd_dashboard(service: TrackerService, args: argparse.Namespace) -> int:
    run_dashboard(host=args.host, port=args.port, service=service)
    return 0


def run_dashboard(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    service: TrackerService | None = None,
) -> None:
    """
    Launch the web dashboard.

    Args:
        host: Network interface to bind to. Default '127.0.0.1' for
            local-only access.
        port: TCP port for the HTTP server. Default 8000.
        service: Loaded service to serve. Default: built from Config.

    Returns:
        None. Blocks until server shutdown (Ctrl+C).

    Raises:
        OSError: If port is already in use.
    """
    from .web import run_dashboard as start_web

    _log(f"Starting dashboard at http://{host}:{port}", emoji="🚀")
    _log("Press Ctrl+C to stop")
    start_web(host=host, port=port, service=service)


COMMANDS: dict[str, Callable[[TrackerService, argparse.Namespace], int]] = {
    "start": cmd_start,
    "end": cmd_end,
    "status": cmd_status,
    "list": cmd_list,
    "calendar": cmd_calendar,
    "delete": cmd_delete,
    "reset": cmd_reset,
    "import": cmd_import,
    "report": cmd_report,
    "dashboard": cmd_dashboard,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with global options and subcommands."""
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Study Session Tracker - time study sessions and review them by day",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--storage-dir",
        default=None,
        help="Local storage directory (default: $STUDY_TRACKER_DIR or .study_tracker)",
    )
    parser.add_argument(
        "--import-file",
        default=None,
        help="Legacy import file merged on load (default: $STUDY_TRACKER_IMPORT_FILE)",
    )
    parser.add_argument(
        "--backend",
        choices=["local", "remote"],
        default=None,
        help="Durable backend (default: $STUDY_TRACKER_BACKEND or local)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    start_parser = subparsers.add_parser("start", help="Start the study timer")
    start_parser.add_argument("task", help="What you are studying")

    subparsers.add_parser("end", help="End the running session and save it")
    subparsers.add_parser("status", help="Show timer state and today's total")

    list_parser = subparsers.add_parser("list", help="List sessions")
    list_parser.add_argument("--date", default=None, help="Only this day (YYYY-MM-DD)")

    subparsers.add_parser("calendar", help="Per-day totals with intensity")

    delete_parser = subparsers.add_parser("delete", help="Delete a locally created session")
    delete_parser.add_argument("ref", help="Session ref as shown by `list`")

    reset_parser = subparsers.add_parser("reset", help="Delete ALL persisted sessions")
    reset_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm the destructive reset",
    )

    import_parser = subparsers.add_parser("import", help="Validate a legacy import file")
    import_parser.add_argument("file", help="JSON array written by the spreadsheet converter")

    subparsers.add_parser("report", help="Print text summary to stdout")

    dashboard_parser = subparsers.add_parser("dashboard", help="Launch web dashboard")
    dashboard_parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help=f"Bind address (default: {DEFAULT_HOST})",
    )
    dashboard_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port number (default: {DEFAULT_PORT})",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main CLI entry point for Study Session Tracker.

    Parses command-line arguments, builds the service from the global
    options and dispatches to the subcommand handler. Without a
    subcommand, prints the status.

    Args:
        argv: Argument list. Default: sys.argv[1:]

    Returns:
        Exit code 0 for success, 1 when the action failed.

    Raises:
        SystemExit: On --help or argument parsing errors.

    Example:
        >>> # From command line:
        >>> # study-tracker start "Linear algebra"
        >>> sys.exit(main())  # Typical usage pattern
    """
    args = build_parser().parse_args(argv)
    _get_logger()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        service = build_service(args)
    except StudyTrackerError as e:
        _get_logger().error(f"❌ Cannot start tracker: {e}")
        return 1

    handler = COMMANDS.get(args.command or "status", cmd_status)
    return handler(service, args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
