"""
Web dashboard module for Study Session Tracker.

PURPOSE: FastAPI-based web UI with htmx for timer actions.
AI CONTEXT: Thin surface over TrackerService; no business logic here.

FEATURES:
- Timer start/end, calendar heat map and per-day session list
- Server-side heat-map rendering (matplotlib, optional)
- JSON API mirroring every CLI action

USAGE:
    # Via CLI
    study-tracker dashboard

    # Programmatically
    from study_tracker.web import create_app
    app = create_app()
    # Run with uvicorn
"""

from .app import create_app, run_dashboard

__all__ = ["create_app", "run_dashboard"]
