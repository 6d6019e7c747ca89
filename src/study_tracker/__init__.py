"""
Study Session Tracker.

PURPOSE: Time study sessions and aggregate study time per calendar day.
AI CONTEXT: The core is the session lifecycle and aggregation engine.

PACKAGE STRUCTURE:
- models.py: Session value, Origin/Intensity enums, date normalization
- storage.py: Local JSON blob store and active-timer persistence
- remote.py: REST table backend that assigns ids on insert
- importer.py: Legacy spreadsheet-export records -> Session values
- merger.py: Working collection, merge and delete authorization
- timer.py: Idle/Running timer state machine
- aggregation.py: Per-date totals and intensity buckets
- tracker_service.py: Application layer used by CLI and web dashboard
- presenters.py: View models and heat-map chart rendering
- config.py: Configuration constants and environment settings

QUICK START:
    study-tracker start "Linear algebra"
    study-tracker end
    study-tracker calendar

    # Web dashboard
    study-tracker dashboard --port 8000
"""

from study_tracker.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__author__",
    "__license__",
    "__copyright__",
]
