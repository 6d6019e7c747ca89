"""Version information for study-session-tracker."""

__version__ = "1.0.0"
__version_date__ = "2026-10-18"

__title__ = "study_tracker"
__description__ = "Study session timer with per-day aggregation and heat-map calendar"
__url__ = "https://github.com/study-tracker/study-session-tracker"

__author__ = "Study Tracker Contributors"

__license__ = "MIT"
__copyright__ = "Copyright 2026 Study Tracker Contributors"

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
