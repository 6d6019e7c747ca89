"""
Package entry point for python -m execution.

USAGE:
    python -m study_tracker start "Organic chemistry"
    python -m study_tracker end
    python -m study_tracker calendar
    python -m study_tracker dashboard
"""

import sys

from study_tracker.cli import main

if __name__ == "__main__":
    sys.exit(main())
