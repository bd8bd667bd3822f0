"""
Status module: Administrative view of provider state.

Public API:
- StatusReporter: Snapshot and reset of provider registry state
"""

from app.status.reporter import StatusReporter, count_enabled

__all__ = ["StatusReporter", "count_enabled"]
