"""
Scheduling core: interval arithmetic, overlap detection and recurrence expansion.

These modules are pure and know nothing about the database or HTTP; the
appointments domain drives them from its service layer.
"""

from .conflicts import find_conflicts, has_conflict
from .intervals import add_months, add_occurrence, duration_minutes, overlaps, shift_by_days
from .recurrence import Expansion, RecurrenceRequest, expand
from .types import AppointmentStatus, Candidate, Interval, Occurrence, RecurrencePattern

__all__ = [
    "AppointmentStatus",
    "Candidate",
    "Expansion",
    "Interval",
    "Occurrence",
    "RecurrencePattern",
    "RecurrenceRequest",
    "add_months",
    "add_occurrence",
    "duration_minutes",
    "expand",
    "find_conflicts",
    "has_conflict",
    "overlaps",
    "shift_by_days",
]
