"""Client-side access to the scheduling API."""

from .api import ApiError, SchedulingApiClient
from .state import CalendarState, conflicting_starts

__all__ = ["ApiError", "CalendarState", "SchedulingApiClient", "conflicting_starts"]
