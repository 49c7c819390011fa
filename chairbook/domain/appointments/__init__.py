"""Appointments domain: the scheduling engine and its HTTP surface."""

from .router import router
from .service import SchedulingEngine

__all__ = ["router", "SchedulingEngine"]
