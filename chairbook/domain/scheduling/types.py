"""Value types shared by the scheduling core."""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    HOLD = "hold"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Active appointments occupy time and take part in overlap checks"""
        return self is not AppointmentStatus.CANCELLED


class RecurrencePattern(str, enum.Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class Interval:
    """Half-open time interval ``[start, end)``"""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class Occurrence:
    """One generated instance of a recurring request, keyed by its start"""

    index: int
    start: datetime
    end: datetime

    @property
    def key(self) -> datetime:
        return self.start


@dataclass(frozen=True)
class Candidate:
    """Interval proposed for writing; ``exclude_id`` skips the row being updated"""

    start: datetime
    end: datetime
    exclude_id: Optional[str] = None
