"""Overlap detection between a candidate interval and existing appointments."""

from typing import Iterable, Protocol

from .intervals import overlaps
from .types import AppointmentStatus, Candidate, Interval


class Scheduled(Protocol):
    id: str
    start_utc: object
    end_utc: object
    status: AppointmentStatus


def _blocks(candidate: Candidate, appointment: Scheduled) -> bool:
    if AppointmentStatus(appointment.status) is AppointmentStatus.CANCELLED:
        return False
    if candidate.exclude_id is not None and appointment.id == candidate.exclude_id:
        return False
    return overlaps(
        Interval(candidate.start, candidate.end),
        Interval(appointment.start_utc, appointment.end_utc),
    )


def find_conflicts(candidate: Candidate, existing: Iterable[Scheduled]) -> list[Scheduled]:
    """Return the active appointments (other than the excluded one) overlapping ``candidate``.

    Callers guarantee ``candidate.end > candidate.start``.
    """
    return [appointment for appointment in existing if _blocks(candidate, appointment)]


def has_conflict(candidate: Candidate, existing: Iterable[Scheduled]) -> bool:
    return any(_blocks(candidate, appointment) for appointment in existing)
