"""
Scheduling engine - business rules for appointments.

Owns the invariant that no two active (non-cancelled) appointments of one
business overlap. Every write path (single create, recurring commit, update,
reschedule, future-scope edit) runs its overlap check and its write inside one
transaction that holds the schedule lock, and rolls back on any failure.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from ...config import MIN_APPOINTMENT_MINUTES, RECURRENCE_MAX_COUNT, RECURRENCE_MIN_COUNT
from ...exceptions import ConflictError, NotFoundError, ValidationError
from ...models import Appointment, User, generate_id
from ...shared.transactions import guarded_write
from ..catalog.repository import ServiceRepository
from ..clients.repository import ClientRepository
from ..scheduling.conflicts import find_conflicts
from ..scheduling.intervals import as_utc, duration_minutes, overlaps
from ..scheduling.recurrence import expand
from ..scheduling.types import AppointmentStatus, Candidate, Interval, Occurrence
from .repository import AppointmentRepository
from .schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    OccurrencePreview,
    RecurrencePreviewRequest,
    RecurrenceRule,
)

logger = logging.getLogger(__name__)

_TIME_FIELDS = ("startUtc", "endUtc")
_REQUIRED_FIELDS = ("clientId", "serviceId", "startUtc", "endUtc", "status")


def _iso(value: datetime) -> str:
    return as_utc(value).isoformat().replace("+00:00", "Z")


class SchedulingEngine:
    """Service layer for appointment scheduling"""

    def __init__(
        self,
        db: Session,
        *,
        min_minutes: int = MIN_APPOINTMENT_MINUTES,
        min_count: int = RECURRENCE_MIN_COUNT,
        max_count: int = RECURRENCE_MAX_COUNT,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.clients = ClientRepository()
        self.services = ServiceRepository()
        self.min_minutes = min_minutes
        self.min_count = min_count
        self.max_count = max_count

    # ========================================================================
    # READS
    # ========================================================================

    def list_appointments(
        self,
        user: User,
        window_start: datetime,
        window_end: datetime,
        status: Optional[AppointmentStatus] = None,
    ) -> list[Appointment]:
        """Appointments intersecting ``[window_start, window_end)`` with client and service loaded"""
        if window_end <= window_start:
            raise ValidationError("'to' must be after 'from'")
        return self.repo.list_in_window(
            self.db, user.id, window_start, window_end, status=status, with_details=True
        )

    def get_appointment(self, appointment_id: str, user: User) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id, user.id, with_details=True)
        if not appointment:
            raise NotFoundError("Appointment not found", details={"appointmentId": appointment_id})
        return appointment

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def _validate_interval(self, start: datetime, end: datetime) -> None:
        if end <= start:
            raise ValidationError(
                "End time must be after start time",
                details={"startUtc": _iso(start), "endUtc": _iso(end)},
            )
        if duration_minutes(start, end) < self.min_minutes:
            raise ValidationError(
                f"Appointments must last at least {self.min_minutes} minutes",
                details={"minimumMinutes": self.min_minutes},
            )

    def _validate_initial_status(self, status: AppointmentStatus) -> None:
        if status is AppointmentStatus.CANCELLED:
            raise ValidationError("New appointments must be 'confirmed' or 'hold'")

    def _validate_transition(self, current: AppointmentStatus, new: AppointmentStatus) -> None:
        if current is AppointmentStatus.CANCELLED and new is not AppointmentStatus.CANCELLED:
            raise ValidationError(
                "Cancelled appointments cannot be reactivated; create a new appointment instead",
                details={"appointmentStatus": current.value, "requestedStatus": new.value},
            )

    def _validate_recurrence(self, rule: RecurrenceRule) -> None:
        if not self.min_count <= rule.count <= self.max_count:
            raise ValidationError(
                f"Recurrence count must be between {self.min_count} and {self.max_count}",
                details={"count": rule.count},
            )

    def _ensure_references(
        self, user: User, client_id: Optional[str], service_id: Optional[str]
    ) -> None:
        if client_id is not None and not self.clients.client_exists(self.db, client_id, user.id):
            raise NotFoundError("Client not found", details={"clientId": client_id})
        if service_id is not None and not self.services.service_exists(
            self.db, service_id, user.id
        ):
            raise NotFoundError("Service not found", details={"serviceId": service_id})

    def _get_owned(self, appointment_id: str, user: User) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id, user.id)
        if not appointment:
            raise NotFoundError("Appointment not found", details={"appointmentId": appointment_id})
        return appointment

    # ========================================================================
    # CONFLICT CHECKS
    # ========================================================================

    def _conflicts_with_schedule(
        self,
        user: User,
        start: datetime,
        end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> list[Appointment]:
        """Persisted active appointments overlapping ``[start, end)``"""
        excluded = set(exclude_ids)
        existing = [
            a
            for a in self.repo.list_in_window(self.db, user.id, start, end)
            if a.id not in excluded
        ]
        return find_conflicts(Candidate(start, end), existing)

    def _assert_free(
        self,
        user: User,
        start: datetime,
        end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> None:
        conflicts = self._conflicts_with_schedule(user, start, end, exclude_ids)
        if conflicts:
            logger.warning(
                f"Rejected {_iso(start)} - {_iso(end)} for user_id {user.id}: "
                f"overlaps {[a.id for a in conflicts]}"
            )
            raise ConflictError(
                "The requested time overlaps an existing appointment",
                conflicting_ids=[a.id for a in conflicts],
                occurrence_start=_iso(start),
            )

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    @contextmanager
    def _schedule_write(self, user: User):
        """Run a check-then-write unit under the schedule lock, all or nothing"""
        with guarded_write(self.db, "save the schedule"):
            self.repo.lock_schedule(self.db, user.id)
            yield
            self.db.commit()

    # ========================================================================
    # CREATE
    # ========================================================================

    def create_single(self, data: AppointmentCreate, user: User) -> Appointment:
        """Create one appointment after validating references and the overlap invariant"""
        self._validate_interval(data.startUtc, data.endUtc)
        self._validate_initial_status(data.status)

        with self._schedule_write(user):
            self._ensure_references(user, data.clientId, data.serviceId)
            self._assert_free(user, data.startUtc, data.endUtc)

            appointment = Appointment(
                user_id=user.id,
                client_id=data.clientId,
                service_id=data.serviceId,
                start_utc=data.startUtc,
                end_utc=data.endUtc,
                status=data.status,
                notes=data.notes,
            )
            self.repo.add_appointments(self.db, [appointment])

        logger.info(f"Created appointment {appointment.id} at {_iso(appointment.start_utc)}")
        return appointment

    def _expand(self, data) -> list[Occurrence]:
        rule = data.recurrence
        return list(expand(data.startUtc, data.endUtc, rule.pattern, rule.count))

    def preview_recurrence(self, data: RecurrencePreviewRequest, user: User) -> list[OccurrencePreview]:
        """
        Dry-run a recurring request.

        Each occurrence is checked independently against the persisted schedule
        (not against its siblings). Nothing is written.
        """
        self._validate_interval(data.startUtc, data.endUtc)
        self._validate_initial_status(data.status)
        self._validate_recurrence(data.recurrence)
        self._ensure_references(user, data.clientId, data.serviceId)

        occurrences = self._expand(data)
        existing = self.repo.list_in_window(
            self.db, user.id, occurrences[0].start, occurrences[-1].end
        )

        previews = []
        for occurrence in occurrences:
            conflicts = find_conflicts(Candidate(occurrence.start, occurrence.end), existing)
            previews.append(
                OccurrencePreview(
                    startUtc=as_utc(occurrence.start),
                    endUtc=as_utc(occurrence.end),
                    hasConflict=bool(conflicts),
                    conflictingIds=[a.id for a in conflicts],
                )
            )
        return previews

    def create_recurring(
        self, data: AppointmentCreate, user: User, exclude: Iterable[datetime] = ()
    ) -> list[Appointment]:
        """
        Commit a recurring series.

        Occurrences whose start is in ``exclude`` are skipped. Every remaining
        occurrence is re-checked against the schedule and the occurrences kept
        before it; a single conflict rejects the whole series.
        """
        if data.recurrence is None:
            raise ValidationError("Recurrence is required for a recurring appointment")
        self._validate_interval(data.startUtc, data.endUtc)
        self._validate_initial_status(data.status)
        self._validate_recurrence(data.recurrence)

        excluded = set(exclude)
        occurrences = [o for o in self._expand(data) if o.key not in excluded]
        if not occurrences:
            raise ValidationError("Every occurrence of the series was excluded")

        group_id = generate_id()
        rule = data.recurrence.model_dump(mode="json")

        with self._schedule_write(user):
            self._ensure_references(user, data.clientId, data.serviceId)

            accepted: list[Occurrence] = []
            for occurrence in occurrences:
                self._assert_free(user, occurrence.start, occurrence.end)
                for sibling in accepted:
                    if overlaps(
                        Interval(occurrence.start, occurrence.end),
                        Interval(sibling.start, sibling.end),
                    ):
                        raise ConflictError(
                            "Occurrences of the series overlap each other",
                            occurrence_start=_iso(occurrence.start),
                        )
                accepted.append(occurrence)

            appointments = [
                Appointment(
                    user_id=user.id,
                    client_id=data.clientId,
                    service_id=data.serviceId,
                    start_utc=occurrence.start,
                    end_utc=occurrence.end,
                    status=data.status,
                    notes=data.notes,
                    recurrence_group_id=group_id,
                    recurrence_rule=rule,
                )
                for occurrence in accepted
            ]
            self.repo.add_appointments(self.db, appointments)

        logger.info(
            f"Created recurring series {group_id} with {len(appointments)} occurrence(s), "
            f"{len(excluded)} excluded"
        )
        return appointments

    def create(self, data: AppointmentCreate, user: User) -> list[Appointment]:
        """Create a one-off appointment, or a series when ``recurrence`` is set"""
        if data.recurrence is not None:
            return self.create_recurring(data, user, data.excludeDates)
        return [self.create_single(data, user)]

    # ========================================================================
    # UPDATE
    # ========================================================================

    def _patch_fields(self, patch: AppointmentUpdate) -> dict[str, Any]:
        changes = patch.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null", details={"field": field})
        return changes

    def _plan_update(
        self, appointment: Appointment, changes: dict[str, Any], start: datetime, end: datetime
    ) -> dict[str, Any]:
        """Validate the merged state of ``appointment`` without writing it"""
        current = AppointmentStatus(appointment.status)
        status = changes.get("status", current)
        self._validate_transition(current, status)

        if start != appointment.start_utc or end != appointment.end_utc:
            self._validate_interval(start, end)

        return {
            "client_id": changes.get("clientId", appointment.client_id),
            "service_id": changes.get("serviceId", appointment.service_id),
            "start_utc": start,
            "end_utc": end,
            "status": status,
            "notes": changes["notes"] if "notes" in changes else appointment.notes,
        }

    @staticmethod
    def _needs_overlap_check(appointment: Appointment, planned: dict[str, Any]) -> bool:
        if not planned["status"].is_active:
            return False
        # Cancelled rows never become active again, so only a move needs checking
        return (
            planned["start_utc"] != appointment.start_utc
            or planned["end_utc"] != appointment.end_utc
        )

    @staticmethod
    def _apply(appointment: Appointment, planned: dict[str, Any]) -> None:
        for column, value in planned.items():
            setattr(appointment, column, value)

    def update(self, appointment_id: str, patch: AppointmentUpdate, user: User) -> Appointment:
        """Merge ``patch`` onto one appointment, re-checking overlaps when it moves"""
        changes = self._patch_fields(patch)

        with self._schedule_write(user):
            appointment = self._get_owned(appointment_id, user)
            planned = self._plan_update(
                appointment,
                changes,
                changes.get("startUtc", appointment.start_utc),
                changes.get("endUtc", appointment.end_utc),
            )
            self._ensure_references(user, changes.get("clientId"), changes.get("serviceId"))
            if self._needs_overlap_check(appointment, planned):
                self._assert_free(
                    user, planned["start_utc"], planned["end_utc"], exclude_ids=[appointment.id]
                )
            self._apply(appointment, planned)
            self.db.flush()

        logger.info(f"Updated appointment {appointment_id}: {sorted(changes)}")
        return appointment

    def reschedule(
        self, appointment_id: str, start: datetime, end: datetime, user: User
    ) -> Appointment:
        """Move an appointment to a new interval (drag-and-drop)"""
        return self.update(appointment_id, AppointmentUpdate(startUtc=start, endUtc=end), user)

    def change_status(
        self, appointment_id: str, status: AppointmentStatus, user: User
    ) -> Appointment:
        return self.update(appointment_id, AppointmentUpdate(status=status), user)

    def edit_future_scope(
        self, appointment_id: str, patch: AppointmentUpdate, user: User
    ) -> list[Appointment]:
        """
        Apply ``patch`` to an occurrence and every later member of its series.

        Non-time fields are copied as given. A change to the target's start or
        end is applied to each sibling as the same offset, which keeps the
        series spacing. The batch is checked against the schedule (minus the
        batch itself) and against its own moved members, then written together.
        """
        changes = self._patch_fields(patch)

        with self._schedule_write(user):
            target = self._get_owned(appointment_id, user)
            if target.recurrence_group_id:
                batch = self.repo.get_future_siblings(
                    self.db, user.id, target.recurrence_group_id, target.start_utc
                )
            else:
                batch = [target]

            start_shift = changes.get("startUtc", target.start_utc) - target.start_utc
            end_shift = changes.get("endUtc", target.end_utc) - target.end_utc
            self._ensure_references(user, changes.get("clientId"), changes.get("serviceId"))

            # Cancelled siblings stay cancelled; only the target can reject a status change
            sibling_changes = {k: v for k, v in changes.items() if k != "status"}
            plans = [
                (
                    appointment,
                    self._plan_update(
                        appointment,
                        changes
                        if appointment.id == target.id
                        or AppointmentStatus(appointment.status).is_active
                        else sibling_changes,
                        appointment.start_utc + start_shift,
                        appointment.end_utc + end_shift,
                    ),
                )
                for appointment in batch
            ]

            batch_ids = [appointment.id for appointment in batch]
            checked: list[dict[str, Any]] = []
            for appointment, planned in plans:
                if planned["status"].is_active:
                    for other in checked:
                        if overlaps(
                            Interval(planned["start_utc"], planned["end_utc"]),
                            Interval(other["start_utc"], other["end_utc"]),
                        ):
                            raise ConflictError(
                                "Edited occurrences of the series overlap each other",
                                occurrence_start=_iso(planned["start_utc"]),
                            )
                    checked.append(planned)
                if self._needs_overlap_check(appointment, planned):
                    self._assert_free(
                        user, planned["start_utc"], planned["end_utc"], exclude_ids=batch_ids
                    )

            for appointment, planned in plans:
                self._apply(appointment, planned)
            self.db.flush()

        logger.info(
            f"Updated {len(batch)} occurrence(s) from appointment {appointment_id} onwards: "
            f"{sorted(changes)}"
        )
        return batch

    # ========================================================================
    # DELETE
    # ========================================================================

    def delete_single(self, appointment_id: str, user: User) -> list[str]:
        """Hard-delete one appointment regardless of series membership"""
        with self._schedule_write(user):
            appointment = self._get_owned(appointment_id, user)
            self.repo.delete_appointment(self.db, appointment)

        logger.info(f"Deleted appointment {appointment_id}")
        return [appointment_id]

    def delete_future(self, appointment_id: str, user: User) -> list[str]:
        """Hard-delete an occurrence and every later member of its series"""
        with self._schedule_write(user):
            target = self._get_owned(appointment_id, user)
            if not target.recurrence_group_id:
                self.repo.delete_appointment(self.db, target)
                deleted = [target.id]
            else:
                deleted = self.repo.delete_future(
                    self.db, user.id, target.recurrence_group_id, target.start_utc
                )

        logger.info(f"Deleted {len(deleted)} appointment(s) from {appointment_id} onwards")
        return deleted
