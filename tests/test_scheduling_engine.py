"""Tests for SchedulingEngine against an in-memory database."""

import random
from datetime import datetime, timedelta

import pytest

from chairbook.domain.appointments.schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    RecurrencePreviewRequest,
)
from chairbook.domain.appointments.service import SchedulingEngine
from chairbook.domain.scheduling.intervals import overlaps
from chairbook.domain.scheduling.types import AppointmentStatus, Interval
from chairbook.exceptions import ConflictError, NotFoundError, ValidationError
from chairbook.models import Appointment

from .conftest import utc


@pytest.fixture
def engine(db):
    return SchedulingEngine(db)


@pytest.fixture
def book(engine, owner, client_row, service_row):
    """Create an appointment for the fixture client and service"""

    def _book(start, end, **fields):
        data = AppointmentCreate(
            clientId=client_row.id, serviceId=service_row.id, startUtc=start, endUtc=end, **fields
        )
        return engine.create(data, owner)

    return _book


def stored_count(db):
    return db.query(Appointment).count()


class TestCreateSingle:
    def test_creates_confirmed_by_default(self, book):
        (appointment,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        assert appointment.status == AppointmentStatus.CONFIRMED
        assert appointment.recurrence_group_id is None

    def test_touching_appointments_are_allowed(self, book, db):
        book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        book(utc(2026, 1, 5, 10), utc(2026, 1, 5, 11))
        assert stored_count(db) == 2

    def test_overlap_is_rejected_with_the_conflicting_id(self, book, db):
        (first,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))

        with pytest.raises(ConflictError) as exc_info:
            book(utc(2026, 1, 5, 9, 30), utc(2026, 1, 5, 10, 30))

        assert exc_info.value.conflicting_ids == [first.id]
        assert exc_info.value.details["occurrenceStart"] == "2026-01-05T09:30:00Z"
        assert stored_count(db) == 1

    def test_cancelled_appointments_never_block(self, book, engine, owner):
        (first,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        engine.change_status(first.id, AppointmentStatus.CANCELLED, owner)

        (second,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        assert second.id != first.id

    def test_holds_block_like_confirmed(self, book):
        book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10), status="hold")
        with pytest.raises(ConflictError):
            book(utc(2026, 1, 5, 9, 15), utc(2026, 1, 5, 9, 45))

    def test_end_before_start_is_invalid(self, book, db):
        with pytest.raises(ValidationError):
            book(utc(2026, 1, 5, 10), utc(2026, 1, 5, 9))
        assert stored_count(db) == 0

    def test_minimum_duration(self, book):
        with pytest.raises(ValidationError) as exc_info:
            book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 9, 10))
        assert exc_info.value.details == {"minimumMinutes": 15}

    def test_cannot_create_cancelled(self, book):
        with pytest.raises(ValidationError):
            book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10), status="cancelled")

    def test_unknown_client(self, engine, owner, service_row, db):
        data = AppointmentCreate(
            clientId="missing",
            serviceId=service_row.id,
            startUtc=utc(2026, 1, 5, 9),
            endUtc=utc(2026, 1, 5, 10),
        )
        with pytest.raises(NotFoundError) as exc_info:
            engine.create(data, owner)
        assert exc_info.value.details == {"clientId": "missing"}
        assert stored_count(db) == 0


class TestUpdate:
    def test_small_move_does_not_conflict_with_itself(self, book, engine, owner):
        (appointment,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))

        moved = engine.reschedule(
            appointment.id, utc(2026, 1, 5, 9, 5), utc(2026, 1, 5, 10, 5), owner
        )

        assert moved.start_utc == utc(2026, 1, 5, 9, 5)
        assert moved.end_utc == utc(2026, 1, 5, 10, 5)

    def test_rejected_move_leaves_the_store_unchanged(self, book, engine, owner, db):
        book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        (other,) = book(utc(2026, 1, 5, 11), utc(2026, 1, 5, 12))

        with pytest.raises(ConflictError):
            engine.reschedule(other.id, utc(2026, 1, 5, 9, 30), utc(2026, 1, 5, 10, 30), owner)

        stored = db.get(Appointment, other.id)
        assert stored.start_utc == utc(2026, 1, 5, 11)
        assert stored.end_utc == utc(2026, 1, 5, 12)

    def test_notes_only_patch(self, book, engine, owner):
        (appointment,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        updated = engine.update(appointment.id, AppointmentUpdate(notes="  bring photos "), owner)
        assert updated.notes == "bring photos"
        assert updated.start_utc == utc(2026, 1, 5, 9)

    def test_null_required_field_is_rejected(self, book, engine, owner):
        (appointment,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        with pytest.raises(ValidationError):
            engine.update(appointment.id, AppointmentUpdate(startUtc=None), owner)

    def test_hold_can_be_confirmed(self, book, engine, owner):
        (appointment,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10), status="hold")
        updated = engine.change_status(appointment.id, AppointmentStatus.CONFIRMED, owner)
        assert updated.status == AppointmentStatus.CONFIRMED

    def test_cancelled_is_terminal(self, book, engine, owner):
        (appointment,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))
        engine.change_status(appointment.id, AppointmentStatus.CANCELLED, owner)

        with pytest.raises(ValidationError):
            engine.change_status(appointment.id, AppointmentStatus.CONFIRMED, owner)

    def test_cancelled_row_under_a_new_booking_can_still_be_edited(self, book, engine, owner):
        (held,) = book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10), status="hold")
        engine.change_status(held.id, AppointmentStatus.CANCELLED, owner)
        book(utc(2026, 1, 5, 9), utc(2026, 1, 5, 10))

        updated = engine.update(held.id, AppointmentUpdate(notes="called to cancel"), owner)

        assert updated.notes == "called to cancel"
        assert updated.status == AppointmentStatus.CANCELLED

    def test_missing_appointment(self, engine, owner):
        with pytest.raises(NotFoundError):
            engine.update("missing", AppointmentUpdate(notes="x"), owner)


class TestRecurring:
    def weekly(self, client_row, service_row, count=4, **fields):
        return AppointmentCreate(
            clientId=client_row.id,
            serviceId=service_row.id,
            startUtc=utc(2026, 1, 5, 10),
            endUtc=utc(2026, 1, 5, 11),
            recurrence={"pattern": "weekly", "count": count},
            **fields,
        )

    def preview_request(self, client_row, service_row, count=4):
        return RecurrencePreviewRequest(
            **self.weekly(client_row, service_row, count).model_dump(
                exclude={"excludeDates"}
            )
        )

    def test_preview_flags_conflicting_occurrences(
        self, book, engine, owner, client_row, service_row, db
    ):
        (blocker,) = book(utc(2026, 1, 19, 10, 30), utc(2026, 1, 19, 11, 30))
        request = self.preview_request(client_row, service_row)

        preview = engine.preview_recurrence(request, owner)

        assert [p.hasConflict for p in preview] == [False, False, True, False]
        assert preview[2].conflictingIds == [blocker.id]
        assert engine.preview_recurrence(request, owner) == preview
        assert stored_count(db) == 1

    def test_excluded_occurrences_are_skipped(self, book, engine, owner, client_row, service_row):
        book(utc(2026, 1, 19, 10, 30), utc(2026, 1, 19, 11, 30))
        data = self.weekly(client_row, service_row, excludeDates=[utc(2026, 1, 19, 10)])

        created = engine.create(data, owner)

        assert [a.start_utc.day for a in created] == [5, 12, 26]
        assert len({a.recurrence_group_id for a in created}) == 1
        assert created[0].recurrence_group_id is not None
        assert created[0].recurrence_rule == {"pattern": "weekly", "count": 4}

    def test_one_conflict_rejects_the_whole_series(
        self, book, engine, owner, client_row, service_row, db
    ):
        book(utc(2026, 1, 19, 10, 30), utc(2026, 1, 19, 11, 30))

        with pytest.raises(ConflictError) as exc_info:
            engine.create(self.weekly(client_row, service_row), owner)

        assert exc_info.value.occurrence_start == "2026-01-19T10:00:00Z"
        assert stored_count(db) == 1

    @pytest.mark.parametrize("count", [1, 53])
    def test_count_bounds(self, engine, owner, client_row, service_row, count):
        with pytest.raises(ValidationError):
            engine.create(self.weekly(client_row, service_row, count=count), owner)

    def test_all_excluded_is_invalid(self, engine, owner, client_row, service_row):
        data = self.weekly(
            client_row,
            service_row,
            count=2,
            excludeDates=[utc(2026, 1, 5, 10), utc(2026, 1, 12, 10)],
        )
        with pytest.raises(ValidationError):
            engine.create(data, owner)

    def test_delete_future_keeps_earlier_occurrences(
        self, engine, owner, client_row, service_row, db
    ):
        series = engine.create(self.weekly(client_row, service_row, count=5), owner)
        ids = [a.id for a in series]

        deleted = engine.delete_future(ids[2], owner)

        assert sorted(deleted) == sorted(ids[2:])
        remaining = [a.id for a in db.query(Appointment).order_by(Appointment.start_utc)]
        assert remaining == ids[:2]

    def test_delete_single_touches_one_occurrence(
        self, engine, owner, client_row, service_row, db
    ):
        series = engine.create(self.weekly(client_row, service_row), owner)
        assert engine.delete_single(series[1].id, owner) == [series[1].id]
        assert stored_count(db) == 3

    def test_future_edit_shifts_later_occurrences(
        self, engine, owner, client_row, service_row, db
    ):
        series = engine.create(self.weekly(client_row, service_row, count=5), owner)
        ids = [a.id for a in series]
        patch = AppointmentUpdate(
            startUtc=utc(2026, 1, 19, 14), endUtc=utc(2026, 1, 19, 15), notes="afternoons now"
        )

        edited = engine.edit_future_scope(ids[2], patch, owner)

        assert [a.id for a in edited] == ids[2:]
        rows = db.query(Appointment).order_by(Appointment.start_utc).all()
        assert [(r.start_utc.day, r.start_utc.hour) for r in rows] == [
            (5, 10),
            (12, 10),
            (19, 14),
            (26, 14),
            (2, 14),
        ]
        assert [r.notes for r in rows] == [None, None] + ["afternoons now"] * 3

    def test_future_edit_is_all_or_nothing(
        self, book, engine, owner, client_row, service_row, db
    ):
        series = engine.create(self.weekly(client_row, service_row), owner)
        book(utc(2026, 1, 26, 14), utc(2026, 1, 26, 15))
        patch = AppointmentUpdate(startUtc=utc(2026, 1, 12, 14), endUtc=utc(2026, 1, 12, 15))

        with pytest.raises(ConflictError):
            engine.edit_future_scope(series[1].id, patch, owner)

        rows = (
            db.query(Appointment)
            .filter(Appointment.recurrence_group_id == series[0].recurrence_group_id)
            .all()
        )
        assert all(r.start_utc.hour == 10 for r in rows)


def test_random_operations_never_leave_overlaps(book, engine, owner):
    """Random creates and moves: whatever is accepted stays pairwise disjoint"""
    rng = random.Random(20260105)
    base = utc(2026, 1, 5, 8)
    created = []

    for _ in range(60):
        start = base + timedelta(minutes=15 * rng.randrange(0, 40))
        end = start + timedelta(minutes=15 * rng.randrange(1, 8))
        try:
            if created and rng.random() < 0.4:
                engine.reschedule(rng.choice(created), start, end, owner)
            else:
                created.extend(a.id for a in book(start, end))
        except ConflictError:
            pass

    window = engine.list_appointments(owner, base, base + timedelta(days=1))
    active = [a for a in window if AppointmentStatus(a.status).is_active]
    for i, a in enumerate(active):
        for b in active[i + 1 :]:
            assert not overlaps(Interval(a.start_utc, a.end_utc), Interval(b.start_utc, b.end_utc))
    assert active


def test_list_requires_a_forward_window(engine, owner):
    with pytest.raises(ValidationError):
        engine.list_appointments(owner, datetime(2026, 1, 6), datetime(2026, 1, 5))
