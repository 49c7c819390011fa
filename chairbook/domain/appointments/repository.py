"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, User
from ..scheduling.types import AppointmentStatus


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def lock_schedule(db: Session, user_id: str) -> None:
        """
        Serialize schedule writes for one business.

        Locks the owner row for the rest of the transaction so two concurrent
        check-then-write sequences cannot both pass the overlap check. SQLite
        ignores FOR UPDATE and relies on its single-writer lock instead.
        """
        db.query(User.id).filter(User.id == user_id).with_for_update().one()

    @staticmethod
    def get_appointment(
        db: Session, appointment_id: str, user_id: str, with_details: bool = False
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.id == appointment_id, Appointment.user_id == user_id
        )
        if with_details:
            query = query.options(joinedload(Appointment.client), joinedload(Appointment.service))
        return query.first()

    @staticmethod
    def list_in_window(
        db: Session,
        user_id: str,
        window_start: datetime,
        window_end: datetime,
        status: Optional[AppointmentStatus] = None,
        with_details: bool = False,
    ) -> list[Appointment]:
        """Appointments intersecting ``[window_start, window_end)``, ordered by start"""
        query = db.query(Appointment).filter(
            Appointment.user_id == user_id,
            Appointment.start_utc < window_end,
            Appointment.end_utc > window_start,
        )
        if status is not None:
            query = query.filter(Appointment.status == status)
        if with_details:
            query = query.options(joinedload(Appointment.client), joinedload(Appointment.service))
        return query.order_by(Appointment.start_utc.asc()).all()

    @staticmethod
    def get_future_siblings(
        db: Session, user_id: str, group_id: str, start: datetime
    ) -> list[Appointment]:
        """Members of a recurrence group starting at or after ``start``"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.user_id == user_id,
                Appointment.recurrence_group_id == group_id,
                Appointment.start_utc >= start,
            )
            .order_by(Appointment.start_utc.asc())
            .all()
        )

    @staticmethod
    def add_appointments(db: Session, appointments: list[Appointment]) -> None:
        db.add_all(appointments)
        db.flush()

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()

    @staticmethod
    def delete_future(db: Session, user_id: str, group_id: str, start: datetime) -> list[str]:
        """Delete group members starting at or after ``start``; returns the deleted ids"""
        rows = (
            db.query(Appointment.id)
            .filter(
                Appointment.user_id == user_id,
                Appointment.recurrence_group_id == group_id,
                Appointment.start_utc >= start,
            )
            .all()
        )
        ids = [row.id for row in rows]
        if ids:
            db.query(Appointment).filter(Appointment.id.in_(ids)).delete(
                synchronize_session=False
            )
            db.flush()
        return ids
