"""Appointment router - FastAPI endpoints for scheduling"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ..scheduling.intervals import to_utc_naive
from ..scheduling.types import AppointmentStatus
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    AppointmentWithDetails,
    RecurrencePreviewRequest,
    RescheduleRequest,
    Scope,
    StatusChangeRequest,
)
from .service import SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_scheduling_engine(db: Session = Depends(get_db)) -> SchedulingEngine:
    """Dependency injection for SchedulingEngine"""
    return SchedulingEngine(db)


# ============================================================================
# QUERIES
# ============================================================================


@router.get("")
async def list_appointments(
    from_: datetime = Query(..., alias="from", description="Window start (inclusive)"),
    to: datetime = Query(..., description="Window end (exclusive)"),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """List appointments intersecting [from, to) with client and service details"""
    appointments = engine.list_appointments(
        current_user, to_utc_naive(from_), to_utc_naive(to), status=status_filter
    )
    return {"data": [AppointmentWithDetails.from_model(a) for a in appointments]}


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    appointment = engine.get_appointment(appointment_id, current_user)
    return {"data": AppointmentWithDetails.from_model(appointment)}


# ============================================================================
# CREATE
# ============================================================================


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Create an appointment.

    With ``recurrence`` the whole series is committed (minus ``excludeDates``)
    and a list is returned; callers preview the series first.
    """
    appointments = engine.create(data, current_user)
    if data.recurrence is not None:
        return {"data": [AppointmentResponse.from_model(a) for a in appointments]}
    return {"data": AppointmentResponse.from_model(appointments[0])}


@router.post("/preview-recurrence")
async def preview_recurrence(
    data: RecurrencePreviewRequest,
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Expand a recurring request and flag occurrences that hit existing appointments"""
    return {"data": engine.preview_recurrence(data, current_user)}


# ============================================================================
# UPDATE
# ============================================================================


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    scope: Scope = Query(Scope.SINGLE),
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Patch an appointment, or with scope=future the rest of its series"""
    if scope is Scope.FUTURE:
        appointments = engine.edit_future_scope(appointment_id, data, current_user)
        return {"data": [AppointmentResponse.from_model(a) for a in appointments]}
    appointment = engine.update(appointment_id, data, current_user)
    return {"data": AppointmentResponse.from_model(appointment)}


@router.patch("/{appointment_id}/reschedule")
async def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Move an appointment to a new interval"""
    appointment = engine.reschedule(appointment_id, data.startUtc, data.endUtc, current_user)
    return {"data": AppointmentResponse.from_model(appointment)}


@router.patch("/{appointment_id}/status")
async def change_appointment_status(
    appointment_id: str,
    data: StatusChangeRequest,
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    appointment = engine.change_status(appointment_id, data.status, current_user)
    return {"data": AppointmentResponse.from_model(appointment)}


# ============================================================================
# DELETE
# ============================================================================


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    scope: Scope = Query(Scope.SINGLE),
    current_user: User = Depends(get_current_user),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Delete one appointment, or with scope=future it and the rest of its series"""
    if scope is Scope.FUTURE:
        deleted = engine.delete_future(appointment_id, current_user)
    else:
        deleted = engine.delete_single(appointment_id, current_user)
    return {"data": {"deletedIds": deleted}}
