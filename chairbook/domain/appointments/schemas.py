"""Appointment domain schemas - request and response models"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...domain.catalog.schemas import ServiceResponse
from ...domain.clients.schemas import ClientResponse
from ...domain.scheduling.intervals import as_utc, to_utc_naive
from ...domain.scheduling.types import AppointmentStatus, RecurrencePattern
from ...shared.validators import clean_optional, clean_required


class Scope(str, enum.Enum):
    """Breadth of an edit or delete across a recurrence group"""

    SINGLE = "single"
    FUTURE = "future"


class RecurrenceRule(BaseModel):
    pattern: RecurrencePattern
    count: int


class AppointmentBase(BaseModel):
    clientId: str
    serviceId: str
    startUtc: datetime
    endUtc: datetime
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    notes: Optional[str] = None

    @field_validator("clientId", "serviceId")
    @classmethod
    def validate_reference(cls, v, info):
        return clean_required(v, info.field_name)

    @field_validator("startUtc", "endUtc")
    @classmethod
    def normalize_utc(cls, v):
        return to_utc_naive(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return clean_optional(v)


class AppointmentCreate(AppointmentBase):
    """Single or recurring create; ``excludeDates`` names occurrence starts to skip"""

    recurrence: Optional[RecurrenceRule] = None
    excludeDates: list[datetime] = []

    @field_validator("excludeDates")
    @classmethod
    def normalize_excludes(cls, v):
        return [to_utc_naive(d) for d in v]


class RecurrencePreviewRequest(AppointmentBase):
    recurrence: RecurrenceRule


class AppointmentUpdate(BaseModel):
    """Partial patch; omitted fields keep their stored value"""

    clientId: Optional[str] = None
    serviceId: Optional[str] = None
    startUtc: Optional[datetime] = None
    endUtc: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

    @field_validator("startUtc", "endUtc")
    @classmethod
    def normalize_utc(cls, v):
        return to_utc_naive(v) if v is not None else v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return clean_optional(v)


class RescheduleRequest(BaseModel):
    startUtc: datetime
    endUtc: datetime

    @field_validator("startUtc", "endUtc")
    @classmethod
    def normalize_utc(cls, v):
        return to_utc_naive(v)


class StatusChangeRequest(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: str
    clientId: str
    serviceId: str
    startUtc: datetime
    endUtc: datetime
    status: AppointmentStatus
    notes: Optional[str]
    recurrenceGroupId: Optional[str]
    recurrenceRule: Optional[RecurrenceRule]
    createdAt: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def _fields(cls, appointment) -> dict:
        return {
            "id": appointment.id,
            "clientId": appointment.client_id,
            "serviceId": appointment.service_id,
            "startUtc": as_utc(appointment.start_utc),
            "endUtc": as_utc(appointment.end_utc),
            "status": appointment.status,
            "notes": appointment.notes,
            "recurrenceGroupId": appointment.recurrence_group_id,
            "recurrenceRule": appointment.recurrence_rule,
            "createdAt": as_utc(appointment.created_at) if appointment.created_at else None,
        }

    @classmethod
    def from_model(cls, appointment) -> "AppointmentResponse":
        return cls(**cls._fields(appointment))


class AppointmentWithDetails(AppointmentResponse):
    """Appointment with its client and service embedded, as listed on the calendar"""

    client: ClientResponse
    service: ServiceResponse

    @classmethod
    def from_model(cls, appointment) -> "AppointmentWithDetails":
        return cls(
            **cls._fields(appointment),
            client=ClientResponse.from_model(appointment.client),
            service=ServiceResponse.from_model(appointment.service),
        )


class OccurrencePreview(BaseModel):
    startUtc: datetime
    endUtc: datetime
    hasConflict: bool
    conflictingIds: list[str] = []
