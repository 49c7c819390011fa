"""Service catalog schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...domain.scheduling.intervals import as_utc
from ...shared.validators import clean_required


class ServiceCreate(BaseModel):
    name: str
    durationMinutes: int
    priceCents: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return clean_required(v, "Name")

    @field_validator("durationMinutes")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v

    @field_validator("priceCents")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return v


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    durationMinutes: Optional[int] = None
    priceCents: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return clean_required(v, "Name")

    @field_validator("durationMinutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v

    @field_validator("priceCents")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return v


class ServiceResponse(BaseModel):
    id: str
    name: str
    durationMinutes: int
    priceCents: Optional[int]
    createdAt: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, service) -> "ServiceResponse":
        return cls(
            id=service.id,
            name=service.name,
            durationMinutes=service.duration_minutes,
            priceCents=service.price_cents,
            createdAt=as_utc(service.created_at) if service.created_at else None,
        )
