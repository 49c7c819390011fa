"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...domain.scheduling.intervals import as_utc
from ...shared.validators import clean_optional, clean_required, validate_email, validate_phone


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    firstName: str
    lastName: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        return clean_required(v, "First name")

    @field_validator("lastName")
    @classmethod
    def validate_last_name(cls, v):
        return clean_required(v, "Last name")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return clean_optional(v)


class ClientUpdate(BaseModel):
    """Schema for updating an existing client; omitted fields are left untouched"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        if v is None:
            return v
        return clean_required(v, "First name")

    @field_validator("lastName")
    @classmethod
    def validate_last_name(cls, v):
        if v is None:
            return v
        return clean_required(v, "Last name")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return clean_optional(v)


class ClientResponse(BaseModel):
    """Schema for client response"""

    id: str
    firstName: str
    lastName: str
    fullName: str
    email: Optional[str]
    phone: Optional[str]
    notes: Optional[str]
    createdAt: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, client) -> "ClientResponse":
        return cls(
            id=client.id,
            firstName=client.first_name,
            lastName=client.last_name,
            fullName=client.full_name,
            email=client.email,
            phone=client.phone,
            notes=client.notes,
            createdAt=as_utc(client.created_at) if client.created_at else None,
        )
