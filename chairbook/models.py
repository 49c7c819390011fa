import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .domain.scheduling.types import AppointmentStatus


def generate_id():
    """Generate a random string identifier for a new row"""
    return str(uuid.uuid4())


class User(Base):
    """The business owner; every other row belongs to exactly one user"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    clients = relationship("Client", back_populates="user")
    services = relationship("Service", back_populates="user")


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="clients")
    appointments = relationship("Appointment", back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Service(Base):
    """A bookable offering; its duration is only the default for new appointments"""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=True)  # minor currency units
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="services")
    appointments = relationship("Appointment", back_populates="service")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False, index=True)
    start_utc = Column(DateTime, nullable=False)  # naive UTC
    end_utc = Column(DateTime, nullable=False)  # naive UTC, exclusive
    status = Column(
        Enum(
            AppointmentStatus,
            native_enum=False,
            length=20,
            validate_strings=True,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=AppointmentStatus.CONFIRMED,
    )
    notes = Column(Text, nullable=True)
    # Shared by every occurrence generated from one recurring request
    recurrence_group_id = Column(String(36), nullable=True, index=True)
    recurrence_rule = Column(JSON, nullable=True)  # {"pattern": ..., "count": ...}
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="appointments")
    service = relationship("Service", back_populates="appointments")

    __table_args__ = (
        Index("ix_appointments_user_window", "user_id", "start_utc", "end_utc"),
        Index("ix_appointments_group_start", "recurrence_group_id", "start_utc"),
    )
