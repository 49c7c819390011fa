"""Service catalog repository"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, Service


class ServiceRepository:
    @staticmethod
    def get_services(db: Session, user_id: str) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.user_id == user_id)
            .order_by(Service.name.asc())
            .all()
        )

    @staticmethod
    def get_service_by_id(db: Session, service_id: str, user_id: str) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.user_id == user_id)
            .first()
        )

    @staticmethod
    def service_exists(db: Session, service_id: str, user_id: str) -> bool:
        return (
            db.query(Service.id)
            .filter(Service.id == service_id, Service.user_id == user_id)
            .first()
            is not None
        )

    @staticmethod
    def create_service(db: Session, user_id: str, **service_data) -> Service:
        service = Service(user_id=user_id, **service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def count_appointments(db: Session, service_id: str) -> int:
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.service_id == service_id)
            .scalar()
        )

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()
