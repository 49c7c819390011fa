"""Service catalog business logic"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...exceptions import InUseError, NotFoundError
from ...models import Service, User
from ...shared.transactions import guarded_write
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Manages the bookable services of a business"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def get_services(self, user: User) -> list[Service]:
        return self.repo.get_services(self.db, user.id)

    def get_service(self, service_id: str, user: User) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id, user.id)
        if not service:
            raise NotFoundError("Service not found", details={"serviceId": service_id})
        return service

    def create_service(self, data: ServiceCreate, user: User) -> Service:
        logger.info(f"Creating service '{data.name}' for user_id: {user.id}")
        with guarded_write(self.db, "create the service"):
            return self.repo.create_service(
                self.db,
                user.id,
                name=data.name,
                duration_minutes=data.durationMinutes,
                price_cents=data.priceCents,
            )

    def update_service(self, service_id: str, data: ServiceUpdate, user: User) -> Service:
        service = self.get_service(service_id, user)

        provided = data.model_dump(exclude_unset=True)
        updates = {}
        if provided.get("name") is not None:
            updates["name"] = provided["name"]
        if provided.get("durationMinutes") is not None:
            updates["duration_minutes"] = provided["durationMinutes"]
        if "priceCents" in provided:
            updates["price_cents"] = provided["priceCents"]

        with guarded_write(self.db, "update the service"):
            return self.repo.update_service(self.db, service, **updates)

    def delete_service(self, service_id: str, user: User) -> dict:
        service = self.get_service(service_id, user)

        referencing = self.repo.count_appointments(self.db, service.id)
        if referencing:
            logger.warning(
                f"Refusing to delete service {service.id}: referenced by {referencing} appointment(s)"
            )
            raise InUseError(
                "Service has appointments and cannot be deleted",
                details={"serviceId": service.id, "appointmentCount": referencing},
            )

        with guarded_write(self.db, "delete the service"):
            try:
                self.repo.delete_service(self.db, service)
            except IntegrityError as exc:
                raise InUseError(
                    "Service has appointments and cannot be deleted",
                    details={"serviceId": service_id},
                ) from exc
        logger.info(f"Deleted service {service_id}")
        return {"id": service_id, "deleted": True}
