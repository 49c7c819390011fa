"""Client service - Business logic for client operations"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...exceptions import InUseError, NotFoundError
from ...models import Client, User
from ...shared.transactions import guarded_write
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)

_FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "notes": "notes",
}


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def get_clients(self, user: User, search: Optional[str] = None) -> list[Client]:
        """Get all clients for a user"""
        search = search.strip() if search else None
        return self.repo.get_clients(self.db, user.id, search or None)

    def get_client(self, client_id: str, user: User) -> Client:
        """Get a specific client"""
        client = self.repo.get_client_by_id(self.db, client_id, user.id)
        if not client:
            raise NotFoundError("Client not found", details={"clientId": client_id})
        return client

    def create_client(self, data: ClientCreate, user: User) -> Client:
        """Create a new client"""
        logger.info(f"Creating client for user_id: {user.id}")
        client_data = {column: getattr(data, field) for field, column in _FIELD_MAP.items()}
        with guarded_write(self.db, "create the client"):
            return self.repo.create_client(self.db, user.id, **client_data)

    def update_client(self, client_id: str, data: ClientUpdate, user: User) -> Client:
        """Update a client; only fields present in the request are written"""
        client = self.get_client(client_id, user)

        provided = data.model_dump(exclude_unset=True)
        updates = {}
        for field, column in _FIELD_MAP.items():
            if field not in provided:
                continue
            value = provided[field]
            # Names are required; an explicit null leaves them as they are
            if value is None and field in ("firstName", "lastName"):
                continue
            updates[column] = value

        with guarded_write(self.db, "update the client"):
            return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: str, user: User) -> dict:
        """Delete a client that no appointment references"""
        client = self.get_client(client_id, user)

        referencing = self.repo.count_appointments(self.db, client.id)
        if referencing:
            logger.warning(
                f"Refusing to delete client {client.id}: referenced by {referencing} appointment(s)"
            )
            raise InUseError(
                "Client has appointments and cannot be deleted",
                details={"clientId": client.id, "appointmentCount": referencing},
            )

        with guarded_write(self.db, "delete the client"):
            try:
                self.repo.delete_client(self.db, client)
            except IntegrityError as exc:
                # Booked after the count above
                raise InUseError(
                    "Client has appointments and cannot be deleted",
                    details={"clientId": client_id},
                ) from exc
        logger.info(f"Deleted client {client_id}")
        return {"id": client_id, "deleted": True}
