"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Appointment, Client


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_clients(db: Session, user_id: str, search: Optional[str] = None) -> list[Client]:
        """Get all clients for a user, optionally filtered by a search term"""
        query = db.query(Client).filter(Client.user_id == user_id)

        if search:
            search_term = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Client.first_name).like(search_term),
                    func.lower(Client.last_name).like(search_term),
                    func.lower(Client.email).like(search_term),
                    Client.phone.like(search_term),
                )
            )

        return query.order_by(Client.last_name.asc(), Client.first_name.asc()).all()

    @staticmethod
    def get_client_by_id(db: Session, client_id: str, user_id: str) -> Optional[Client]:
        """Get a specific client by ID"""
        return (
            db.query(Client)
            .filter(Client.id == client_id, Client.user_id == user_id)
            .first()
        )

    @staticmethod
    def client_exists(db: Session, client_id: str, user_id: str) -> bool:
        return (
            db.query(Client.id)
            .filter(Client.id == client_id, Client.user_id == user_id)
            .first()
            is not None
        )

    @staticmethod
    def create_client(db: Session, user_id: str, **client_data) -> Client:
        """Create a new client"""
        client = Client(user_id=user_id, **client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if hasattr(client, key):
                setattr(client, key, value)

        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def count_appointments(db: Session, client_id: str) -> int:
        """Count appointments (of any status) referencing a client"""
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.client_id == client_id)
            .scalar()
        )

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        """Delete a client"""
        db.delete(client)
        db.commit()
