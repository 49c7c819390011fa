"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ClientCreate, ClientResponse, ClientUpdate
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("")
async def get_clients(
    q: Optional[str] = Query(None, description="Search first/last name, email or phone"),
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    """Get all clients for the current user"""
    clients = service.get_clients(current_user, q)
    return {"data": [ClientResponse.from_model(c) for c in clients]}


@router.get("/{client_id}")
async def get_client(
    client_id: str,
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    """Get a specific client"""
    return {"data": ClientResponse.from_model(service.get_client(client_id, current_user))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    """Create a new client"""
    client = service.create_client(data, current_user)
    return {"data": ClientResponse.from_model(client)}


@router.put("/{client_id}")
async def update_client(
    client_id: str,
    data: ClientUpdate,
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    """Update a client"""
    client = service.update_client(client_id, data, current_user)
    return {"data": ClientResponse.from_model(client)}


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    """Delete a client with no appointments"""
    return {"data": service.delete_client(client_id, current_user)}
