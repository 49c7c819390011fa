"""Service catalog router"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("")
async def get_services(
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": [ServiceResponse.from_model(s) for s in service.get_services(current_user)]}


@router.get("/{service_id}")
async def get_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": ServiceResponse.from_model(service.get_service(service_id, current_user))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": ServiceResponse.from_model(service.create_service(data, current_user))}


@router.put("/{service_id}")
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return {
        "data": ServiceResponse.from_model(service.update_service(service_id, data, current_user))
    }


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Delete a service no appointment references"""
    return {"data": service.delete_service(service_id, current_user)}
