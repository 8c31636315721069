"""Pharmacy-distributor connection directory."""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_current_distributor, get_current_pharmacy, get_current_tenant, get_db
from pharmaledger.models.tenant import Tenant
from pharmaledger.schemas.connections import ConnectionOut, ConnectionRequest, ConnectionResponse
from pharmaledger.services import connection_service

router = APIRouter()


@router.post("", response_model=ConnectionOut, status_code=status.HTTP_201_CREATED)
def request_connection(
    data: ConnectionRequest,
    db: Session = Depends(get_db),
    pharmacy: Tenant = Depends(get_current_pharmacy),
):
    return connection_service.request_connection(db, pharmacy.id, data.distributor_id)


@router.get("", response_model=List[ConnectionOut])
def list_connections(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return connection_service.list_connections(db, tenant.id)


@router.patch("/{connection_id}", response_model=ConnectionOut)
def respond(
    connection_id: int,
    data: ConnectionResponse,
    db: Session = Depends(get_db),
    distributor: Tenant = Depends(get_current_distributor),
):
    """Distributor approves or rejects a pending request."""
    return connection_service.respond_to_connection(db, connection_id, distributor.id, data.approve)
