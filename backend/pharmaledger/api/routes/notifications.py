"""Notification outbox of the calling tenant. Push and email delivery happen elsewhere."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_current_tenant, get_db
from pharmaledger.models.tenant import Tenant
from pharmaledger.schemas.notifications import NotificationOut
from pharmaledger.services import notification_service

router = APIRouter()


@router.get("", response_model=List[NotificationOut])
def list_notifications(
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Newest first."""
    return notification_service.list_notifications(db, tenant.id, unread_only=unread_only)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return notification_service.mark_read(db, tenant.id, notification_id)
