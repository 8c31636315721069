"""Notification requests. Written in the caller's transaction; delivery is external."""
from typing import List, Optional

from sqlalchemy.orm import Session

from pharmaledger.core.exceptions import NotFoundError
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.notification import Notification, NotificationType


def notify(
    db: Session,
    recipient_id: int,
    type: NotificationType,
    title: str,
    message: str,
    order_id: Optional[int] = None,
) -> Notification:
    n = Notification(
        recipient_id=recipient_id,
        type=type.value,
        title=title,
        message=message,
        order_id=order_id,
    )
    db.add(n)
    return n


def list_notifications(db: Session, tenant_id: int, unread_only: bool = False) -> List[Notification]:
    q = db.query(Notification).filter(Notification.recipient_id == tenant_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.id.desc()).all()


def mark_read(db: Session, tenant_id: int, notification_id: int) -> Notification:
    """Flag one of the tenant's notifications as read. Another tenant's is reported as missing."""
    with unit_of_work(db):
        n = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.recipient_id == tenant_id,
        ).first()
        if not n:
            raise NotFoundError("Notification", notification_id)
        n.is_read = True
    return n
