"""
Pharmacy-distributor connection directory.

A pharmacy requests a link, the distributor approves or rejects it. Only an
APPROVED link lets the pharmacy place orders with that distributor.
"""
import logging
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from pharmaledger.core.clock import utcnow
from pharmaledger.core.exceptions import NotFoundError, ValidationError
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.notification import NotificationType
from pharmaledger.models.tenant import Connection, ConnectionStatus, TenantRole
from pharmaledger.services.ledger_service import get_tenant
from pharmaledger.services.notification_service import notify

logger = logging.getLogger(__name__)


def is_connected(db: Session, pharmacy_id: int, distributor_id: int) -> bool:
    link = db.query(Connection.id).filter(
        Connection.pharmacy_id == pharmacy_id,
        Connection.distributor_id == distributor_id,
        Connection.status == ConnectionStatus.APPROVED.value,
    ).first()
    return link is not None


def request_connection(db: Session, pharmacy_id: int, distributor_id: int) -> Connection:
    """Create (or re-open a rejected) link request. An existing pending/approved link is returned as is."""
    pharmacy = get_tenant(db, pharmacy_id)
    distributor = get_tenant(db, distributor_id)
    if pharmacy.role != TenantRole.PHARMACY.value:
        raise ValidationError("Only pharmacies can request distributor connections")
    if distributor.role != TenantRole.DISTRIBUTOR.value:
        raise ValidationError("Connections can only be requested with a distributor")

    with unit_of_work(db):
        link = db.query(Connection).filter(
            Connection.pharmacy_id == pharmacy_id,
            Connection.distributor_id == distributor_id,
        ).first()
        if link and link.status != ConnectionStatus.REJECTED.value:
            return link
        if link:
            link.status = ConnectionStatus.PENDING.value
            link.requested_at = utcnow()
            link.responded_at = None
        else:
            link = Connection(pharmacy_id=pharmacy_id, distributor_id=distributor_id)
            db.add(link)
        db.flush()
        notify(
            db,
            distributor_id,
            NotificationType.CONNECTION_REQ,
            "New connection request",
            f"{pharmacy.name} wants to order from you.",
        )

    logger.info(f"[Connections] Pharmacy {pharmacy_id} requested link with distributor {distributor_id}")
    return link


def respond_to_connection(db: Session, connection_id: int, distributor_id: int, approve: bool) -> Connection:
    with unit_of_work(db):
        link = db.query(Connection).filter(
            Connection.id == connection_id,
            Connection.distributor_id == distributor_id,
        ).first()
        if not link:
            raise NotFoundError("Connection", connection_id)
        link.status = (ConnectionStatus.APPROVED if approve else ConnectionStatus.REJECTED).value
        link.responded_at = utcnow()

    logger.info(f"[Connections] Link {connection_id} {link.status.lower()} by distributor {distributor_id}")
    return link


def list_connections(db: Session, tenant_id: int) -> List[Connection]:
    """Links where the tenant is either side, newest first."""
    return db.query(Connection).filter(
        or_(Connection.pharmacy_id == tenant_id, Connection.distributor_id == tenant_id)
    ).order_by(Connection.requested_at.desc(), Connection.id.desc()).all()
