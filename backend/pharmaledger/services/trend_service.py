"""Demand trends: manual boost rules read by the demand forecast."""
import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from pharmaledger.core.exceptions import NotFoundError, ValidationError
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.trend import Trend
from pharmaledger.services.ledger_service import get_tenant

logger = logging.getLogger(__name__)


def create_trend(
    db: Session,
    tenant_id: int,
    name: str,
    affected_categories: Iterable[str],
    boost_factor: float = 1.2,
) -> Trend:
    get_tenant(db, tenant_id)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Trend name cannot be empty")
    if boost_factor is None or boost_factor <= 0:
        raise ValidationError("Boost factor must be positive")

    # De-duplicate while keeping the caller's order
    categories = list(dict.fromkeys(c.strip() for c in affected_categories if c and c.strip()))

    with unit_of_work(db):
        trend = Trend(
            tenant_id=tenant_id,
            name=name,
            affected_categories=categories,
            boost_factor=float(boost_factor),
            is_active=True,
        )
        db.add(trend)

    logger.info(f"[Trends] '{name}' x{boost_factor} on {categories} for tenant {tenant_id}")
    return trend


def list_trends(db: Session, tenant_id: int, active_only: bool = True) -> List[Trend]:
    q = db.query(Trend).filter(Trend.tenant_id == tenant_id)
    if active_only:
        q = q.filter(Trend.is_active.is_(True))
    return q.order_by(Trend.id).all()


def archive_trend(db: Session, tenant_id: int, trend_id: int) -> Trend:
    with unit_of_work(db):
        trend = db.query(Trend).filter(Trend.id == trend_id, Trend.tenant_id == tenant_id).first()
        if not trend:
            raise NotFoundError("Trend", trend_id)
        trend.is_active = False
    return trend
