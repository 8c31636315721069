"""
EXPIRY RISK

A batch expiring inside the risk window is "at risk" when, at the product's
recent sales pace, it would take longer to sell than it has left on the
shelf. Batches of products that did not sell at all get a sentinel
days-to-sell and are always at risk.

Suggested action depends only on days to expiry and only ever escalates as
expiry approaches: Transfer to Branch -> Discount Window -> Liquidate.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from pharmaledger.core.clock import today as utc_today
from pharmaledger.core.config import ForecastPolicy
from pharmaledger.models.inventory import Batch, Product
from pharmaledger.services.demand_forecast import lookback_start
from pharmaledger.services.ledger_service import get_tenant
from pharmaledger.services.sales_service import units_sold_since

logger = logging.getLogger(__name__)

LIQUIDATE = "Liquidate"
DISCOUNT_WINDOW = "Discount Window"
TRANSFER_TO_BRANCH = "Transfer to Branch"

_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def suggest_action(days_to_expiry: int, policy: Optional[ForecastPolicy] = None) -> str:
    policy = policy or ForecastPolicy.from_settings()
    if days_to_expiry < policy.liquidate_before_days:
        return LIQUIDATE
    if days_to_expiry < policy.discount_before_days:
        return DISCOUNT_WINDOW
    return TRANSFER_TO_BRANCH


@dataclass
class ExpiryRiskItem:
    batch_id: int
    product_id: int
    product_name: str
    batch_number: str
    expiry_date: date
    quantity: int
    days_to_expiry: int
    days_to_sell: float
    daily_velocity: float
    estimated_loss: Decimal
    suggested_action: str


@dataclass
class HeatmapCell:
    month: str
    label: str
    value: Decimal
    batches: int


@dataclass
class ExpiryRiskReport:
    risk_items: List[ExpiryRiskItem] = field(default_factory=list)
    heatmap: List[HeatmapCell] = field(default_factory=list)

    @property
    def total_value_at_risk(self) -> Decimal:
        return sum((item.estimated_loss for item in self.risk_items), Decimal("0"))


def expiry_risk(
    db: Session,
    tenant_id: int,
    today: Optional[date] = None,
    policy: Optional[ForecastPolicy] = None,
) -> ExpiryRiskReport:
    policy = policy or ForecastPolicy.from_settings()
    today = today or utc_today()
    get_tenant(db, tenant_id)

    horizon = today + timedelta(days=policy.expiry_window_days)
    rows = (
        db.query(Batch, Product)
        .join(Product, Product.id == Batch.product_id)
        .filter(
            Batch.tenant_id == tenant_id,
            Batch.quantity > 0,
            Batch.expiry_date >= today,
            Batch.expiry_date <= horizon,
        )
        .order_by(Batch.expiry_date.asc(), Batch.id.asc())
        .all()
    )
    if not rows:
        return ExpiryRiskReport()

    sold = units_sold_since(db, tenant_id, lookback_start(today, policy.lookback_days))

    items: List[ExpiryRiskItem] = []
    for batch, product in rows:
        velocity = sold.get(product.id, 0) / policy.lookback_days
        if velocity > 0:
            days_to_sell = batch.quantity / velocity
        else:
            days_to_sell = float(policy.unsold_sentinel_days)
        days_to_expiry = (batch.expiry_date - today).days

        if days_to_sell <= days_to_expiry:
            continue

        items.append(ExpiryRiskItem(
            batch_id=batch.id,
            product_id=product.id,
            product_name=product.name,
            batch_number=batch.batch_number,
            expiry_date=batch.expiry_date,
            quantity=batch.quantity,
            days_to_expiry=days_to_expiry,
            days_to_sell=round(days_to_sell, 1),
            daily_velocity=round(velocity, 4),
            estimated_loss=Decimal(str(batch.purchase_rate)) * batch.quantity,
            suggested_action=suggest_action(days_to_expiry, policy),
        ))

    # Chronological month buckets of at-risk value (rows are already in expiry order)
    buckets = OrderedDict()
    for item in items:
        key = item.expiry_date.strftime("%Y-%m")
        if key not in buckets:
            label = f"{_MONTHS[item.expiry_date.month - 1]} {item.expiry_date.year}"
            buckets[key] = HeatmapCell(month=key, label=label, value=Decimal("0"), batches=0)
        buckets[key].value += item.estimated_loss
        buckets[key].batches += 1

    items.sort(key=lambda i: i.estimated_loss, reverse=True)
    report = ExpiryRiskReport(risk_items=items, heatmap=list(buckets.values()))
    logger.info(
        f"[Forecast] Expiry risk for tenant {tenant_id}: {len(items)} of {len(rows)} batch(es) at risk, "
        f"value {report.total_value_at_risk}"
    )
    return report
