"""
DEMAND FORECAST

For every product of a tenant:

    avg_daily_sales  = units sold in the lookback window / lookback days
    boost_factor     = 1.0
                       + season boost if the product's seasonality is the current season
                       + (trend.boost_factor - 1) for every active trend covering its category
    predicted_demand = ceil(avg_daily_sales * horizon days * boost_factor)
    reorder_quantity = max(0, predicted_demand - current_stock)

Products with nothing predicted and nothing to reorder are left out. The
result is sorted by reorder quantity, largest first.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from pharmaledger.core.clock import today as utc_today
from pharmaledger.core.config import ForecastPolicy
from pharmaledger.models.inventory import Product, Seasonality
from pharmaledger.services.ledger_service import get_tenant, stock_by_product
from pharmaledger.services.sales_service import units_sold_since
from pharmaledger.services.trend_service import list_trends

logger = logging.getLogger(__name__)


def current_season(on: date) -> Seasonality:
    """Summer = Mar-Jun, Monsoon = Jul-Oct, Winter = Nov-Feb."""
    if 3 <= on.month <= 6:
        return Seasonality.SUMMER
    if 7 <= on.month <= 10:
        return Seasonality.MONSOON
    return Seasonality.WINTER


def lookback_start(on: date, days: int) -> datetime:
    return datetime.combine(on - timedelta(days=days), time.min)


@dataclass
class DemandForecast:
    product_id: int
    name: str
    category: Optional[str]
    current_stock: int
    avg_daily_sales: float
    predicted_demand: int
    reorder_quantity: int
    boost_factor: float
    status: str
    reasons: List[str] = field(default_factory=list)


def demand_forecast(
    db: Session,
    tenant_id: int,
    today: Optional[date] = None,
    policy: Optional[ForecastPolicy] = None,
) -> List[DemandForecast]:
    policy = policy or ForecastPolicy.from_settings()
    today = today or utc_today()
    get_tenant(db, tenant_id)

    season = current_season(today)
    trends = list_trends(db, tenant_id, active_only=True)
    sold = units_sold_since(db, tenant_id, lookback_start(today, policy.lookback_days))
    stock = stock_by_product(db, tenant_id)
    products = db.query(Product).filter(Product.tenant_id == tenant_id).order_by(Product.id).all()

    results: List[DemandForecast] = []
    for product in products:
        avg_daily = sold.get(product.id, 0) / policy.lookback_days

        boost = 1.0
        reasons: List[str] = []
        if product.seasonality == season.value:
            boost += policy.season_boost
            reasons.append(f"Season: {season.value}")
        for trend in trends:
            if product.category and product.category in (trend.affected_categories or []):
                boost += trend.boost_factor - 1
                reasons.append(f"Trend: {trend.name}")
        boost = max(boost, 0.0)

        # Rounded first so float noise (e.g. 36.00000000001) does not add a unit
        predicted = math.ceil(round(avg_daily * policy.horizon_days * boost, 6))
        current = stock.get(product.id, 0)
        reorder = max(0, predicted - current)
        if predicted == 0 and reorder == 0:
            continue

        results.append(DemandForecast(
            product_id=product.id,
            name=product.name,
            category=product.category,
            current_stock=current,
            avg_daily_sales=round(avg_daily, 2),
            predicted_demand=predicted,
            reorder_quantity=reorder,
            boost_factor=round(boost, 2),
            status="Reorder" if current < predicted else "Sufficient",
            reasons=reasons,
        ))

    results.sort(key=lambda r: r.reorder_quantity, reverse=True)
    logger.info(
        f"[Forecast] Demand for tenant {tenant_id}: {len(results)} product(s), "
        f"{sum(1 for r in results if r.status == 'Reorder')} to reorder"
    )
    return results
