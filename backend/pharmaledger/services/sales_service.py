"""
Point-of-sale sales and the sales history read by the forecast engines.

A sale draws stock through the FIFO allocator, so a line can span several
batches; each batch drawn becomes its own SaleItem. Delivered B2B orders
are outgoing stock for the distributor too, and count as its sales from the
moment they were delivered.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from pharmaledger.core.exceptions import ValidationError
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.inventory import Batch
from pharmaledger.models.order import Order, OrderItem, OrderStatus
from pharmaledger.models.sale import Sale, SaleItem
from pharmaledger.schemas.sales import SaleLineCreate
from pharmaledger.services.ledger_service import get_tenant
from pharmaledger.services.stock_allocator import allocate

logger = logging.getLogger(__name__)


def record_sale(
    db: Session,
    tenant_id: int,
    lines: Iterable[SaleLineCreate],
    customer_name: Optional[str] = None,
    sold_at: Optional[datetime] = None,
) -> Sale:
    """
    Sell stock over the counter. All lines succeed or none do.

    Lines without a unit price are charged at each drawn batch's MRP.

    Raises:
        ValidationError: empty sale, bad quantity or price
        NotFoundError: unknown tenant or product
        InsufficientStockError: a line cannot be covered; nothing is deducted
    """
    lines = list(lines)
    get_tenant(db, tenant_id)
    if not lines:
        raise ValidationError("Sale must contain at least one item")

    with unit_of_work(db):
        sale = Sale(
            tenant_id=tenant_id,
            customer_name=(customer_name or "").strip() or None,
        )
        if sold_at is not None:
            sale.created_at = sold_at

        total = Decimal("0")
        for line in lines:
            if line.unit_price is not None and Decimal(str(line.unit_price)) < 0:
                raise ValidationError("Unit price cannot be negative")

            for take in allocate(db, tenant_id, line.product_id, line.quantity):
                if line.unit_price is not None:
                    price = Decimal(str(line.unit_price))
                else:
                    price = Decimal(str(db.get(Batch, take.batch_id).mrp))
                line_total = price * take.quantity
                total += line_total
                sale.items.append(SaleItem(
                    product_id=line.product_id,
                    batch_id=take.batch_id,
                    quantity=take.quantity,
                    unit_price=price,
                    total_price=line_total,
                ))

        sale.total_amount = total
        db.add(sale)
        db.flush()
        sale.sale_number = f"INV-{sale.created_at.year}-{sale.id:05d}"

    logger.info(f"[Sales] {sale.sale_number} for tenant {tenant_id}: {len(sale.items)} item(s), total {total}")
    return sale


def units_sold_since(db: Session, tenant_id: int, since: datetime) -> Dict[int, int]:
    """Map product_id -> units that left the tenant since `since` (POS sales + delivered orders)."""
    sold: Dict[int, int] = {}

    pos_rows = (
        db.query(SaleItem.product_id, func.sum(SaleItem.quantity))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.tenant_id == tenant_id, Sale.created_at >= since)
        .group_by(SaleItem.product_id)
        .all()
    )
    for product_id, qty in pos_rows:
        sold[product_id] = sold.get(product_id, 0) + int(qty or 0)

    b2b_rows = (
        db.query(OrderItem.product_id, func.sum(OrderItem.quantity))
        .join(Order, Order.id == OrderItem.order_id)
        .filter(
            Order.distributor_id == tenant_id,
            Order.status == OrderStatus.DELIVERED.value,
            Order.delivered_at >= since,
        )
        .group_by(OrderItem.product_id)
        .all()
    )
    for product_id, qty in b2b_rows:
        sold[product_id] = sold.get(product_id, 0) + int(qty or 0)

    return sold
