"""
Transfer coordinator: moves delivered goods from the seller's ledger into the buyer's.

For every order line:
1. FIFO-allocate the quantity from the seller's batches
2. Resolve (or create) the buyer-side product by name
3. Create a buyer batch for the quantity, costed at the agreed unit price

Runs inside the delivery transition's unit of work and never commits. Any
failure, on any line, propagates to that unit of work and rolls back every
allocation and batch already written for the order.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.orm import Session

from pharmaledger.core.audit import AuditLog
from pharmaledger.core.clock import today as utc_today
from pharmaledger.core.config import TransferPolicy
from pharmaledger.models.inventory import Batch, Product
from pharmaledger.models.order import Order
from pharmaledger.models.tenant import Tenant
from pharmaledger.services.ledger_service import create_batch
from pharmaledger.services.product_matcher import resolve_or_create
from pharmaledger.services.stock_allocator import BatchTake, allocate

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


@dataclass
class TransferLine:
    line_no: int
    seller_product_id: int
    buyer_product_id: int
    buyer_batch_id: int
    quantity: int
    seller_batches: List[BatchTake] = field(default_factory=list)


def transfer_mrp(unit_price, policy: TransferPolicy) -> Decimal:
    """Buyer MRP for a transferred lot: agreed price times the configured markup."""
    return (Decimal(str(unit_price)) * Decimal(str(policy.mrp_markup))).quantize(_CENT, rounding=ROUND_HALF_UP)


def transfer_expiry(db: Session, takes: List[BatchTake], policy: TransferPolicy, on: Optional[date] = None) -> date:
    """Expiry for the buyer batch: earliest seller expiry when propagated, else the default shelf life."""
    if policy.propagate_expiry and takes:
        expiries = [db.get(Batch, t.batch_id).expiry_date for t in takes]
        return min(expiries)
    return (on or utc_today()) + timedelta(days=policy.default_expiry_days)


def buyer_ledger_lock(db: Session, buyer_id: int):
    """
    Row lock on the buyer tenant. Transfers into one buyer run one at a time,
    so two sellers delivering the same name cannot both miss the match and
    create twin products.
    """
    return db.query(Tenant).filter(Tenant.id == buyer_id).with_for_update()


def execute_transfer(db: Session, order: Order, policy: Optional[TransferPolicy] = None) -> List[TransferLine]:
    """Move every line of the order from seller to buyer. Flushes, does not commit."""
    policy = policy or TransferPolicy.from_settings()
    seller_id = order.distributor_id
    buyer_id = order.pharmacy_id
    buyer_ledger_lock(db, buyer_id).one()

    logger.info(f"[Transfer] Order {order.order_number}: {len(order.items)} line(s) {seller_id} -> {buyer_id}")

    lines: List[TransferLine] = []
    for item in order.items:
        takes = allocate(db, seller_id, item.product_id, item.quantity)

        source = db.get(Product, item.product_id)
        buyer_product = resolve_or_create(db, buyer_id, item.name, source, policy)

        batch = create_batch(
            db,
            buyer_id,
            buyer_product.id,
            batch_number=f"{order.order_number}-{item.line_no}",
            expiry_date=transfer_expiry(db, takes, policy),
            quantity=item.quantity,
            mrp=transfer_mrp(item.unit_price, policy),
            purchase_rate=item.unit_price,
            supplier_id=seller_id,
        )
        lines.append(TransferLine(
            line_no=item.line_no,
            seller_product_id=item.product_id,
            buyer_product_id=buyer_product.id,
            buyer_batch_id=batch.id,
            quantity=item.quantity,
            seller_batches=takes,
        ))

    AuditLog.log_stock_transfer(
        order.id,
        seller_id,
        buyer_id,
        [
            {
                "line_no": line.line_no,
                "seller_product_id": line.seller_product_id,
                "buyer_product_id": line.buyer_product_id,
                "buyer_batch_id": line.buyer_batch_id,
                "quantity": line.quantity,
            }
            for line in lines
        ],
    )
    return lines
