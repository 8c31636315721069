"""
FIFO stock deduction.

Stock always leaves a tenant from the batch that expires soonest, so the
lots closest to write-off are sold first. Total availability is checked
before any batch is touched: an allocation either takes the full quantity
or changes nothing.

Runs inside the caller's unit of work (flushes, never commits). Batch rows
are locked for update and carry an optimistic version, so two concurrent
allocations cannot both spend the same units.
"""
import logging
from typing import List, NamedTuple

from sqlalchemy.orm import Session

from pharmaledger.core.audit import AuditLog
from pharmaledger.core.exceptions import InsufficientStockError, ValidationError
from pharmaledger.services.ledger_service import batches_for, get_product

logger = logging.getLogger(__name__)


class BatchTake(NamedTuple):
    batch_id: int
    quantity: int


def allocate(db: Session, tenant_id: int, product_id: int, quantity_needed: int) -> List[BatchTake]:
    """
    Deduct quantity_needed units of a product from the tenant's batches, oldest expiry first.

    Returns:
        [(batch_id, quantity_taken), ...] in the order the batches were drawn.

    Raises:
        ValidationError: quantity_needed is not a positive integer
        NotFoundError: unknown tenant or product
        InsufficientStockError: combined stock is short; no batch has been modified
    """
    if isinstance(quantity_needed, bool) or not isinstance(quantity_needed, int) or quantity_needed <= 0:
        raise ValidationError("Quantity to allocate must be a positive whole number")

    product = get_product(db, tenant_id, product_id)
    batches = batches_for(db, tenant_id, product_id, only_positive=True, for_update=True)

    available = sum(b.quantity for b in batches)
    if available < quantity_needed:
        logger.warning(
            f"[Allocator] Short on '{product.name}' (product {product_id}, tenant {tenant_id}): "
            f"need {quantity_needed}, have {available}"
        )
        raise InsufficientStockError(product_id, quantity_needed, available, product.name)

    remaining = int(quantity_needed)
    takes: List[BatchTake] = []
    for batch in batches:
        if remaining == 0:
            break
        take = min(batch.quantity, remaining)
        batch.quantity -= take
        remaining -= take
        takes.append(BatchTake(batch.id, take))

    db.flush()

    logger.info(
        f"[Allocator] Took {quantity_needed} of product {product_id} for tenant {tenant_id} "
        f"from {len(takes)} batch(es)"
    )
    AuditLog.log_allocation(
        tenant_id,
        product_id,
        int(quantity_needed),
        [{"batch_id": t.batch_id, "quantity": t.quantity} for t in takes],
    )
    return takes
