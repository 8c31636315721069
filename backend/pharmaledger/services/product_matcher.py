"""
CROSS-TENANT PRODUCT MATCHING

When stock enters a buyer's ledger from a seller's order line, the line only
carries the seller's product name; the two tenants never share product ids.

Resolution:
1. Normalize the incoming name (all whitespace removed, casefolded)
2. Look it up against the buyer's indexed name_key column
3. Reuse the first (oldest) match, or create a product copying the seller's
   descriptive fields

Tolerant to whitespace and case only. "Dolo 650" and "dolo  650" resolve to
the same product; "Dolo650mg" or "Paracetamol 650" do not.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from pharmaledger.core.config import TransferPolicy
from pharmaledger.core.exceptions import ValidationError
from pharmaledger.models.inventory import Product
from pharmaledger.services.ledger_service import create_product
from pharmaledger.services.names import normalize_name

logger = logging.getLogger(__name__)


def find_match(db: Session, tenant_id: int, name: str) -> Optional[Product]:
    key = normalize_name(name)
    if not key:
        return None
    return db.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.name_key == key,
    ).order_by(Product.id.asc()).first()


def resolve_or_create(
    db: Session,
    buyer_tenant_id: int,
    line_item_name: str,
    source_product: Optional[Product] = None,
    policy: Optional[TransferPolicy] = None,
) -> Product:
    """
    Buyer-side product for an incoming order line. Flushes, does not commit.

    Args:
        buyer_tenant_id: Tenant receiving the stock
        line_item_name: Product name as written on the order line
        source_product: Seller's product, copied from when a new product is needed
        policy: Defaults for auto-created products (min stock level, unit)
    """
    policy = policy or TransferPolicy.from_settings()

    if not normalize_name(line_item_name):
        raise ValidationError("Order line has no product name")

    match = find_match(db, buyer_tenant_id, line_item_name)
    if match:
        logger.info(f"[Matcher] '{line_item_name}' -> existing product {match.id} '{match.name}'")
        return match

    product = create_product(
        db,
        buyer_tenant_id,
        name=line_item_name,
        description=source_product.description if source_product else None,
        category=source_product.category if source_product else None,
        manufacturer=source_product.manufacturer if source_product else None,
        unit=(source_product.unit if source_product and source_product.unit else policy.default_unit),
        gst_rate=(source_product.gst_rate if source_product and source_product.gst_rate is not None else 0),
        min_stock_level=policy.default_min_stock_level,
    )
    logger.info(f"[Matcher] '{line_item_name}' -> new product {product.id} for tenant {buyer_tenant_id}")
    return product
