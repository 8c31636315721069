"""
Ledger store: products and expiry-dated batches per tenant.

Reads never write. Creation helpers only flush, so they can run inside a
caller's unit of work (the transfer coordinator creates buyer-side products
and batches this way). Stock deductions go through stock_allocator.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pharmaledger.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from pharmaledger.models.inventory import Batch, Product, Seasonality
from pharmaledger.models.tenant import Tenant
from pharmaledger.services.names import normalize_name

logger = logging.getLogger(__name__)


def get_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError("Tenant", tenant_id)
    return tenant


def get_product(db: Session, tenant_id: int, product_id: int) -> Product:
    """Product owned by the tenant. Another tenant's product is reported as missing."""
    get_tenant(db, tenant_id)
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.tenant_id == tenant_id,
    ).first()
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def _is_unique_violation(error: IntegrityError) -> bool:
    # psycopg reports SQLSTATE 23505, sqlite only has the message
    if getattr(error.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(error.orig).lower()


def _to_decimal(value, field: str) -> Decimal:
    amount = Decimal(str(value))
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def create_product(
    db: Session,
    tenant_id: int,
    name: str,
    sku: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    manufacturer: Optional[str] = None,
    unit: str = "strip",
    min_stock_level: int = 10,
    gst_rate=0,
    seasonality: str = Seasonality.ALL_YEAR.value,
    is_prescription_required: bool = False,
) -> Product:
    """Add a product to the tenant's catalogue. Flushes, does not commit.

    Raises:
        NotFoundError: unknown tenant
        ValidationError: empty name, negative stock level or GST, unknown seasonality
        DuplicateKeyError: the SKU is already used by another product of this tenant
    """
    get_tenant(db, tenant_id)

    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name cannot be empty")
    if min_stock_level is None or min_stock_level < 0:
        raise ValidationError("Minimum stock level cannot be negative")
    try:
        season = Seasonality(seasonality or Seasonality.ALL_YEAR.value)
    except ValueError:
        raise ValidationError(f"Unknown seasonality '{seasonality}'")

    # Blank SKUs are stored as NULL so they never collide
    sku = sku.strip() if sku else None
    sku = sku or None
    if sku is not None:
        taken = db.query(Product.id).filter(Product.tenant_id == tenant_id, Product.sku == sku).first()
        if taken:
            raise DuplicateKeyError("sku", sku)

    product = Product(
        tenant_id=tenant_id,
        name=name,
        name_key=normalize_name(name),
        sku=sku,
        description=description,
        category=category,
        manufacturer=manufacturer,
        unit=unit or "strip",
        min_stock_level=min_stock_level,
        gst_rate=_to_decimal(gst_rate or 0, "GST rate"),
        seasonality=season.value,
        is_prescription_required=is_prescription_required,
    )
    db.add(product)
    try:
        db.flush()
    except IntegrityError as e:
        if not _is_unique_violation(e):
            raise
        raise DuplicateKeyError("sku", sku) from e

    logger.info(f"[Ledger] Created product {product.id} '{product.name}' for tenant {tenant_id}")
    return product


def create_batch(
    db: Session,
    tenant_id: int,
    product_id: int,
    batch_number: str,
    expiry_date: date,
    quantity: int,
    mrp,
    purchase_rate,
    supplier_id: Optional[int] = None,
    rack_location: Optional[str] = None,
) -> Batch:
    """Record an inward lot for one of the tenant's products. Flushes, does not commit.

    An unknown supplier_id raises NotFoundError rather than failing the foreign key.
    """
    product = get_product(db, tenant_id, product_id)

    batch_number = (batch_number or "").strip()
    if not batch_number:
        raise ValidationError("Batch number cannot be empty")
    if expiry_date is None:
        raise ValidationError("Expiry date is required")
    if quantity is None or quantity < 0:
        raise ValidationError("Quantity cannot be negative")
    if supplier_id is not None and db.get(Tenant, supplier_id) is None:
        raise NotFoundError("Supplier", supplier_id)

    existing = db.query(Batch.id).filter(
        Batch.tenant_id == tenant_id,
        Batch.product_id == product.id,
        Batch.batch_number == batch_number,
    ).first()
    if existing:
        raise DuplicateKeyError("batch_number", batch_number)

    batch = Batch(
        tenant_id=tenant_id,
        product_id=product.id,
        batch_number=batch_number,
        expiry_date=expiry_date,
        quantity=int(quantity),
        mrp=_to_decimal(mrp, "MRP"),
        purchase_rate=_to_decimal(purchase_rate, "Purchase rate"),
        supplier_id=supplier_id,
        rack_location=rack_location,
    )
    db.add(batch)
    try:
        db.flush()
    except IntegrityError as e:
        if not _is_unique_violation(e):
            raise
        raise DuplicateKeyError("batch_number", batch_number) from e

    logger.info(
        f"[Ledger] Batch {batch.batch_number} (qty {batch.quantity}, exp {batch.expiry_date}) "
        f"added to product {product.id} for tenant {tenant_id}"
    )
    return batch


def total_stock(db: Session, tenant_id: int, product_id: int) -> int:
    """Sum of all batch quantities for the product."""
    get_product(db, tenant_id, product_id)
    total = db.query(func.coalesce(func.sum(Batch.quantity), 0)).filter(
        Batch.tenant_id == tenant_id,
        Batch.product_id == product_id,
    ).scalar()
    return int(total or 0)


def batches_for(
    db: Session,
    tenant_id: int,
    product_id: int,
    only_positive: bool = True,
    for_update: bool = False,
) -> List[Batch]:
    """Batches of a product, soonest expiry first.

    for_update locks the rows (SELECT ... FOR UPDATE where the dialect has it)
    and refreshes already-loaded instances, for callers about to deduct.
    """
    get_product(db, tenant_id, product_id)
    q = db.query(Batch).filter(
        Batch.tenant_id == tenant_id,
        Batch.product_id == product_id,
    )
    if only_positive:
        q = q.filter(Batch.quantity > 0)
    if for_update:
        q = q.populate_existing().with_for_update()
    return q.order_by(Batch.expiry_date.asc(), Batch.id.asc()).all()


def list_products_with_stock(db: Session, tenant_id: int, search: Optional[str] = None) -> List[Tuple[Product, int]]:
    """Catalogue with current stock, sorted by name."""
    get_tenant(db, tenant_id)
    stock = (
        db.query(Batch.product_id, func.sum(Batch.quantity).label("stock"))
        .filter(Batch.tenant_id == tenant_id, Batch.quantity > 0)
        .group_by(Batch.product_id)
        .subquery()
    )
    q = (
        db.query(Product, func.coalesce(stock.c.stock, 0))
        .outerjoin(stock, stock.c.product_id == Product.id)
        .filter(Product.tenant_id == tenant_id)
    )
    if search:
        q = q.filter(Product.name.ilike(f"%{search.strip()}%"))
    return [(p, int(s or 0)) for p, s in q.order_by(Product.name).all()]


def stock_by_product(db: Session, tenant_id: int) -> dict:
    """Map product_id -> total positive stock for one tenant."""
    rows = (
        db.query(Batch.product_id, func.sum(Batch.quantity))
        .filter(Batch.tenant_id == tenant_id, Batch.quantity > 0)
        .group_by(Batch.product_id)
        .all()
    )
    return {product_id: int(qty or 0) for product_id, qty in rows}
