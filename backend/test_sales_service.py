"""Counter sales: FIFO draw, one line per batch, all-or-nothing."""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from pharmaledger.core.exceptions import InsufficientStockError, ValidationError
from pharmaledger.models.sale import Sale
from pharmaledger.schemas.sales import SaleLineCreate
from pharmaledger.services.ledger_service import total_stock
from pharmaledger.services.sales_service import record_sale, units_sold_since
from conftest import TODAY


def test_sale_spans_batches_in_expiry_order(db, pharmacy, make_product, make_batch):
    p = make_product(pharmacy, "Dolo 650")
    late = make_batch(pharmacy, p, 10, expiry_date=TODAY + timedelta(days=200), mrp="32.00")
    early = make_batch(pharmacy, p, 3, expiry_date=TODAY + timedelta(days=30), mrp="30.00")

    sale = record_sale(db, pharmacy.id, [SaleLineCreate(product_id=p.id, quantity=5)], customer_name="  Ravi ")

    assert [(i.batch_id, i.quantity) for i in sale.items] == [(early.id, 3), (late.id, 2)]
    assert Decimal(sale.total_amount) == Decimal("154.00")
    assert sale.customer_name == "Ravi"
    assert sale.sale_number == f"INV-{sale.created_at.year}-{sale.id:05d}"
    assert total_stock(db, pharmacy.id, p.id) == 8


def test_explicit_unit_price(db, pharmacy, make_product, make_batch):
    p = make_product(pharmacy, "Dolo 650")
    make_batch(pharmacy, p, 10)

    sale = record_sale(db, pharmacy.id, [SaleLineCreate(product_id=p.id, quantity=4, unit_price=Decimal("9.50"))])
    assert Decimal(sale.total_amount) == Decimal("38.00")


def test_short_line_rolls_back_whole_sale(db, pharmacy, make_product, make_batch):
    a = make_product(pharmacy, "Crocin")
    b = make_product(pharmacy, "Saridon")
    make_batch(pharmacy, a, 10)
    make_batch(pharmacy, b, 1)

    with pytest.raises(InsufficientStockError):
        record_sale(db, pharmacy.id, [
            SaleLineCreate(product_id=a.id, quantity=5),
            SaleLineCreate(product_id=b.id, quantity=2),
        ])

    assert total_stock(db, pharmacy.id, a.id) == 10
    assert db.query(Sale).count() == 0


def test_empty_sale_rejected(db, pharmacy):
    with pytest.raises(ValidationError):
        record_sale(db, pharmacy.id, [])


def test_units_sold_since(db, pharmacy, make_product, make_batch):
    p = make_product(pharmacy, "Dolo 650")
    make_batch(pharmacy, p, 100)
    midnight = datetime.combine(TODAY, datetime.min.time())
    record_sale(db, pharmacy.id, [SaleLineCreate(product_id=p.id, quantity=7)], sold_at=midnight - timedelta(days=100))
    record_sale(db, pharmacy.id, [SaleLineCreate(product_id=p.id, quantity=4)], sold_at=midnight - timedelta(days=3))
    record_sale(db, pharmacy.id, [SaleLineCreate(product_id=p.id, quantity=2)], sold_at=midnight - timedelta(days=1))

    assert units_sold_since(db, pharmacy.id, midnight - timedelta(days=90)) == {p.id: 6}
