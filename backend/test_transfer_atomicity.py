"""
Delivery transfer: seller stock moves into new buyer batches, all lines or none.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from pharmaledger.core.clock import today
from pharmaledger.core.config import TransferPolicy
from pharmaledger.core.exceptions import InsufficientStockError
from pharmaledger.models.inventory import Batch, Product
from pharmaledger.services import order_service, transfer_service
from pharmaledger.services.ledger_service import batches_for, total_stock
from conftest import TODAY


def _deliver(db, order, distributor, policy=None):
    return order_service.transition_order(
        db, order.id, "DELIVERED", otp=order.delivery_otp, actor_tenant_id=distributor.id, policy=policy,
    )


def _buyer_batches(db, pharmacy):
    return db.query(Batch).filter(Batch.tenant_id == pharmacy.id).all()


def test_delivery_moves_stock_to_buyer(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    dolo = make_product(distributor, "Dolo 650", category="Antipyretic", unit="strip")
    make_batch(distributor, dolo, 8, expiry_date=TODAY + timedelta(days=40))
    make_batch(distributor, dolo, 20, expiry_date=TODAY + timedelta(days=400))
    mine = make_product(pharmacy, "dolo  650")

    order = shipped_order(pharmacy, distributor, [(dolo, 10, "12.40")])
    order = _deliver(db, order, distributor)

    assert order.status == "DELIVERED"
    assert total_stock(db, distributor.id, dolo.id) == 18
    assert [b.quantity for b in batches_for(db, distributor.id, dolo.id, only_positive=False)] == [0, 18]

    # Existing buyer product reused, no duplicate created
    assert db.query(Product).filter(Product.tenant_id == pharmacy.id).count() == 1
    (batch,) = _buyer_batches(db, pharmacy)
    assert batch.product_id == mine.id
    assert batch.quantity == 10
    assert batch.batch_number == f"{order.order_number}-1"
    assert batch.supplier_id == distributor.id
    assert Decimal(batch.purchase_rate) == Decimal("12.40")
    assert Decimal(batch.mrp) == Decimal("18.60")
    assert batch.expiry_date == today() + timedelta(days=730)


def test_two_line_scenario_rolls_back_first_line(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    a = make_product(distributor, "Product A")
    b = make_product(distributor, "Product B")
    batch_a = make_batch(distributor, a, 5)
    make_batch(distributor, b, 10)
    order = shipped_order(pharmacy, distributor, [(a, 5, 10), (b, 3, 20)])

    # Stock of B sold elsewhere between shipping and delivery
    db.query(Batch).filter(Batch.product_id == b.id).update({Batch.quantity: 2})
    db.commit()

    with pytest.raises(InsufficientStockError) as exc:
        _deliver(db, order, distributor)

    assert exc.value.product_id == b.id
    assert db.get(Batch, batch_a.id).quantity == 5
    assert total_stock(db, distributor.id, b.id) == 2
    assert order_service.get_order(db, order.id).status == "SHIPPED"
    assert _buyer_batches(db, pharmacy) == []
    assert db.query(Product).filter(Product.tenant_id == pharmacy.id).count() == 0


def test_middle_line_failure_leaves_all_lines_untouched(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    products = [make_product(distributor, name) for name in ("Crocin", "Saridon", "Vicks")]
    for p in products:
        make_batch(distributor, p, 10)
    order = shipped_order(pharmacy, distributor, [(products[0], 4, 5), (products[1], 6, 5), (products[2], 3, 5)])

    db.query(Batch).filter(Batch.product_id == products[1].id).update({Batch.quantity: 1})
    db.commit()

    with pytest.raises(InsufficientStockError):
        _deliver(db, order, distributor)

    assert [total_stock(db, distributor.id, p.id) for p in products] == [10, 1, 10]
    assert _buyer_batches(db, pharmacy) == []
    order = order_service.get_order(db, order.id)
    assert order.status == "SHIPPED"
    assert [e.status for e in order.timeline] == ["PENDING", "ACCEPTED", "PACKED", "SHIPPED"]


def test_failed_delivery_can_be_retried_after_restock(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    p = make_product(distributor, "Dolo 650")
    make_batch(distributor, p, 2)
    order = shipped_order(pharmacy, distributor, [(p, 5, 10)])

    with pytest.raises(InsufficientStockError):
        _deliver(db, order, distributor)

    make_batch(distributor, p, 10)
    order = _deliver(db, order_service.get_order(db, order.id), distributor)

    assert order.status == "DELIVERED"
    assert total_stock(db, distributor.id, p.id) == 7


def test_new_buyer_product_created_from_source(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    source = make_product(distributor, "Azithral 500", category="Antibiotic", manufacturer="Alembic", unit="box")
    make_batch(distributor, source, 10)
    order = shipped_order(pharmacy, distributor, [(source, 2, 84)])

    _deliver(db, order, distributor)

    (created,) = db.query(Product).filter(Product.tenant_id == pharmacy.id).all()
    assert created.name == "Azithral 500"
    assert created.category == "Antibiotic"
    assert created.manufacturer == "Alembic"
    assert created.unit == "box"
    assert total_stock(db, pharmacy.id, created.id) == 2


def test_policy_override_propagates_expiry_and_markup(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    p = make_product(distributor, "Dolo 650")
    make_batch(distributor, p, 3, expiry_date=TODAY + timedelta(days=50))
    make_batch(distributor, p, 10, expiry_date=TODAY + timedelta(days=500))
    order = shipped_order(pharmacy, distributor, [(p, 6, "10.00")])

    policy = TransferPolicy(propagate_expiry=True, mrp_markup=1.2)
    _deliver(db, order, distributor, policy)

    (batch,) = _buyer_batches(db, pharmacy)
    assert batch.expiry_date == TODAY + timedelta(days=50)
    assert Decimal(batch.mrp) == Decimal("12.00")


def test_same_product_twice_in_one_order(db, pharmacy, distributor, connected, make_product, make_batch, shipped_order):
    p = make_product(distributor, "Dolo 650")
    make_batch(distributor, p, 10)
    order = shipped_order(pharmacy, distributor, [(p, 4, 10), (p, 6, 9)])

    _deliver(db, order, distributor)

    assert total_stock(db, distributor.id, p.id) == 0
    batches = sorted(_buyer_batches(db, pharmacy), key=lambda b: b.batch_number)
    assert [b.quantity for b in batches] == [4, 6]
    assert len({b.product_id for b in batches}) == 1


def test_buyer_ledger_is_locked_before_matching(db, pharmacy, distributor, connected, make_product, make_batch,
                                                shipped_order, monkeypatch):
    p = make_product(distributor, "Dolo 650")
    make_batch(distributor, p, 10)
    order = shipped_order(pharmacy, distributor, [(p, 4, 10)])

    calls = []
    real_lock, real_resolve = transfer_service.buyer_ledger_lock, transfer_service.resolve_or_create

    def lock(db, buyer_id):
        calls.append(("lock", buyer_id))
        return real_lock(db, buyer_id)

    def resolve(db, buyer_id, *args, **kwargs):
        calls.append(("resolve", buyer_id))
        return real_resolve(db, buyer_id, *args, **kwargs)

    monkeypatch.setattr(transfer_service, "buyer_ledger_lock", lock)
    monkeypatch.setattr(transfer_service, "resolve_or_create", resolve)
    _deliver(db, order, distributor)

    assert calls == [("lock", pharmacy.id), ("resolve", pharmacy.id)]

    sql = str(real_lock(db, pharmacy.id).statement.compile(dialect=postgresql.dialect()))
    assert "FROM tenants" in sql
    assert sql.rstrip().endswith("FOR UPDATE")
