"""
FIFO allocation: soonest expiry first, never over-draws, and a short
allocation leaves every batch untouched.
"""
from datetime import timedelta

import pytest

from pharmaledger.core.exceptions import InsufficientStockError, ValidationError
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.inventory import Batch
from pharmaledger.services.stock_allocator import allocate
from conftest import TODAY


@pytest.fixture
def three_batches(pharmacy, make_product, make_batch):
    product = make_product(pharmacy)
    e3 = make_batch(pharmacy, product, 10, expiry_date=TODAY + timedelta(days=300))
    e1 = make_batch(pharmacy, product, 4, expiry_date=TODAY + timedelta(days=20))
    e2 = make_batch(pharmacy, product, 6, expiry_date=TODAY + timedelta(days=90))
    return product, e1, e2, e3


def test_exhausts_earliest_expiry_first(db, pharmacy, three_batches):
    product, e1, e2, e3 = three_batches

    with unit_of_work(db):
        takes = allocate(db, pharmacy.id, product.id, 7)

    assert takes == [(e1.id, 4), (e2.id, 3)]
    assert [db.get(Batch, b.id).quantity for b in (e1, e2, e3)] == [0, 3, 10]


def test_exact_total_drains_everything(db, pharmacy, three_batches):
    product, e1, e2, e3 = three_batches

    with unit_of_work(db):
        takes = allocate(db, pharmacy.id, product.id, 20)

    assert sum(t.quantity for t in takes) == 20
    assert all(db.get(Batch, b.id).quantity == 0 for b in (e1, e2, e3))


def test_short_allocation_changes_nothing(db, pharmacy, three_batches):
    product, e1, e2, e3 = three_batches

    with pytest.raises(InsufficientStockError) as exc:
        with unit_of_work(db):
            allocate(db, pharmacy.id, product.id, 21)

    assert exc.value.needed == 21
    assert exc.value.available == 20
    assert [db.get(Batch, b.id).quantity for b in (e1, e2, e3)] == [4, 6, 10]


def test_sequence_never_overdraws(db, pharmacy, three_batches):
    product, e1, e2, e3 = three_batches
    taken = 0
    for qty in (3, 5, 1, 8, 4, 2):
        try:
            with unit_of_work(db):
                taken += sum(t.quantity for t in allocate(db, pharmacy.id, product.id, qty))
        except InsufficientStockError:
            pass

    remaining = [db.get(Batch, b.id).quantity for b in (e1, e2, e3)]
    assert taken <= 20
    assert taken + sum(remaining) == 20
    assert min(remaining) >= 0


def test_empty_batches_are_skipped(db, pharmacy, make_product, make_batch):
    product = make_product(pharmacy)
    make_batch(pharmacy, product, 0, expiry_date=TODAY + timedelta(days=5))
    live = make_batch(pharmacy, product, 5, expiry_date=TODAY + timedelta(days=50))

    with unit_of_work(db):
        takes = allocate(db, pharmacy.id, product.id, 2)

    assert takes == [(live.id, 2)]


@pytest.mark.parametrize("qty", [0, -3, 2.5, True, None])
def test_rejects_non_positive_or_fractional(db, pharmacy, three_batches, qty):
    product = three_batches[0]
    with pytest.raises(ValidationError):
        allocate(db, pharmacy.id, product.id, qty)
