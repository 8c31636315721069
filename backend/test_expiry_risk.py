"""
Expiry risk: which batches will outlive their shelf life, what to do about
them, and the monthly value heatmap.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from pharmaledger.core.config import ForecastPolicy, settings
from pharmaledger.schemas.sales import SaleLineCreate
from pharmaledger.services.expiry_risk import expiry_risk, suggest_action
from pharmaledger.services.sales_service import record_sale
from conftest import TODAY

SEVERITY = {"Transfer to Branch": 0, "Discount Window": 1, "Liquidate": 2}


def _sell(db, tenant, product, qty, days_ago=5):
    sold_at = datetime.combine(TODAY, datetime.min.time()) - timedelta(days=days_ago)
    record_sale(db, tenant.id, [SaleLineCreate(product_id=product.id, quantity=qty)], sold_at=sold_at)


@pytest.mark.parametrize("days,action", [
    (0, "Liquidate"), (29, "Liquidate"),
    (30, "Discount Window"), (59, "Discount Window"),
    (60, "Transfer to Branch"), (180, "Transfer to Branch"),
])
def test_suggest_action_steps(days, action):
    assert suggest_action(days) == action


def test_suggest_action_reads_configured_thresholds(monkeypatch):
    monkeypatch.setattr(settings, "LIQUIDATE_BEFORE_DAYS", 45)
    monkeypatch.setattr(settings, "DISCOUNT_BEFORE_DAYS", 90)

    assert suggest_action(40) == "Liquidate"
    assert suggest_action(75) == "Discount Window"
    assert suggest_action(90) == "Transfer to Branch"


def test_action_only_escalates_as_expiry_approaches():
    levels = [SEVERITY[suggest_action(d)] for d in range(180, -1, -1)]
    assert levels == sorted(levels)


def test_unsold_batches_inside_window_are_at_risk(db, pharmacy, make_product, make_batch):
    p = make_product(pharmacy, "Slow Syrup")
    soon = make_batch(pharmacy, p, 10, expiry_date=TODAY + timedelta(days=20), purchase_rate="5.00")
    mid = make_batch(pharmacy, p, 4, expiry_date=TODAY + timedelta(days=45), purchase_rate="30.00")
    late = make_batch(pharmacy, p, 2, expiry_date=TODAY + timedelta(days=120), purchase_rate="100.00")
    make_batch(pharmacy, p, 50, expiry_date=TODAY + timedelta(days=200))  # outside window
    make_batch(pharmacy, p, 50, expiry_date=TODAY - timedelta(days=1))    # already expired
    make_batch(pharmacy, p, 0, expiry_date=TODAY + timedelta(days=10))    # empty

    report = expiry_risk(db, pharmacy.id, today=TODAY)

    assert [i.batch_id for i in report.risk_items] == [late.id, mid.id, soon.id]
    assert [i.estimated_loss for i in report.risk_items] == [Decimal("200"), Decimal("120"), Decimal("50")]
    assert [i.suggested_action for i in report.risk_items] == ["Transfer to Branch", "Discount Window", "Liquidate"]
    assert all(i.days_to_sell == 9999 for i in report.risk_items)
    assert report.risk_items[-1].days_to_expiry == 20
    assert report.total_value_at_risk == Decimal("370")


def test_fast_sellers_are_not_at_risk(db, pharmacy, make_product, make_batch):
    fast = make_product(pharmacy, "Dolo 650")
    make_batch(pharmacy, fast, 500, expiry_date=TODAY + timedelta(days=400))
    safe = make_batch(pharmacy, fast, 300, expiry_date=TODAY + timedelta(days=100))
    _sell(db, pharmacy, fast, 180)  # 2/day, 120 left in the soonest batch

    slow = make_product(pharmacy, "Rare Drops")
    make_batch(pharmacy, slow, 100, expiry_date=TODAY + timedelta(days=170))
    risky = make_batch(pharmacy, slow, 40, expiry_date=TODAY + timedelta(days=90))
    _sell(db, pharmacy, slow, 10)  # ~0.11/day

    report = expiry_risk(db, pharmacy.id, today=TODAY)
    ids = [i.batch_id for i in report.risk_items]

    assert safe.id not in ids
    assert risky.id in ids
    item = next(i for i in report.risk_items if i.batch_id == risky.id)
    assert item.days_to_sell > item.days_to_expiry


def test_heatmap_buckets_at_risk_value_by_month(db, pharmacy, make_product, make_batch):
    p = make_product(pharmacy, "Slow Syrup")
    make_batch(pharmacy, p, 10, expiry_date=TODAY + timedelta(days=20), purchase_rate="5.00")    # Aug 2026
    make_batch(pharmacy, p, 4, expiry_date=TODAY + timedelta(days=45), purchase_rate="30.00")    # Aug 2026
    make_batch(pharmacy, p, 2, expiry_date=TODAY + timedelta(days=120), purchase_rate="100.00")  # Nov 2026

    report = expiry_risk(db, pharmacy.id, today=TODAY)

    assert [(c.month, c.label, c.value, c.batches) for c in report.heatmap] == [
        ("2026-08", "Aug 2026", Decimal("170"), 2),
        ("2026-11", "Nov 2026", Decimal("200"), 1),
    ]


def test_no_batches_gives_empty_report(db, pharmacy):
    report = expiry_risk(db, pharmacy.id, today=TODAY)
    assert report.risk_items == []
    assert report.heatmap == []
    assert report.total_value_at_risk == 0


def test_policy_override_narrows_window(db, pharmacy, make_product, make_batch):
    p = make_product(pharmacy, "Slow Syrup")
    make_batch(pharmacy, p, 10, expiry_date=TODAY + timedelta(days=20))
    make_batch(pharmacy, p, 10, expiry_date=TODAY + timedelta(days=120))

    report = expiry_risk(db, pharmacy.id, today=TODAY, policy=ForecastPolicy(expiry_window_days=60))
    assert len(report.risk_items) == 1
