"""
Shared fixtures: a fresh in-memory SQLite ledger per test plus small factories.

StaticPool keeps the single in-memory connection alive across sessions and
threads (the FastAPI TestClient runs requests on a worker thread).
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pharmaledger.db.base import Base
from pharmaledger.db.init_db import init_db
from pharmaledger.db.session import build_engine
from pharmaledger.models.tenant import Connection, ConnectionStatus, Tenant, TenantRole
from pharmaledger.schemas.orders import OrderLineCreate
from pharmaledger.services import order_service
from pharmaledger.services.ledger_service import create_batch, create_product

TODAY = date(2026, 7, 15)  # Monsoon


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_tenant(db):
    def _make(name="Sharma Medicals", role=TenantRole.PHARMACY):
        tenant = Tenant(name=name, role=role.value)
        db.add(tenant)
        db.commit()
        return tenant
    return _make


@pytest.fixture
def pharmacy(make_tenant):
    return make_tenant("Sharma Medicals", TenantRole.PHARMACY)


@pytest.fixture
def distributor(make_tenant):
    return make_tenant("Apex Pharma Distributors", TenantRole.DISTRIBUTOR)


@pytest.fixture
def connected(db, pharmacy, distributor):
    link = Connection(
        pharmacy_id=pharmacy.id,
        distributor_id=distributor.id,
        status=ConnectionStatus.APPROVED.value,
    )
    db.add(link)
    db.commit()
    return link


@pytest.fixture
def make_product(db):
    def _make(tenant, name="Dolo 650", **attrs):
        product = create_product(db, tenant.id, name, **attrs)
        db.commit()
        return product
    return _make


@pytest.fixture
def make_batch(db):
    counter = {"n": 0}

    def _make(tenant, product, quantity, expiry_date=None, purchase_rate="10.00", mrp="15.00", batch_number=None):
        counter["n"] += 1
        batch = create_batch(
            db,
            tenant.id,
            product.id,
            batch_number=batch_number or f"B-{counter['n']:03d}",
            expiry_date=expiry_date or TODAY + timedelta(days=365),
            quantity=quantity,
            mrp=Decimal(mrp),
            purchase_rate=Decimal(purchase_rate),
        )
        db.commit()
        return batch
    return _make


@pytest.fixture
def shipped_order(db):
    """Place an order and walk it to SHIPPED. lines: [(product, qty, price)]."""
    def _ship(pharmacy, distributor, lines):
        order = order_service.place_order(
            db,
            pharmacy.id,
            distributor.id,
            [OrderLineCreate(product_id=p.id, quantity=q, unit_price=Decimal(str(price))) for p, q, price in lines],
        )
        for status in ("ACCEPTED", "PACKED", "SHIPPED"):
            order = order_service.transition_order(db, order.id, status, actor_tenant_id=distributor.id)
        return order
    return _ship
