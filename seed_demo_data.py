#!/usr/bin/env python3
"""
Seed a demo pharmacy and distributor with an approved connection and some stock.
Usage: python seed_demo_data.py
"""

import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent / "backend"
sys.path.insert(0, str(backend_dir))

from pharmaledger.core.clock import today
from pharmaledger.db.init_db import init_db
from pharmaledger.db.session import SessionLocal
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.tenant import Connection, ConnectionStatus, Tenant, TenantRole
from pharmaledger.services.ledger_service import create_batch, create_product

# name, category, seasonality, [(batch, days to expiry, qty, mrp, purchase rate)]
DISTRIBUTOR_STOCK = [
    ("Dolo 650", "Antipyretic", "Monsoon", [("DL-2401", 120, 400, "32.00", "21.50"), ("DL-2405", 400, 600, "32.00", "22.00")]),
    ("Azithral 500", "Antibiotic", "Winter", [("AZ-1102", 45, 150, "119.50", "84.00")]),
    ("Cetzine 10mg", "Antihistamine", "Summer", [("CZ-0907", 20, 80, "18.00", "11.00")]),
    ("ORS Electral", "Rehydration", "Summer", [("OR-5510", 300, 1000, "21.00", "14.00")]),
]


def seed_demo_data():
    init_db()
    db = SessionLocal()
    try:
        if db.query(Tenant).first():
            print("Tenants already exist, skipping seed")
            return True

        with unit_of_work(db):
            pharmacy = Tenant(name="Sharma Medicals", role=TenantRole.PHARMACY.value)
            distributor = Tenant(name="Apex Pharma Distributors", role=TenantRole.DISTRIBUTOR.value)
            db.add_all([pharmacy, distributor])
            db.flush()
            db.add(Connection(
                pharmacy_id=pharmacy.id,
                distributor_id=distributor.id,
                status=ConnectionStatus.APPROVED.value,
            ))

            for name, category, season, batches in DISTRIBUTOR_STOCK:
                product = create_product(db, distributor.id, name, category=category, seasonality=season)
                for number, days, qty, mrp, rate in batches:
                    create_batch(
                        db,
                        distributor.id,
                        product.id,
                        batch_number=number,
                        expiry_date=today() + timedelta(days=days),
                        quantity=qty,
                        mrp=Decimal(mrp),
                        purchase_rate=Decimal(rate),
                    )

        print(f"Pharmacy:    id={pharmacy.id} {pharmacy.name}")
        print(f"Distributor: id={distributor.id} {distributor.name}")
        print(f"Seeded {len(DISTRIBUTOR_STOCK)} products. Use the ids above as X-Tenant-Id.")
        return True
    finally:
        db.close()


if __name__ == "__main__":
    success = seed_demo_data()
    sys.exit(0 if success else 1)
