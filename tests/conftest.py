"""Shared fixtures for the procurement ledger tests."""

from datetime import date

import pytest

from models import CollectionEntry, Farmer, PaymentRecord
from storage import LocalStorage

TODAY = date(2024, 5, 1)


@pytest.fixture
def storage(tmp_path):
    """LocalStorage backed by a throwaway SQLite file."""
    return LocalStorage(str(tmp_path / "ledger.db"))


@pytest.fixture
def farmers():
    return [
        Farmer(id="F1", name="Anil Kumar", village="Holenarasipur", contact="98765 43210",
               code="F001", rate_per_liter=34.5, is_active=True),
        Farmer(id="F2", name="Savitri Hegde", village="Shivamogga", contact="99876 54321",
               code=None, rate_per_liter=33.8, is_active=False),
    ]


@pytest.fixture
def collections():
    return [
        CollectionEntry(id="c1", farmer_id="F1", date="2024-05-01", shift="Morning",
                        quantity_liters=28, fat_percentage=3.9, snf_percentage=8.4,
                        rate_per_liter=34.5, amount=966, notes="Clean sample"),
    ]


@pytest.fixture
def payments():
    return [
        PaymentRecord(id="p1", farmer_id="F1", date="2024-05-01", amount=500, method="Cash"),
    ]
