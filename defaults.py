"""Demo dataset the ledger starts with and returns to on reset."""

from datetime import date, timedelta
from typing import List, Optional

from models import CollectionEntry, Farmer, PaymentRecord


def default_farmers() -> List[Farmer]:
    return [
        Farmer(id="farmer-01", name="Anil Kumar", village="Holenarasipur",
               contact="98765 43210", code="F001", rate_per_liter=34.5, is_active=True),
        Farmer(id="farmer-02", name="Savitri Hegde", village="Shivamogga",
               contact="99876 54321", code="F002", rate_per_liter=33.8, is_active=True),
        Farmer(id="farmer-03", name="Mahesh Patil", village="Ranebennur",
               contact="91234 56789", code="F003", rate_per_liter=35.2, is_active=True),
    ]


def default_collections(today: Optional[date] = None) -> List[CollectionEntry]:
    today = today or date.today()
    yesterday = today - timedelta(days=1)
    return [
        CollectionEntry(id="col-01", farmer_id="farmer-01", date=today, shift="Morning",
                        quantity_liters=28, fat_percentage=3.9, snf_percentage=8.4,
                        rate_per_liter=34.5, amount=966, notes="Clean sample"),
        CollectionEntry(id="col-02", farmer_id="farmer-02", date=today, shift="Evening",
                        quantity_liters=24, fat_percentage=3.8, snf_percentage=8.2,
                        rate_per_liter=33.8, amount=811.2),
        CollectionEntry(id="col-03", farmer_id="farmer-03", date=yesterday, shift="Morning",
                        quantity_liters=30, fat_percentage=4.1, snf_percentage=8.6,
                        rate_per_liter=35.2, amount=1056),
    ]


def default_payments(today: Optional[date] = None) -> List[PaymentRecord]:
    today = today or date.today()
    yesterday = today - timedelta(days=1)
    return [
        PaymentRecord(id="pay-01", farmer_id="farmer-01", date=yesterday, amount=1500,
                      method="Bank Transfer", reference="NEFT2811X"),
        PaymentRecord(id="pay-02", farmer_id="farmer-02", date=yesterday, amount=1200,
                      method="UPI", reference="UPI812AA"),
    ]
