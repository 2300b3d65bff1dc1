"""Procurement ledger: record creation and the three owned record lists."""

import logging
import math
from dataclasses import replace
from datetime import date
from typing import List, Optional

from config import COLLECTIONS_KEY, FARMERS_KEY, PAYMENTS_KEY
from defaults import default_collections, default_farmers, default_payments
from metrics import FarmerBalance, compute_farmer_balances, round_value
from models import (
    MILK_SHIFTS, PAYMENT_METHODS, CollectionEntry, Farmer, FarmerStatement, PaymentRecord, new_record_id
)
from storage import LocalStorage, PersistentState

logger = logging.getLogger(__name__)

UNKNOWN_FARMER = "Unknown"


class ValidationError(ValueError):
    """A form submission is missing a required field."""


def _to_float(value) -> float:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _clean(text) -> str:
    return (text or "").strip()


def build_farmer(name, village, contact="", code="", rate_per_liter=0) -> Farmer:
    name, village = _clean(name), _clean(village)
    if not name or not village:
        raise ValidationError("Farmer name and village are required.")

    return Farmer(
        id=new_record_id(),
        name=name,
        village=village,
        contact=_clean(contact),
        code=_clean(code) or None,
        rate_per_liter=round_value(_to_float(rate_per_liter)),
        is_active=True,
    )


def build_collection_entry(farmers: List[Farmer], farmer_id, entry_date, shift, quantity_liters,
                           fat_percentage, snf_percentage, rate_per_liter=0, notes="") -> CollectionEntry:
    """Create a collection entry, snapshotting the rate and billed amount.

    A zero or missing rate falls back to the farmer's contracted rate.
    """
    if not farmer_id:
        raise ValidationError("Select a farmer for this collection.")
    if shift not in MILK_SHIFTS:
        raise ValidationError(f"Shift must be one of: {', '.join(MILK_SHIFTS)}.")

    farmer = resolve_farmer(farmers, farmer_id)
    rate = _to_float(rate_per_liter) or (farmer.rate_per_liter if farmer else 0) or 0
    quantity = _to_float(quantity_liters)

    return CollectionEntry(
        id=new_record_id(),
        farmer_id=farmer_id,
        date=entry_date,
        shift=shift,
        quantity_liters=round_value(quantity),
        fat_percentage=round_value(_to_float(fat_percentage)),
        snf_percentage=round_value(_to_float(snf_percentage)),
        rate_per_liter=round_value(rate),
        amount=round_value(quantity * rate),
        notes=_clean(notes) or None,
    )


def build_payment_record(farmer_id, payment_date, amount, method="Cash", reference="", notes="") -> PaymentRecord:
    amount = _to_float(amount)
    if not farmer_id or not amount:
        raise ValidationError("Select a farmer and enter a payment amount.")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}.")

    return PaymentRecord(
        id=new_record_id(),
        farmer_id=farmer_id,
        date=payment_date,
        amount=round_value(amount),
        method=method,
        reference=_clean(reference) or None,
        notes=_clean(notes) or None,
    )


def resolve_farmer(farmers: List[Farmer], farmer_id) -> Optional[Farmer]:
    return next((farmer for farmer in farmers if farmer.id == farmer_id), None)


def farmer_name(farmers: List[Farmer], farmer_id) -> str:
    farmer = resolve_farmer(farmers, farmer_id)
    return farmer.name if farmer else UNKNOWN_FARMER


def farmer_label(farmer: Farmer) -> str:
    return f"Farmer #{farmer.code if farmer.code is not None else farmer.id[:6]}"


def _matches(query: str, *fields) -> bool:
    return any(query in value.lower() for value in fields if value)


def filter_farmers(farmers: List[Farmer], query: str) -> List[Farmer]:
    q = _clean(query).lower()
    if not q:
        return list(farmers)
    return [
        farmer for farmer in farmers
        if _matches(q, farmer.name, farmer.village, farmer.contact, farmer.code)
    ]


def filter_balances(balances: List[FarmerBalance], query: str) -> List[FarmerBalance]:
    q = _clean(query).lower()
    if not q:
        return list(balances)
    return [
        row for row in balances
        if _matches(q, row.farmer.name, row.farmer.village, row.farmer.contact, row.farmer.code)
    ]


def filter_collections(collections: List[CollectionEntry], farmers: List[Farmer],
                       selected_date: date, keyword: str = "") -> List[CollectionEntry]:
    """Entries for one day, optionally narrowed by a keyword, ordered by shift name."""
    q = _clean(keyword).lower()
    entries = []
    for entry in collections:
        if entry.date != selected_date:
            continue
        if q:
            farmer = resolve_farmer(farmers, entry.farmer_id)
            haystack = " ".join(filter(None, [
                farmer.name if farmer else None,
                farmer.village if farmer else None,
                farmer.contact if farmer else None,
                entry.notes,
            ])).lower()
            if q not in haystack:
                continue
        entries.append(entry)
    return sorted(entries, key=lambda entry: entry.shift)


def _encode_records(records):
    return [record.to_dict() for record in records]


class ProcurementBook:
    """Farmers, collections and payments, each persisted in its own slot."""

    def __init__(self, storage: Optional[LocalStorage] = None, today: Optional[date] = None):
        self.today = today or date.today()
        self.farmers_state = PersistentState(
            FARMERS_KEY, default_farmers(), storage,
            encode=_encode_records, decode=lambda data: [Farmer.from_dict(d) for d in data]
        )
        self.collections_state = PersistentState(
            COLLECTIONS_KEY, default_collections(self.today), storage,
            encode=_encode_records, decode=lambda data: [CollectionEntry.from_dict(d) for d in data]
        )
        self.payments_state = PersistentState(
            PAYMENTS_KEY, default_payments(self.today), storage,
            encode=_encode_records, decode=lambda data: [PaymentRecord.from_dict(d) for d in data]
        )

    @property
    def farmers(self) -> List[Farmer]:
        return self.farmers_state.value

    @property
    def collections(self) -> List[CollectionEntry]:
        return self.collections_state.value

    @property
    def payments(self) -> List[PaymentRecord]:
        return self.payments_state.value

    @property
    def is_hydrated(self) -> bool:
        return self.farmers_state.hydrated and self.collections_state.hydrated and self.payments_state.hydrated

    def hydrate(self):
        self.farmers_state.hydrate()
        self.collections_state.hydrate()
        self.payments_state.hydrate()
        logger.info(
            "Loaded %d farmers, %d collections, %d payments",
            len(self.farmers), len(self.collections), len(self.payments)
        )

    def active_farmers(self) -> List[Farmer]:
        return [farmer for farmer in self.farmers if farmer.is_active]

    def add_farmer(self, farmer: Farmer):
        self.farmers_state.update(lambda prev: [farmer] + prev)
        logger.info("Added farmer %s (%s)", farmer.id, farmer.name)

    def toggle_farmer_status(self, farmer_id):
        self.farmers_state.update(lambda prev: [
            replace(farmer, is_active=not farmer.is_active) if farmer.id == farmer_id else farmer
            for farmer in prev
        ])
        logger.info("Toggled status of farmer %s", farmer_id)

    def add_collection(self, entry: CollectionEntry):
        self.collections_state.update(lambda prev: [entry] + prev)
        logger.info("Logged %.2f L from farmer %s (%s %s)",
                    entry.quantity_liters, entry.farmer_id, entry.date, entry.shift)

    def add_payment(self, record: PaymentRecord):
        self.payments_state.update(lambda prev: [record] + prev)
        logger.info("Recorded payment %.2f to farmer %s via %s", record.amount, record.farmer_id, record.method)

    def reset_all(self):
        self.farmers_state.reset()
        self.collections_state.reset()
        self.payments_state.reset()
        logger.info("Restored demo data")

    def build_farmer_statement(self, farmer_id, start_date: date, end_date: date) -> Optional[FarmerStatement]:
        """Collections and payments for one farmer within a date range, with totals."""
        farmer = resolve_farmer(self.farmers, farmer_id)
        if farmer is None:
            return None

        collections = sorted(
            (entry for entry in self.collections
             if entry.farmer_id == farmer_id and start_date <= entry.date <= end_date),
            key=lambda entry: (entry.date, 0 if entry.shift == "Morning" else 1)
        )
        payments = sorted(
            (payment for payment in self.payments
             if payment.farmer_id == farmer_id and start_date <= payment.date <= end_date),
            key=lambda payment: payment.date
        )
        balance = compute_farmer_balances([farmer], collections, payments)[0]

        return FarmerStatement(
            farmer=farmer,
            start_date=start_date,
            end_date=end_date,
            total_liters=balance.total_liters,
            total_amount=balance.total_amount,
            amount_paid=balance.amount_paid,
            balance=balance.balance,
            collections=collections,
            payments=payments,
        )
