"""Tests for record creation and the procurement book."""

import json
from datetime import date, timedelta

import pytest

from metrics import compute_dashboard_totals, compute_farmer_balances
from models import CollectionEntry, Farmer
from procurement import (
    ProcurementBook, ValidationError, build_collection_entry, build_farmer, build_payment_record,
    farmer_label, farmer_name, filter_balances, filter_collections, filter_farmers
)

from conftest import TODAY


class TestBuilders:
    """Create-time rules for new records."""

    def test_build_farmer(self):
        farmer = build_farmer("  Ramesh Gowda ", "Hosanagara", " 98765 43210 ", "  ", "35.456")

        assert farmer.id
        assert farmer.name == "Ramesh Gowda"
        assert farmer.contact == "98765 43210"
        assert farmer.code is None
        assert farmer.rate_per_liter == 35.46
        assert farmer.is_active is True

    def test_build_farmer_invalid_rate_is_zero(self):
        assert build_farmer("Ramesh", "Hosanagara", rate_per_liter="abc").rate_per_liter == 0

    @pytest.mark.parametrize("rate", ["nan", "inf", float("-inf")])
    def test_build_farmer_non_finite_rate_is_zero(self, rate):
        assert build_farmer("Ramesh", "Hosanagara", rate_per_liter=rate).rate_per_liter == 0

    def test_build_payment_rejects_non_finite_amount(self):
        with pytest.raises(ValidationError):
            build_payment_record("F1", "2024-05-01", "nan")

    @pytest.mark.parametrize("name,village", [("", "Hosanagara"), ("Ramesh", "   ")])
    def test_build_farmer_requires_name_and_village(self, name, village):
        with pytest.raises(ValidationError):
            build_farmer(name, village)

    def test_build_collection_entry_computes_amount(self, farmers):
        entry = build_collection_entry(farmers, "F1", "2024-05-01", "Morning", 12.346, 3.91, 8.44, 34.5, " ")

        assert entry.quantity_liters == 12.35
        assert entry.rate_per_liter == 34.5
        assert entry.amount == 425.94
        assert entry.notes is None
        assert entry.date == date(2024, 5, 1)

    def test_build_collection_entry_falls_back_to_farmer_rate(self, farmers):
        entry = build_collection_entry(farmers, "F2", "2024-05-01", "Evening", 10, 3.8, 8.3, 0)

        assert entry.rate_per_liter == 33.8
        assert entry.amount == 338

    def test_build_collection_entry_unknown_farmer_rate_is_zero(self, farmers):
        entry = build_collection_entry(farmers, "ghost", "2024-05-01", "Morning", 10, 3.8, 8.3, 0)
        assert entry.amount == 0

    def test_build_collection_entry_requires_farmer(self, farmers):
        with pytest.raises(ValidationError):
            build_collection_entry(farmers, "", "2024-05-01", "Morning", 10, 3.8, 8.3, 34)

    def test_build_collection_entry_rejects_unknown_shift(self, farmers):
        with pytest.raises(ValidationError):
            build_collection_entry(farmers, "F1", "2024-05-01", "Night", 10, 3.8, 8.3, 34)

    def test_build_payment_record(self):
        record = build_payment_record("F1", "2024-05-01", 1500.456, "UPI", " UPI812AA ", "")

        assert record.amount == 1500.46
        assert record.reference == "UPI812AA"
        assert record.notes is None

    @pytest.mark.parametrize("farmer_id,amount", [("", 100), ("F1", 0), ("F1", None)])
    def test_build_payment_requires_farmer_and_amount(self, farmer_id, amount):
        with pytest.raises(ValidationError):
            build_payment_record(farmer_id, "2024-05-01", amount)

    def test_build_payment_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            build_payment_record("F1", "2024-05-01", 100, "Barter")


class TestLookups:
    def test_farmer_name_placeholder(self, farmers):
        assert farmer_name(farmers, "F1") == "Anil Kumar"
        assert farmer_name(farmers, "ghost") == "Unknown"

    def test_farmer_label(self, farmers):
        assert farmer_label(farmers[0]) == "Farmer #F001"
        assert farmer_label(Farmer(id="abcdef-1234")) == "Farmer #abcdef"


class TestSearch:
    def test_filter_farmers(self, farmers):
        assert filter_farmers(farmers, "") == farmers
        assert [f.id for f in filter_farmers(farmers, "shivA")] == ["F2"]
        assert [f.id for f in filter_farmers(farmers, "f001")] == ["F1"]
        assert filter_farmers(farmers, "nobody") == []

    def test_filter_balances(self, farmers, collections, payments):
        balances = compute_farmer_balances(farmers, collections, payments)
        assert [row.farmer.id for row in filter_balances(balances, "98765")] == ["F1"]

    def test_filter_collections(self, farmers):
        entries = [
            CollectionEntry(id="m", farmer_id="F1", date="2024-05-01", shift="Morning"),
            CollectionEntry(id="e", farmer_id="F2", date="2024-05-01", shift="Evening", notes="Route 4"),
            CollectionEntry(id="x", farmer_id="ghost", date="2024-05-01", shift="Morning"),
            CollectionEntry(id="y", farmer_id="F1", date="2024-04-30", shift="Morning"),
        ]

        day = date(2024, 5, 1)
        assert [e.id for e in filter_collections(entries, farmers, day)] == ["e", "m", "x"]
        assert [e.id for e in filter_collections(entries, farmers, day, "route")] == ["e"]
        assert [e.id for e in filter_collections(entries, farmers, day, "anil")] == ["m"]


class TestProcurementBook:
    """Owned record lists with persistence."""

    @pytest.fixture
    def book(self, storage):
        book = ProcurementBook(storage, today=TODAY)
        book.hydrate()
        return book

    def test_starts_with_demo_data(self, book):
        assert book.is_hydrated
        assert [f.id for f in book.farmers] == ["farmer-01", "farmer-02", "farmer-03"]
        assert len(book.collections) == 3
        assert len(book.payments) == 2
        assert book.collections[2].date == TODAY - timedelta(days=1)

    def test_not_hydrated_before_first_read(self, storage):
        assert ProcurementBook(storage, today=TODAY).is_hydrated is False

    def test_new_records_are_prepended(self, book):
        farmer = build_farmer("Ramesh Gowda", "Hosanagara")
        book.add_farmer(farmer)
        entry = build_collection_entry(book.farmers, farmer.id, TODAY, "Morning", 10, 3.8, 8.3, 34)
        book.add_collection(entry)
        payment = build_payment_record(farmer.id, TODAY, 100)
        book.add_payment(payment)

        assert book.farmers[0] == farmer
        assert book.collections[0] == entry
        assert book.payments[0] == payment

    def test_changes_survive_restart(self, book, storage):
        farmer = build_farmer("Ramesh Gowda", "Hosanagara")
        book.add_farmer(farmer)

        reopened = ProcurementBook(storage, today=TODAY)
        reopened.hydrate()

        assert reopened.farmers[0] == farmer
        assert len(reopened.farmers) == 4

    def test_toggle_farmer_status(self, book):
        book.toggle_farmer_status("farmer-02")

        assert [f.is_active for f in book.farmers] == [True, False, True]
        assert [f.id for f in book.active_farmers()] == ["farmer-01", "farmer-03"]

        book.toggle_farmer_status("farmer-02")
        assert book.farmers[1].is_active is True

    def test_toggle_unknown_farmer_is_noop(self, book):
        before = list(book.farmers)
        book.toggle_farmer_status("ghost")
        assert book.farmers == before

    def test_reset_all(self, book, storage):
        book.add_farmer(build_farmer("Ramesh Gowda", "Hosanagara"))
        book.toggle_farmer_status("farmer-01")

        book.reset_all()

        assert len(book.farmers) == 3
        assert book.farmers[0].is_active is True
        assert storage.get_item("milk-farmers") is None
        assert storage.get_item("milk-collections") is None
        assert storage.get_item("milk-payments") is None

    def test_farmer_statement(self, book):
        statement = book.build_farmer_statement("farmer-01", TODAY - timedelta(days=7), TODAY)

        assert statement.farmer.name == "Anil Kumar"
        assert statement.total_liters == 28
        assert statement.total_amount == 966
        assert statement.amount_paid == 1500
        assert statement.balance == -534
        assert len(statement.collections) == 1
        assert len(statement.payments) == 1

    def test_statement_respects_period(self, book):
        statement = book.build_farmer_statement("farmer-01", TODAY, TODAY)

        assert statement.amount_paid == 0
        assert statement.balance == 966

    def test_statement_unknown_farmer(self, book):
        assert book.build_farmer_statement("ghost", TODAY, TODAY) is None

    def test_non_finite_slot_falls_back_to_defaults(self, storage, caplog):
        storage.set_item("milk-collections", json.dumps([{
            "id": "c1", "farmerId": "farmer-01", "date": TODAY.isoformat(), "shift": "Morning",
            "quantityLiters": float("nan"), "amount": float("nan"),
        }]))

        book = ProcurementBook(storage, today=TODAY)
        book.hydrate()
        totals = compute_dashboard_totals(book.farmers, book.collections, book.payments, TODAY)

        assert [e.id for e in book.collections] == ["col-01", "col-02", "col-03"]
        assert "Failed to parse" in caplog.text
        assert totals.daily.total_liters == 52

    def test_in_memory_only(self):
        book = ProcurementBook(None, today=TODAY)

        assert book.is_hydrated
        book.add_farmer(build_farmer("Ramesh Gowda", "Hosanagara"))
        assert len(book.farmers) == 4
