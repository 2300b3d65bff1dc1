"""Derived procurement metrics.

Pure functions over the in-memory farmer, collection and payment lists. They
never mutate their inputs and never raise for empty lists, dates without
entries or collections that point at unknown farmers.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Union

from config import CURRENCY_SYMBOL
from models import MILK_SHIFTS, CollectionEntry, Farmer, PaymentRecord


@dataclass
class CollectionSummary:
    count: int = 0
    total_liters: float = 0.0
    total_amount: float = 0.0
    average_fat: float = 0.0
    average_snf: float = 0.0


@dataclass
class DailyMetrics:
    date: date
    total_liters: float
    total_amount: float
    average_fat: float
    average_snf: float
    unique_farmers: int
    shift_breakdown: Dict[str, float] = field(default_factory=dict)


@dataclass
class FarmerBalance:
    farmer: Farmer
    total_liters: float
    total_amount: float
    amount_paid: float
    balance: float  # negative when the farmer has been overpaid


@dataclass
class FarmerPerformance:
    farmer: Farmer
    total_liters: float
    total_amount: float


@dataclass
class DashboardTotals:
    total_farmers: int
    active_farmers: int
    total_collections: int
    overall_liters: float
    overall_amount: float
    overall_average_fat: float
    overall_average_snf: float
    total_paid: float
    total_outstanding: float
    daily: DailyMetrics


def round_value(value: float, precision: int = 2) -> float:
    """Round half up (ties toward +infinity) at ``precision`` decimals."""
    multiplier = 10 ** precision
    return math.floor(value * multiplier + 0.5) / multiplier


def _as_date(value: Union[str, date]) -> date:
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def summarize_collections(entries: List[CollectionEntry]) -> CollectionSummary:
    """Totals and quality averages over a list of entries.

    Averages divide by the number of entries; an empty list divides by 1 so
    they come out as 0.
    """
    total_liters = sum(entry.quantity_liters for entry in entries)
    total_amount = sum(entry.amount for entry in entries)
    total_fat = sum(entry.fat_percentage for entry in entries)
    total_snf = sum(entry.snf_percentage for entry in entries)
    divisor = len(entries) or 1

    return CollectionSummary(
        count=len(entries),
        total_liters=round_value(total_liters),
        total_amount=round_value(total_amount),
        average_fat=round_value(total_fat / divisor),
        average_snf=round_value(total_snf / divisor),
    )


def calculate_daily_metrics(day: Union[str, date], collections: List[CollectionEntry]) -> DailyMetrics:
    day = _as_date(day)
    entries = [entry for entry in collections if entry.date == day]
    summary = summarize_collections(entries)

    shift_breakdown = {shift: 0.0 for shift in MILK_SHIFTS}
    for entry in entries:
        # Entries with an unrecognised shift still count toward the day's totals
        if entry.shift in shift_breakdown:
            shift_breakdown[entry.shift] += entry.quantity_liters

    return DailyMetrics(
        date=day,
        total_liters=summary.total_liters,
        total_amount=summary.total_amount,
        average_fat=summary.average_fat,
        average_snf=summary.average_snf,
        unique_farmers=len({entry.farmer_id for entry in entries}),
        shift_breakdown={shift: round_value(liters) for shift, liters in shift_breakdown.items()},
    )


def compute_farmer_balances(farmers: List[Farmer], collections: List[CollectionEntry],
                            payments: List[PaymentRecord]) -> List[FarmerBalance]:
    """One balance row per farmer, in the order the farmers were given."""
    balances = []
    for farmer in farmers:
        farmer_collections = [entry for entry in collections if entry.farmer_id == farmer.id]
        farmer_payments = [payment for payment in payments if payment.farmer_id == farmer.id]

        total_liters = sum(entry.quantity_liters for entry in farmer_collections)
        total_amount = sum(entry.amount for entry in farmer_collections)
        amount_paid = sum(payment.amount for payment in farmer_payments)

        balances.append(FarmerBalance(
            farmer=farmer,
            total_liters=round_value(total_liters),
            total_amount=round_value(total_amount),
            amount_paid=round_value(amount_paid),
            balance=round_value(total_amount - amount_paid),
        ))
    return balances


def compute_dashboard_totals(farmers: List[Farmer], collections: List[CollectionEntry],
                             payments: List[PaymentRecord], selected_date: Union[str, date]) -> DashboardTotals:
    """Daily snapshot plus whole-history figures.

    ``total_outstanding`` is overall billed minus overall paid, summed directly
    over every collection and payment. It is not the sum of per-farmer
    balances and can differ from it when payments or collections reference
    farmers that are not in ``farmers``.
    """
    daily = calculate_daily_metrics(selected_date, collections)
    overall = summarize_collections(collections)
    total_paid = sum(payment.amount for payment in payments)
    overall_amount = sum(entry.amount for entry in collections)

    return DashboardTotals(
        total_farmers=len(farmers),
        active_farmers=len([farmer for farmer in farmers if farmer.is_active]),
        total_collections=len(collections),
        overall_liters=overall.total_liters,
        overall_amount=overall.total_amount,
        overall_average_fat=overall.average_fat,
        overall_average_snf=overall.average_snf,
        total_paid=round_value(total_paid),
        total_outstanding=round_value(overall_amount - total_paid),
        daily=daily,
    )


def get_top_performing_farmers(farmers: List[Farmer], collections: List[CollectionEntry],
                               limit: int = 3) -> List[FarmerPerformance]:
    """Farmers with the highest collected volume, largest first.

    Ties keep the order of ``farmers`` (the sort is stable); no secondary key
    is applied.
    """
    performances = [
        FarmerPerformance(farmer=row.farmer, total_liters=row.total_liters, total_amount=row.total_amount)
        for row in compute_farmer_balances(farmers, collections, [])
    ]
    performances.sort(key=lambda row: row.total_liters, reverse=True)
    return performances[:limit]


def compute_pending_dues(balances: Iterable[FarmerBalance]) -> float:
    """Sum of positive balances; overpaid farmers contribute nothing."""
    return round_value(sum(max(row.balance, 0) for row in balances))


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def _format_decimal(magnitude: float, min_fraction: int) -> str:
    whole, fraction = f"{magnitude:.2f}".split(".")
    fraction = fraction.rstrip("0").ljust(min_fraction, "0")
    text = _group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return text


def format_number(value: float) -> str:
    """en-IN grouping with at most two decimals, e.g. ``123456.5`` -> ``1,23,456.5``."""
    magnitude = round_value(abs(value))
    sign = "-" if value < 0 and magnitude else ""
    return sign + _format_decimal(magnitude, 0)


def format_currency(amount: float) -> str:
    """Rupee amount with en-IN grouping, e.g. ``1500`` -> ``₹1,500.00``."""
    # Sign and digits come from the same rounded magnitude, half away from zero.
    magnitude = round_value(abs(amount))
    sign = "-" if amount < 0 and magnitude else ""
    return f"{sign}{CURRENCY_SYMBOL}{_format_decimal(magnitude, 2)}"
