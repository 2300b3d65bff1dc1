import math
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, Dict, Any


MILK_SHIFTS = ("Morning", "Evening")
PAYMENT_METHODS = ("Cash", "Bank Transfer", "UPI", "Cheque")


def new_record_id() -> str:
    """Random identifier for a new record, or epoch milliseconds without a randomness source."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        return str(int(time.time() * 1000))


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return datetime.strptime(value, '%Y-%m-%d').date()
    if value is None:
        return date.today()
    return value


def _number(data: Dict[str, Any], key: str) -> float:
    value = float(data.get(key, 0))
    if not math.isfinite(value):
        raise ValueError(f"{key} is not a finite number: {value!r}")
    return value


def _optional(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if value else None


@dataclass
class Farmer:
    id: str = ""
    name: str = ""
    village: str = ""
    contact: str = ""
    code: Optional[str] = None
    rate_per_liter: float = 0.0
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "village": self.village,
            "contact": self.contact,
            "ratePerLiter": self.rate_per_liter,
            "isActive": self.is_active,
        }
        if self.code is not None:
            data["code"] = self.code
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Farmer":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            village=data.get("village", ""),
            contact=data.get("contact", ""),
            code=_optional(data, "code"),
            rate_per_liter=_number(data, "ratePerLiter"),
            is_active=bool(data.get("isActive", True)),
        )


@dataclass
class CollectionEntry:
    id: str = ""
    farmer_id: str = ""
    date: date = None
    shift: str = "Morning"  # "Morning" or "Evening"
    quantity_liters: float = 0.0
    fat_percentage: float = 0.0
    snf_percentage: float = 0.0
    rate_per_liter: float = 0.0
    # Stored at creation; never recomputed from quantity and rate
    amount: float = 0.0
    notes: Optional[str] = None

    def __post_init__(self):
        self.date = _parse_date(self.date)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "farmerId": self.farmer_id,
            "date": self.date.isoformat(),
            "shift": self.shift,
            "quantityLiters": self.quantity_liters,
            "fatPercentage": self.fat_percentage,
            "snfPercentage": self.snf_percentage,
            "ratePerLiter": self.rate_per_liter,
            "amount": self.amount,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionEntry":
        return cls(
            id=str(data["id"]),
            farmer_id=str(data["farmerId"]),
            date=data["date"],
            shift=data.get("shift", "Morning"),
            quantity_liters=_number(data, "quantityLiters"),
            fat_percentage=_number(data, "fatPercentage"),
            snf_percentage=_number(data, "snfPercentage"),
            rate_per_liter=_number(data, "ratePerLiter"),
            amount=_number(data, "amount"),
            notes=_optional(data, "notes"),
        )


@dataclass
class PaymentRecord:
    id: str = ""
    farmer_id: str = ""
    date: date = None
    amount: float = 0.0
    method: str = "Cash"
    reference: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        self.date = _parse_date(self.date)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "farmerId": self.farmer_id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "method": self.method,
        }
        if self.reference is not None:
            data["reference"] = self.reference
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentRecord":
        return cls(
            id=str(data["id"]),
            farmer_id=str(data["farmerId"]),
            date=data["date"],
            amount=_number(data, "amount"),
            method=data.get("method", "Cash"),
            reference=_optional(data, "reference"),
            notes=_optional(data, "notes"),
        )


@dataclass
class FarmerStatement:
    farmer: Farmer
    start_date: date
    end_date: date
    total_liters: float
    total_amount: float
    amount_paid: float
    balance: float
    collections: List[CollectionEntry] = field(default_factory=list)
    payments: List[PaymentRecord] = field(default_factory=list)
