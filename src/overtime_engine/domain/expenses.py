"""Expense categories and their category-specific fields.

Details form a closed tagged union. Any code that branches on it uses a
``match`` statement ending in ``assert_never`` so that adding a variant
fails type checking until every branch handles it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, assert_never


class ExpenseCategory(str, Enum):
    """Expense categories."""

    PER_DIEM = "per_diem"
    MILEAGE = "mileage"
    HOTEL = "hotel"
    FUEL = "fuel"
    PARKING = "parking"
    TOLL = "toll"
    PUBLIC_TRANSPORT = "public_transport"
    MEAL = "meal"
    MATERIAL = "material"
    OTHER = "other"


class VehicleType(str, Enum):
    OWN = "own"
    COMPANY = "company"


class PerDiemType(str, Enum):
    FULL = "full"
    HALF = "half"


RECEIPT_CATEGORIES = frozenset(
    {
        ExpenseCategory.FUEL,
        ExpenseCategory.PARKING,
        ExpenseCategory.TOLL,
        ExpenseCategory.PUBLIC_TRANSPORT,
        ExpenseCategory.MEAL,
        ExpenseCategory.MATERIAL,
        ExpenseCategory.OTHER,
    }
)


@dataclass(frozen=True)
class MileageDetails:
    kilometers: Decimal
    vehicle: VehicleType
    origin: str | None = None
    destination: str | None = None

    @property
    def category(self) -> ExpenseCategory:
        return ExpenseCategory.MILEAGE


@dataclass(frozen=True)
class PerDiemDetails:
    allowance: PerDiemType

    @property
    def category(self) -> ExpenseCategory:
        return ExpenseCategory.PER_DIEM


@dataclass(frozen=True)
class HotelDetails:
    amount: Decimal
    nights: int = 1

    @property
    def category(self) -> ExpenseCategory:
        return ExpenseCategory.HOTEL


@dataclass(frozen=True)
class ReceiptDetails:
    """A user-entered amount backed by a receipt (toll, parking, fuel...)."""

    receipt_category: ExpenseCategory
    amount: Decimal

    def __post_init__(self) -> None:
        if self.receipt_category not in RECEIPT_CATEGORIES:
            raise ValueError(
                f"'{self.receipt_category.value}' is not a receipt category"
            )

    @property
    def category(self) -> ExpenseCategory:
        return self.receipt_category


ExpenseDetails = MileageDetails | PerDiemDetails | HotelDetails | ReceiptDetails


def details_to_dict(details: ExpenseDetails) -> dict[str, Any]:
    """Serialize details with the category as tag."""
    match details:
        case MileageDetails():
            return {
                "category": details.category.value,
                "kilometers": str(details.kilometers),
                "vehicle": details.vehicle.value,
                "origin": details.origin,
                "destination": details.destination,
            }
        case PerDiemDetails():
            return {
                "category": details.category.value,
                "allowance": details.allowance.value,
            }
        case HotelDetails():
            return {
                "category": details.category.value,
                "amount": str(details.amount),
                "nights": details.nights,
            }
        case ReceiptDetails():
            return {
                "category": details.category.value,
                "amount": str(details.amount),
            }
        case _:
            assert_never(details)


def details_from_dict(data: dict[str, Any]) -> ExpenseDetails:
    """Parse tagged details. Raises ValueError/KeyError on malformed input."""
    category = ExpenseCategory(data["category"])

    if category == ExpenseCategory.MILEAGE:
        return MileageDetails(
            kilometers=Decimal(str(data["kilometers"])),
            vehicle=VehicleType(data["vehicle"]),
            origin=data.get("origin"),
            destination=data.get("destination"),
        )
    if category == ExpenseCategory.PER_DIEM:
        return PerDiemDetails(allowance=PerDiemType(data["allowance"]))
    if category == ExpenseCategory.HOTEL:
        return HotelDetails(
            amount=Decimal(str(data["amount"])),
            nights=int(data.get("nights", 1)),
        )
    return ReceiptDetails(
        receipt_category=category,
        amount=Decimal(str(data["amount"])),
    )
