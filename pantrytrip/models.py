"""Data models for receipts, pantry items, shopping lists and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ValidationError


def _number(value: Any, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be a number, got {value!r}") from e


def _optional_number(value: Any, field_name: str) -> float | None:
    return None if value is None else _number(value, field_name)


class StockLevel(str, Enum):
    STOCKED = "stocked"
    GOOD = "good"
    LOW = "low"
    OUT = "out"


class ListStatus(str, Enum):
    ACTIVE = "active"
    SHOPPING = "shopping"
    COMPLETED = "completed"
    ARCHIVED = "archived"


@dataclass
class ReceiptItem:
    """A single line item produced by the external receipt parser."""

    name: str
    quantity: float = 1.0
    unit_price: float = 0.0
    total_price: float = 0.0
    category: str | None = None
    size: str | None = None
    unit: str | None = None
    confidence: float | None = None  # OCR confidence, 0-100

    def needs_review(self, threshold: float = 70) -> bool:
        """True when the parser was unsure about this line.

        Display hint only; the item still takes part in reconciliation.
        """
        return self.confidence is not None and self.confidence < threshold

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("receipt item has an empty name")
        if self.quantity <= 0:
            raise ValidationError(
                f"receipt item {self.name!r} has non-positive quantity {self.quantity}"
            )
        if self.unit_price < 0 or self.total_price < 0:
            raise ValidationError(f"receipt item {self.name!r} has a negative price")
        if self.confidence is not None and not 0 <= self.confidence <= 100:
            raise ValidationError(
                f"receipt item {self.name!r} has confidence {self.confidence} outside 0-100"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReceiptItem:
        if not isinstance(data, dict):
            raise ValidationError(f"receipt item must be an object, got {data!r}")
        quantity = _number(data.get("quantity", 1) or 1, "quantity")
        unit_price = _number(data.get("unit_price", data.get("unitPrice", 0)) or 0, "unit_price")
        total = _optional_number(data.get("total_price", data.get("totalPrice")), "total_price")
        return cls(
            name=str(data.get("name", "")),
            quantity=quantity,
            unit_price=unit_price,
            total_price=total if total is not None else unit_price * quantity,
            category=data.get("category"),
            size=data.get("size"),
            unit=data.get("unit"),
            confidence=_optional_number(data.get("confidence"), "confidence"),
        )


@dataclass
class Receipt:
    """A scanned receipt and its line items."""

    id: str
    items: list[ReceiptItem] = field(default_factory=list)
    total: float = 0.0
    store_name: str = ""
    purchase_date: str = ""
    list_id: str | None = None

    def validate(self, require_items: bool = True) -> None:
        """Raise ValidationError for an empty or malformed receipt."""
        if require_items and not self.items:
            raise ValidationError(f"receipt {self.id!r} has no items")
        if self.total < 0:
            raise ValidationError(f"receipt {self.id!r} has a negative total")
        for item in self.items:
            item.validate()

    @classmethod
    def from_dict(cls, data: dict[str, Any], receipt_id: str = "") -> Receipt:
        if not isinstance(data, dict):
            raise ValidationError(f"receipt must be an object, got {type(data).__name__}")
        items = [ReceiptItem.from_dict(d) for d in data.get("items", [])]
        total = _optional_number(data.get("total"), "total")
        return cls(
            id=str(data.get("id", receipt_id)),
            items=items,
            total=total if total is not None else sum(i.total_price for i in items),
            store_name=data.get("store_name", data.get("storeName", "")) or "",
            purchase_date=data.get("purchase_date", data.get("purchaseDate", "")) or "",
            list_id=data.get("list_id"),
        )


@dataclass
class PantryItem:
    """A tracked household inventory entry."""

    id: str
    name: str
    category: str = "other"
    stock_level: StockLevel = StockLevel.STOCKED
    last_price: float | None = None
    default_size: str | None = None
    default_unit: str | None = None
    last_store_name: str | None = None


@dataclass
class ShoppingListItem:
    name: str
    quantity: float = 1.0
    priority: str = "medium"
    pantry_item_id: str | None = None
    estimated_price: float | None = None
    actual_price: float | None = None
    is_checked: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShoppingListItem:
        if not isinstance(data, dict):
            raise ValidationError(f"list item must be an object, got {data!r}")
        return cls(
            name=str(data.get("name", "")),
            quantity=_number(data.get("quantity", 1) or 1, "quantity"),
            priority=data.get("priority", "medium"),
            pantry_item_id=data.get("pantry_item_id"),
            estimated_price=_optional_number(data.get("estimated_price"), "estimated_price"),
            actual_price=_optional_number(data.get("actual_price"), "actual_price"),
            is_checked=bool(data.get("is_checked", False)),
        )


@dataclass
class ShoppingList:
    """A planned shopping trip."""

    id: str
    name: str = ""
    budget: float = 0.0
    status: ListStatus = ListStatus.ACTIVE
    items: list[ShoppingListItem] = field(default_factory=list)
    completed_at: float | None = None
    receipt_ids: list[str] = field(default_factory=list)
    actual_total: float | None = None

    def validate(self) -> None:
        if self.budget < 0:
            raise ValidationError(f"list {self.id!r} has a negative budget")
        for item in self.items:
            if not item.name or not item.name.strip():
                raise ValidationError(f"list {self.id!r} has an item with an empty name")

    @classmethod
    def from_dict(cls, data: dict[str, Any], list_id: str = "") -> ShoppingList:
        if not isinstance(data, dict):
            raise ValidationError(f"shopping list must be an object, got {type(data).__name__}")
        status = data.get("status", ListStatus.ACTIVE.value)
        try:
            status = ListStatus(status)
        except ValueError as e:
            raise ValidationError(f"unknown list status {status!r}") from e
        return cls(
            id=str(data.get("id", list_id)),
            name=data.get("name", ""),
            budget=_number(data.get("budget", 0) or 0, "budget"),
            status=status,
            items=[ShoppingListItem.from_dict(d) for d in data.get("items", [])],
        )


# --- Reconciliation results -------------------------------------------------


@dataclass
class RestockedItem:
    receipt_item_name: str
    pantry_item_id: str


@dataclass
class FuzzyMatch:
    """A receipt line that probably refers to an existing pantry item."""

    receipt_item_name: str
    pantry_item_id: str
    pantry_item_name: str
    similarity: int
    price: float | None = None
    size: str | None = None
    unit: str | None = None


@dataclass
class NewItem:
    """A receipt line with no pantry counterpart."""

    name: str
    category: str | None = None
    price: float | None = None
    size: str | None = None
    unit: str | None = None


@dataclass
class FailedCall:
    """An external mutation that failed and was skipped."""

    operation: str
    subject: str
    error: str


@dataclass
class RestockResult:
    restocked_items: list[RestockedItem] = field(default_factory=list)
    fuzzy_matches: list[FuzzyMatch] = field(default_factory=list)
    items_to_add: list[NewItem] = field(default_factory=list)
    failed_restocks: list[FailedCall] = field(default_factory=list)

    @property
    def needs_decisions(self) -> bool:
        return bool(self.fuzzy_matches or self.items_to_add)

    def pantry_item_ids(self) -> dict[str, set[str]]:
        """Pantry item ids referenced by each bucket."""
        return {
            "restocked_items": {r.pantry_item_id for r in self.restocked_items},
            "fuzzy_matches": {f.pantry_item_id for f in self.fuzzy_matches},
            "items_to_add": set(),
        }


@dataclass
class ReconciliationSummary:
    """Trip actuals compared to the list plan."""

    budget: float
    actual_total: float
    difference: float
    saved_money: bool
    percent_saved: float
    planned_items_count: int
    actual_items_count: int
    unplanned_items: list[ReceiptItem] = field(default_factory=list)
    unplanned_total: float = 0.0
    missed_items: list[ShoppingListItem] = field(default_factory=list)

    @property
    def overspend(self) -> float:
        return max(-self.difference, 0.0)
