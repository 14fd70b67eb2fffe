"""Dict-backed PantryStore for tests and embedding callers."""

from __future__ import annotations

import copy
import uuid
from typing import Any, Callable

from ..errors import NotFoundError
from ..matching import normalize_name
from ..models import (
    ListStatus,
    PantryItem,
    Receipt,
    ShoppingList,
    ShoppingListItem,
    StockLevel,
)
from . import PantryStore


def _default_ids() -> str:
    return uuid.uuid4().hex


class InMemoryStore(PantryStore):
    """Keeps everything in dicts and logs every mutation in ``calls``.

    Reads hand out deep copies, so callers work on snapshots the same way
    they would against a remote store.
    """

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._ids = id_factory or _default_ids
        self._pantry: dict[str, PantryItem] = {}
        self._lists: dict[str, ShoppingList] = {}
        self._receipts: dict[str, Receipt] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    # --- Seeding ----------------------------------------------------------

    def add_pantry_item(
        self,
        name: str,
        category: str = "other",
        stock_level: StockLevel = StockLevel.OUT,
        *,
        item_id: str | None = None,
        last_price: float | None = None,
    ) -> PantryItem:
        item = PantryItem(
            id=item_id or self._ids(),
            name=name,
            category=category,
            stock_level=stock_level,
            last_price=last_price,
        )
        self._pantry[item.id] = item
        return copy.deepcopy(item)

    def add_list(self, shopping_list: ShoppingList) -> str:
        if not shopping_list.id:
            shopping_list.id = self._ids()
        self._lists[shopping_list.id] = copy.deepcopy(shopping_list)
        return shopping_list.id

    def add_receipt(self, receipt: Receipt) -> str:
        if not receipt.id:
            receipt.id = self._ids()
        self._receipts[receipt.id] = copy.deepcopy(receipt)
        return receipt.id

    def pantry_item(self, item_id: str) -> PantryItem:
        """Current (live) state of a pantry item, for assertions."""
        return self._pantry[item_id]

    def count_calls(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    # --- PantryStore --------------------------------------------------------

    async def get_pantry_items(self) -> list[PantryItem]:
        return copy.deepcopy(list(self._pantry.values()))

    async def restock_pantry_item(
        self,
        item_id: str,
        *,
        price: float | None = None,
        size: str | None = None,
        unit: str | None = None,
        store_name: str | None = None,
    ) -> None:
        self.calls.append(("restock_pantry_item", (item_id,)))
        self._restock(item_id, price, size, unit, store_name)

    async def confirm_fuzzy_restock(
        self,
        item_id: str,
        *,
        price: float | None = None,
        size: str | None = None,
        unit: str | None = None,
        store_name: str | None = None,
    ) -> None:
        self.calls.append(("confirm_fuzzy_restock", (item_id,)))
        self._restock(item_id, price, size, unit, store_name)

    async def add_pantry_item_from_receipt(
        self,
        name: str,
        category: str | None = None,
        *,
        price: float | None = None,
        size: str | None = None,
        unit: str | None = None,
        store_name: str | None = None,
    ) -> PantryItem:
        self.calls.append(("add_pantry_item_from_receipt", (name, category)))
        key = normalize_name(name)
        for item in self._pantry.values():
            if normalize_name(item.name) == key:
                self._restock(item.id, price, size, unit, store_name)
                return copy.deepcopy(item)

        item = PantryItem(
            id=self._ids(),
            name=name,
            category=category or "other",
            stock_level=StockLevel.STOCKED,
            last_price=price,
            default_size=size,
            default_unit=unit,
            last_store_name=store_name,
        )
        self._pantry[item.id] = item
        return copy.deepcopy(item)

    async def get_receipt(self, receipt_id: str) -> Receipt | None:
        receipt = self._receipts.get(receipt_id)
        return copy.deepcopy(receipt) if receipt is not None else None

    async def get_list(self, list_id: str) -> ShoppingList | None:
        shopping_list = self._lists.get(list_id)
        return copy.deepcopy(shopping_list) if shopping_list is not None else None

    async def get_list_items(self, list_id: str) -> list[ShoppingListItem]:
        return copy.deepcopy(self._require_list(list_id).items)

    async def complete_shopping_list(self, list_id: str, completed_at: float) -> None:
        self.calls.append(("complete_shopping_list", (list_id,)))
        shopping_list = self._require_list(list_id)
        shopping_list.status = ListStatus.COMPLETED
        shopping_list.completed_at = completed_at
        if shopping_list.actual_total is None:
            checked = _checked_total(shopping_list.items)
            shopping_list.actual_total = checked if checked > 0 else None

    async def link_receipt_to_list(self, receipt_id: str, list_id: str) -> None:
        self.calls.append(("link_receipt_to_list", (receipt_id, list_id)))
        receipt = self._receipts.get(receipt_id)
        if receipt is None:
            raise NotFoundError(f"receipt {receipt_id!r} not found")
        shopping_list = self._require_list(list_id)

        receipt.list_id = list_id
        if receipt_id not in shopping_list.receipt_ids:
            shopping_list.receipt_ids.append(receipt_id)
        shopping_list.actual_total = sum(
            self._receipts[rid].total
            for rid in shopping_list.receipt_ids
            if rid in self._receipts
        )

    # --- Internals ----------------------------------------------------------

    def _require_list(self, list_id: str) -> ShoppingList:
        shopping_list = self._lists.get(list_id)
        if shopping_list is None:
            raise NotFoundError(f"shopping list {list_id!r} not found")
        return shopping_list

    def _restock(
        self,
        item_id: str,
        price: float | None,
        size: str | None,
        unit: str | None,
        store_name: str | None,
    ) -> None:
        item = self._pantry.get(item_id)
        if item is None:
            raise NotFoundError(f"pantry item {item_id!r} not found")
        item.stock_level = StockLevel.STOCKED
        if price is not None:
            item.last_price = price
        if size:
            item.default_size = size
        if unit:
            item.default_unit = unit
        if store_name:
            item.last_store_name = store_name


def _checked_total(items: list[ShoppingListItem]) -> float:
    """Sum of checked items, actual price first, estimate as fallback."""
    total = 0.0
    for item in items:
        if not item.is_checked:
            continue
        price = item.actual_price or item.estimated_price
        if price:
            total += price * item.quantity
    return total
