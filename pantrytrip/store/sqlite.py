"""SQLite-backed PantryStore."""

from __future__ import annotations

import sqlite3
import uuid
from pathlib import Path
from typing import Callable

from ..errors import NotFoundError, ValidationError
from ..matching import normalize_name
from ..models import (
    ListStatus,
    PantryItem,
    Receipt,
    ReceiptItem,
    ShoppingList,
    ShoppingListItem,
    StockLevel,
)
from . import PantryStore
from .schema import migrate


def _default_ids() -> str:
    return uuid.uuid4().hex


class SQLiteStore(PantryStore):
    """Manages the pantry, list and receipt tables of one database file.

    The async methods run their queries inline; every statement is a short
    local write.
    """

    def __init__(
        self,
        db_path: str | Path = "~/.config/pantrytrip/pantry.db",
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._db_path = db_path
        self._ids = id_factory or _default_ids
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            path = Path(self._db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            try:
                migrate(conn)
            except sqlite3.Error:
                conn.close()
                raise
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # --- Import helpers (sync) ---------------------------------------------

    def add_pantry_item(
        self,
        name: str,
        category: str = "other",
        stock_level: StockLevel = StockLevel.OUT,
        *,
        last_price: float | None = None,
    ) -> PantryItem:
        """Insert a pantry item and return it."""
        item = PantryItem(
            id=self._ids(),
            name=name,
            category=category,
            stock_level=stock_level,
            last_price=last_price,
        )
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO pantry_items (id, name, category, stock_level, last_price)
                   VALUES (?, ?, ?, ?, ?)""",
                (item.id, item.name, item.category, item.stock_level.value, item.last_price),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValidationError(f"cannot add pantry item {item.id!r}: {e}") from e
        return item

    def save_receipt(self, receipt: Receipt) -> str:
        """Insert a receipt and its items.

        Returns:
            The receipt id (generated when the receipt has none).
        """
        receipt_id = receipt.id or self._ids()
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO receipts (id, total, store_name, purchase_date, list_id)
                   VALUES (?, ?, ?, ?, ?)""",
                (receipt_id, receipt.total, receipt.store_name, receipt.purchase_date, receipt.list_id),
            )
            conn.executemany(
                """INSERT INTO receipt_items
                   (receipt_id, position, name, quantity, unit_price, total_price,
                    category, size, unit, confidence)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        receipt_id,
                        pos,
                        item.name,
                        item.quantity,
                        item.unit_price,
                        item.total_price,
                        item.category,
                        item.size,
                        item.unit,
                        item.confidence,
                    )
                    for pos, item in enumerate(receipt.items)
                ],
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValidationError(f"cannot save receipt {receipt_id!r}: {e}") from e
        return receipt_id

    def save_list(self, shopping_list: ShoppingList) -> str:
        """Insert a shopping list and its items.

        Returns:
            The list id (generated when the list has none).
        """
        list_id = shopping_list.id or self._ids()
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO shopping_lists (id, name, budget, status)
                   VALUES (?, ?, ?, ?)""",
                (list_id, shopping_list.name, shopping_list.budget, ListStatus(shopping_list.status).value),
            )
            conn.executemany(
                """INSERT INTO list_items
                   (list_id, position, name, quantity, priority, pantry_item_id,
                    estimated_price, actual_price, is_checked)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        list_id,
                        pos,
                        item.name,
                        item.quantity,
                        item.priority,
                        item.pantry_item_id,
                        item.estimated_price,
                        item.actual_price,
                        int(item.is_checked),
                    )
                    for pos, item in enumerate(shopping_list.items)
                ],
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValidationError(f"cannot save list {list_id!r}: {e}") from e
        return list_id

    # --- PantryStore --------------------------------------------------------

    async def get_pantry_items(self) -> list[PantryItem]:
        rows = self._get_conn().execute(
            "SELECT * FROM pantry_items ORDER BY created_at, rowid"
        ).fetchall()
        return [_pantry_from_row(r) for r in rows]

    async def restock_pantry_item(
        self,
        item_id: str,
        *,
        price: float | None = None,
        size: str | None = None,
        unit: str | None = None,
        store_name: str | None = None,
    ) -> None:
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
        key = normalize_name(name)
        for existing in await self.get_pantry_items():
            if normalize_name(existing.name) == key:
                self._restock(existing.id, price, size, unit, store_name)
                return self._get_pantry_item(existing.id)

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
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO pantry_items
               (id, name, category, stock_level, last_price, default_size,
                default_unit, last_store_name)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                item.id,
                item.name,
                item.category,
                item.stock_level.value,
                item.last_price,
                item.default_size,
                item.default_unit,
                item.last_store_name,
            ),
        )
        conn.commit()
        return item

    async def get_receipt(self, receipt_id: str) -> Receipt | None:
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM receipts WHERE id = ?", (receipt_id,)).fetchone()
        if row is None:
            return None
        item_rows = conn.execute(
            "SELECT * FROM receipt_items WHERE receipt_id = ? ORDER BY position",
            (receipt_id,),
        ).fetchall()
        return Receipt(
            id=row["id"],
            items=[
                ReceiptItem(
                    name=r["name"],
                    quantity=r["quantity"],
                    unit_price=r["unit_price"],
                    total_price=r["total_price"],
                    category=r["category"],
                    size=r["size"],
                    unit=r["unit"],
                    confidence=r["confidence"],
                )
                for r in item_rows
            ],
            total=row["total"],
            store_name=row["store_name"],
            purchase_date=row["purchase_date"],
            list_id=row["list_id"],
        )

    async def get_list(self, list_id: str) -> ShoppingList | None:
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM shopping_lists WHERE id = ?", (list_id,)).fetchone()
        if row is None:
            return None
        receipt_rows = conn.execute(
            "SELECT id FROM receipts WHERE list_id = ? ORDER BY created_at, rowid",
            (list_id,),
        ).fetchall()
        return ShoppingList(
            id=row["id"],
            name=row["name"],
            budget=row["budget"],
            status=ListStatus(row["status"]),
            items=self._list_items(list_id),
            completed_at=row["completed_at"],
            receipt_ids=[r["id"] for r in receipt_rows],
            actual_total=row["actual_total"],
        )

    async def get_list_items(self, list_id: str) -> list[ShoppingListItem]:
        self._require_list(list_id)
        return self._list_items(list_id)

    async def complete_shopping_list(self, list_id: str, completed_at: float) -> None:
        self._require_list(list_id)
        conn = self._get_conn()
        conn.execute(
            """UPDATE shopping_lists
               SET status = ?,
                   completed_at = ?,
                   actual_total = COALESCE(actual_total, (
                       SELECT NULLIF(SUM(
                           COALESCE(NULLIF(actual_price, 0), estimated_price, 0) * quantity
                       ), 0)
                       FROM list_items
                       WHERE list_id = ? AND is_checked = 1
                   ))
               WHERE id = ?""",
            (ListStatus.COMPLETED.value, completed_at, list_id, list_id),
        )
        conn.commit()

    async def link_receipt_to_list(self, receipt_id: str, list_id: str) -> None:
        conn = self._get_conn()
        if conn.execute("SELECT 1 FROM receipts WHERE id = ?", (receipt_id,)).fetchone() is None:
            raise NotFoundError(f"receipt {receipt_id!r} not found")
        self._require_list(list_id)
        conn.execute("UPDATE receipts SET list_id = ? WHERE id = ?", (list_id, receipt_id))
        conn.execute(
            """UPDATE shopping_lists
               SET actual_total = (SELECT SUM(total) FROM receipts WHERE list_id = ?)
               WHERE id = ?""",
            (list_id, list_id),
        )
        conn.commit()

    # --- Internals ----------------------------------------------------------

    def _require_list(self, list_id: str) -> None:
        row = self._get_conn().execute(
            "SELECT 1 FROM shopping_lists WHERE id = ?", (list_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"shopping list {list_id!r} not found")

    def _list_items(self, list_id: str) -> list[ShoppingListItem]:
        rows = self._get_conn().execute(
            "SELECT * FROM list_items WHERE list_id = ? ORDER BY position",
            (list_id,),
        ).fetchall()
        return [
            ShoppingListItem(
                name=r["name"],
                quantity=r["quantity"],
                priority=r["priority"],
                pantry_item_id=r["pantry_item_id"],
                estimated_price=r["estimated_price"],
                actual_price=r["actual_price"],
                is_checked=bool(r["is_checked"]),
            )
            for r in rows
        ]

    def _get_pantry_item(self, item_id: str) -> PantryItem:
        row = self._get_conn().execute(
            "SELECT * FROM pantry_items WHERE id = ?", (item_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"pantry item {item_id!r} not found")
        return _pantry_from_row(row)

    def _restock(
        self,
        item_id: str,
        price: float | None,
        size: str | None,
        unit: str | None,
        store_name: str | None,
    ) -> None:
        conn = self._get_conn()
        cur = conn.execute(
            """UPDATE pantry_items
               SET stock_level = 'stocked',
                   last_price = COALESCE(?, last_price),
                   default_size = COALESCE(?, default_size),
                   default_unit = COALESCE(?, default_unit),
                   last_store_name = COALESCE(?, last_store_name),
                   updated_at = datetime('now', 'localtime')
               WHERE id = ?""",
            (price, size or None, unit or None, store_name or None, item_id),
        )
        conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError(f"pantry item {item_id!r} not found")


def _pantry_from_row(row: sqlite3.Row) -> PantryItem:
    return PantryItem(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        stock_level=StockLevel(row["stock_level"]),
        last_price=row["last_price"],
        default_size=row["default_size"],
        default_unit=row["default_unit"],
        last_store_name=row["last_store_name"],
    )
