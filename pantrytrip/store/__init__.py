"""Pantry store interface, call guard and factory."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Awaitable, TypeVar

from ..errors import PantryTripError, RemoteCallFailure
from ..models import PantryItem, Receipt, ShoppingList, ShoppingListItem

if TYPE_CHECKING:
    from ..config import PantryTripConfig
    from .sqlite import SQLiteStore

T = TypeVar("T")


class PantryStore(ABC):
    """Abstract async access to pantry, shopping list and receipt data.

    Lookups return ``None`` for unknown ids; mutations raise NotFoundError.
    """

    @abstractmethod
    async def get_pantry_items(self) -> list[PantryItem]:
        ...

    @abstractmethod
    async def restock_pantry_item(
        self,
        item_id: str,
        *,
        price: float | None = None,
        size: str | None = None,
        unit: str | None = None,
        store_name: str | None = None,
    ) -> None:
        """Set the item to ``stocked`` and record the receipt details."""
        ...

    @abstractmethod
    async def confirm_fuzzy_restock(
        self,
        item_id: str,
        *,
        price: float | None = None,
        size: str | None = None,
        unit: str | None = None,
        store_name: str | None = None,
    ) -> None:
        """Restock an item the user confirmed as a fuzzy match."""
        ...

    @abstractmethod
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
        """Create a stocked pantry item.

        An existing item with the same normalized name is restocked
        instead of being duplicated.
        """
        ...

    @abstractmethod
    async def get_receipt(self, receipt_id: str) -> Receipt | None:
        ...

    @abstractmethod
    async def get_list(self, list_id: str) -> ShoppingList | None:
        ...

    @abstractmethod
    async def get_list_items(self, list_id: str) -> list[ShoppingListItem]:
        ...

    @abstractmethod
    async def complete_shopping_list(self, list_id: str, completed_at: float) -> None:
        ...

    @abstractmethod
    async def link_receipt_to_list(self, receipt_id: str, list_id: str) -> None:
        ...


async def remote_call(
    operation: str,
    subject: str,
    call: Awaitable[T],
    timeout: float | None = None,
) -> T:
    """Await one store call, mapping failures to RemoteCallFailure.

    Domain errors (NotFoundError etc.) pass through unchanged. No retries.
    """
    try:
        if timeout:
            return await asyncio.wait_for(call, timeout)
        return await call
    except PantryTripError:
        raise
    except asyncio.TimeoutError as e:
        raise RemoteCallFailure(operation, subject, f"timed out after {timeout}s") from e
    except Exception as e:
        raise RemoteCallFailure(operation, subject, str(e)) from e


def create_store(config: PantryTripConfig) -> SQLiteStore:
    """Create the SQLite-backed store named by the configuration."""
    from .sqlite import SQLiteStore

    return SQLiteStore(config.database.path)


__all__ = [
    "PantryStore",
    "remote_call",
    "create_store",
]
