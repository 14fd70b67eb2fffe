"""Tests for the restock engine."""

import asyncio
import itertools
from unittest.mock import AsyncMock

import pytest

from pantrytrip.config import MatchingConfig
from pantrytrip.errors import InvalidStateError, ValidationError
from pantrytrip.matching import MatchClassifier
from pantrytrip.models import PantryItem, ReceiptItem, StockLevel
from pantrytrip.restock import RestockEngine
from pantrytrip.store.memory import InMemoryStore


def _ids(prefix: str):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


@pytest.fixture
def store():
    s = InMemoryStore(id_factory=_ids("p"))
    s.add_pantry_item("Milk", "dairy", item_id="milk")
    s.add_pantry_item("Bread", "bakery", item_id="bread")
    s.add_pantry_item("Cheddar", "dairy", item_id="cheddar")
    return s


class TestPartition:
    def test_buckets(self):
        pantry = [
            PantryItem(id="milk", name="Milk"),
            PantryItem(id="cheddar", name="Cheddar"),
        ]
        items = [
            ReceiptItem(name="MILK", unit_price=1.2),
            ReceiptItem(name="Chedar", unit_price=4.5, size="200", unit="g"),
            ReceiptItem(name="Dish Soap", category="household", unit_price=2.0),
        ]
        result = RestockEngine().partition(items, pantry)

        assert [r.pantry_item_id for r in result.restocked_items] == ["milk"]
        assert len(result.fuzzy_matches) == 1
        fuzzy = result.fuzzy_matches[0]
        assert fuzzy.receipt_item_name == "Chedar"
        assert fuzzy.pantry_item_id == "cheddar"
        assert fuzzy.pantry_item_name == "Cheddar"
        assert fuzzy.similarity == 86
        assert (fuzzy.price, fuzzy.size, fuzzy.unit) == (4.5, "200", "g")
        assert [(n.name, n.category) for n in result.items_to_add] == [
            ("Dish Soap", "household")
        ]

    def test_no_double_allocation(self):
        """Only one receipt item can be an exact match for the same pantry item."""
        pantry = [PantryItem(id="p1", name="Milk")]
        items = [ReceiptItem(name="Milk"), ReceiptItem(name="Semi-Skimmed Milk")]
        result = RestockEngine().partition(items, pantry)

        assert [r.pantry_item_id for r in result.restocked_items] == ["p1"]
        assert result.restocked_items[0].receipt_item_name == "Milk"
        assert len(result.fuzzy_matches) + len(result.items_to_add) == 1

    def test_duplicate_lines_restock_once(self):
        pantry = [PantryItem(id="p1", name="Tomato")]
        items = [ReceiptItem(name="Tomatoes"), ReceiptItem(name="tomato")]
        result = RestockEngine().partition(items, pantry)

        assert len(result.restocked_items) == 1
        assert [n.name for n in result.items_to_add] == ["tomato"]

    def test_consumed_item_never_suggested(self):
        """A pantry item restocked by a later line is not also a fuzzy suggestion."""
        pantry = [PantryItem(id="p1", name="Cheddar")]
        items = [ReceiptItem(name="Chedar"), ReceiptItem(name="Cheddar")]
        result = RestockEngine().partition(items, pantry)

        ids = result.pantry_item_ids()
        assert ids["restocked_items"] == {"p1"}
        assert "p1" not in ids["fuzzy_matches"]
        assert [n.name for n in result.items_to_add] == ["Chedar"]

    def test_fuzzy_not_consumed(self):
        """The same pantry item can be suggested to several receipt lines."""
        pantry = [PantryItem(id="p1", name="Cheddar")]
        items = [ReceiptItem(name="Chedar"), ReceiptItem(name="Cheddr")]
        result = RestockEngine().partition(items, pantry)

        assert [f.pantry_item_id for f in result.fuzzy_matches] == ["p1", "p1"]

    def test_uses_classifier_thresholds(self):
        pantry = [PantryItem(id="p1", name="Cheddar")]
        engine = RestockEngine(classifier=MatchClassifier(MatchingConfig(exact_threshold=80)))
        result = engine.partition([ReceiptItem(name="Chedar")], pantry)
        assert [r.pantry_item_id for r in result.restocked_items] == ["p1"]

    def test_invalid_item_rejected(self):
        with pytest.raises(ValidationError):
            RestockEngine().partition([ReceiptItem(name="  ")], [])
        with pytest.raises(ValidationError):
            RestockEngine().partition([ReceiptItem(name="Milk", quantity=0)], [])

    def test_partition_does_not_touch_store(self, store):
        engine = RestockEngine(store)
        engine.partition([ReceiptItem(name="Milk")], [PantryItem(id="milk", name="Milk")])
        assert store.calls == []


class TestReconcile:
    @pytest.mark.asyncio
    async def test_restocks_exact_matches(self, store):
        engine = RestockEngine(store)
        items = [
            ReceiptItem(name="Milk", unit_price=1.25, size="2", unit="L"),
            ReceiptItem(name="Chedar"),
        ]
        result = await engine.reconcile(items, store_name="Corner Market")

        assert [r.pantry_item_id for r in result.restocked_items] == ["milk"]
        milk = store.pantry_item("milk")
        assert milk.stock_level == StockLevel.STOCKED
        assert milk.last_price == 1.25
        assert milk.default_size == "2"
        assert milk.default_unit == "L"
        assert milk.last_store_name == "Corner Market"
        # fuzzy suggestions are left for the user
        assert store.pantry_item("cheddar").stock_level == StockLevel.OUT
        assert store.count_calls("restock_pantry_item") == 1
        assert store.count_calls("confirm_fuzzy_restock") == 0

    @pytest.mark.asyncio
    async def test_uses_given_snapshot(self, store):
        """A caller-supplied pantry snapshot replaces the store read."""
        engine = RestockEngine(store)
        result = await engine.reconcile(
            [ReceiptItem(name="Bread")], [PantryItem(id="bread", name="Bread")]
        )
        assert [r.pantry_item_id for r in result.restocked_items] == ["bread"]

    @pytest.mark.asyncio
    async def test_failed_restock_is_skipped(self, store):
        """One failing restock does not stop the others."""
        store.restock_pantry_item = AsyncMock(side_effect=[None, RuntimeError("boom"), None])
        engine = RestockEngine(store)
        items = [
            ReceiptItem(name="Milk"),
            ReceiptItem(name="Bread"),
            ReceiptItem(name="Cheddar"),
        ]
        result = await engine.reconcile(items)

        assert store.restock_pantry_item.await_count == 3
        assert [r.pantry_item_id for r in result.restocked_items] == ["milk", "cheddar"]
        assert len(result.failed_restocks) == 1
        failed = result.failed_restocks[0]
        assert failed.operation == "restock_pantry_item"
        assert failed.subject == "bread"
        assert "boom" in failed.error

    @pytest.mark.asyncio
    async def test_domain_error_is_skipped(self, store):
        """A store that rejects a restock with a domain error is skipped too."""
        store.restock_pantry_item = AsyncMock(side_effect=[ValidationError("bad size"), None])
        engine = RestockEngine(store)
        result = await engine.reconcile([ReceiptItem(name="Milk"), ReceiptItem(name="Bread")])

        assert [r.pantry_item_id for r in result.restocked_items] == ["bread"]
        assert len(result.failed_restocks) == 1
        assert result.failed_restocks[0].subject == "milk"
        assert result.failed_restocks[0].error == "bad size"

    @pytest.mark.asyncio
    async def test_restock_timeout(self, store):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        store.restock_pantry_item = slow
        engine = RestockEngine(store, call_timeout=0.01)
        result = await engine.reconcile([ReceiptItem(name="Milk")])

        assert result.restocked_items == []
        assert "timed out" in result.failed_restocks[0].error

    @pytest.mark.asyncio
    async def test_requires_store(self):
        with pytest.raises(InvalidStateError):
            await RestockEngine().reconcile([ReceiptItem(name="Milk")], [])
