"""Tests for budget reconciliation."""

import pytest

from pantrytrip.budget import BudgetReconciler
from pantrytrip.errors import ValidationError
from pantrytrip.models import Receipt, ReceiptItem, ShoppingList, ShoppingListItem


def _list(budget: float, *names: str) -> ShoppingList:
    return ShoppingList(id="l1", budget=budget, items=[ShoppingListItem(name=n) for n in names])


def _receipt(total: float, *items: tuple[str, float], receipt_id: str = "r1") -> Receipt:
    return Receipt(
        id=receipt_id,
        total=total,
        items=[ReceiptItem(name=n, unit_price=p, total_price=p) for n, p in items],
    )


class TestBudgetReconciler:
    def test_saved_money(self):
        summary = BudgetReconciler().reconcile(_list(50), _receipt(45))
        assert summary.difference == 5
        assert summary.saved_money is True
        assert summary.percent_saved == 10
        assert summary.overspend == 0

    def test_over_budget(self):
        summary = BudgetReconciler().reconcile(_list(40), _receipt(45))
        assert summary.difference == -5
        assert summary.saved_money is False
        assert summary.percent_saved == pytest.approx(-12.5)
        assert summary.overspend == 5

    def test_exact_budget(self):
        summary = BudgetReconciler().reconcile(_list(45), _receipt(45))
        assert summary.difference == 0
        assert summary.saved_money is False

    def test_zero_budget(self):
        summary = BudgetReconciler().reconcile(_list(0), _receipt(12))
        assert summary.percent_saved == 0
        assert summary.difference == -12

    def test_unplanned_items(self):
        summary = BudgetReconciler().reconcile(
            _list(20, "Bread"), _receipt(4.49, ("Bread", 2.50), ("Milk", 1.99))
        )
        assert [i.name for i in summary.unplanned_items] == ["Milk"]
        assert summary.unplanned_total == pytest.approx(1.99)
        assert summary.planned_items_count == 1
        assert summary.actual_items_count == 2

    def test_names_compared_normalized(self):
        summary = BudgetReconciler().reconcile(
            _list(20, "Bananas", " Whole Milk"), _receipt(3, ("banana", 1), ("WHOLE MILK", 2))
        )
        assert summary.unplanned_items == []
        assert summary.unplanned_total == 0

    def test_typos_are_unplanned(self):
        """Only exact normalized names count as planned."""
        summary = BudgetReconciler().reconcile(_list(20, "Cheddar"), _receipt(4, ("Chedar", 4)))
        assert [i.name for i in summary.unplanned_items] == ["Chedar"]

    def test_missed_items(self):
        summary = BudgetReconciler().reconcile(
            _list(20, "Bread", "Eggs"), _receipt(2.5, ("Bread", 2.5))
        )
        assert [i.name for i in summary.missed_items] == ["Eggs"]

    def test_reconcile_many(self):
        receipts = [
            _receipt(20, ("Bread", 2), receipt_id="r1"),
            _receipt(15, ("Milk", 1.5), ("Eggs", 3), receipt_id="r2"),
        ]
        summary = BudgetReconciler().reconcile_many(_list(50, "Bread", "Milk"), receipts)
        assert summary.actual_total == 35
        assert summary.difference == 15
        assert summary.actual_items_count == 3
        assert [i.name for i in summary.unplanned_items] == ["Eggs"]

    def test_negative_budget_rejected(self):
        with pytest.raises(ValidationError):
            BudgetReconciler().reconcile(_list(-1), _receipt(5))

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationError):
            BudgetReconciler().reconcile(_list(10), _receipt(-5))
