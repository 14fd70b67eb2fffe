"""Trip spend and items compared to the shopping list plan."""

from __future__ import annotations

import logging
from typing import Sequence

from .matching import normalize_name
from .models import Receipt, ReconciliationSummary, ShoppingList

logger = logging.getLogger(__name__)


class BudgetReconciler:
    """Computes savings, overspend and unplanned purchases for one trip.

    Planned and purchased items are paired by exact normalized name only;
    fuzzy pairing is left to the restock step.
    """

    def reconcile(self, shopping_list: ShoppingList, receipt: Receipt) -> ReconciliationSummary:
        return self.reconcile_many(shopping_list, [receipt])

    def reconcile_many(
        self, shopping_list: ShoppingList, receipts: Sequence[Receipt]
    ) -> ReconciliationSummary:
        """Reconcile a trip that produced several receipts.

        Raises:
            ValidationError: If the list or a receipt is malformed.
        """
        shopping_list.validate()
        for receipt in receipts:
            receipt.validate(require_items=False)

        budget = shopping_list.budget or 0.0
        actual_total = sum(r.total for r in receipts)
        purchased = [item for r in receipts for item in r.items]

        difference = budget - actual_total
        percent_saved = difference * 100 / budget if budget > 0 else 0.0

        planned_names = {normalize_name(li.name) for li in shopping_list.items}
        purchased_names = {normalize_name(ri.name) for ri in purchased}

        unplanned = [ri for ri in purchased if normalize_name(ri.name) not in planned_names]
        missed = [li for li in shopping_list.items if normalize_name(li.name) not in purchased_names]

        summary = ReconciliationSummary(
            budget=budget,
            actual_total=actual_total,
            difference=difference,
            saved_money=difference > 0,
            percent_saved=percent_saved,
            planned_items_count=len(shopping_list.items),
            actual_items_count=len(purchased),
            unplanned_items=unplanned,
            unplanned_total=sum(ri.total_price for ri in unplanned),
            missed_items=missed,
        )
        logger.info(
            "List %s: budget %.2f, spent %.2f, %d unplanned, %d missed",
            shopping_list.id,
            budget,
            actual_total,
            len(unplanned),
            len(missed),
        )
        return summary
