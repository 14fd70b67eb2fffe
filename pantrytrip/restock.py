"""Receipt-to-pantry restocking.

Each receipt line is classified against the pantry:

| Best score          | Bucket          | Side effect                 |
|---------------------|-----------------|-----------------------------|
| >= exact threshold  | restocked_items | restock now, consume item   |
| >= fuzzy threshold  | fuzzy_matches   | none (user decides later)   |
| below               | items_to_add    | none (user decides later)   |

An exactly matched pantry item leaves the candidate pool, so no pantry item
is restocked twice or suggested after it was restocked.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .errors import InvalidStateError, PantryTripError
from .matching import MatchClassifier, MatchDecision
from .models import (
    FailedCall,
    FuzzyMatch,
    NewItem,
    PantryItem,
    ReceiptItem,
    RestockedItem,
    RestockResult,
)
from .store import PantryStore, remote_call

logger = logging.getLogger(__name__)


class RestockEngine:
    """Partitions receipt items into restock / fuzzy / new and applies restocks."""

    def __init__(
        self,
        store: PantryStore | None = None,
        classifier: MatchClassifier | None = None,
        call_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._classifier = classifier or MatchClassifier()
        self._call_timeout = call_timeout

    def partition(
        self,
        receipt_items: Sequence[ReceiptItem],
        pantry_items: Sequence[PantryItem],
    ) -> RestockResult:
        """Classify every receipt item without touching the store."""
        result, _ = self._partition(receipt_items, pantry_items)
        return result

    async def reconcile(
        self,
        receipt_items: Sequence[ReceiptItem],
        pantry_items: Sequence[PantryItem] | None = None,
        *,
        store_name: str | None = None,
    ) -> RestockResult:
        """Partition receipt items and restock the exact matches.

        Args:
            receipt_items: Parsed receipt lines, in receipt order.
            pantry_items: Pantry snapshot. Read once from the store if omitted.
            store_name: Shop recorded on restocked items.

        Returns:
            The RestockResult. Restocks that failed are moved from
            ``restocked_items`` to ``failed_restocks``.

        Raises:
            InvalidStateError: If the engine has no store.
            RemoteCallFailure: If the pantry snapshot cannot be read.
        """
        if self._store is None:
            raise InvalidStateError("reconcile() needs a store; use partition() for a dry run")

        if pantry_items is None:
            pantry_items = await remote_call(
                "get_pantry_items", "pantry", self._store.get_pantry_items(), self._call_timeout
            )

        result, staged = self._partition(receipt_items, pantry_items)

        applied: list[RestockedItem] = []
        for restocked, receipt_item in staged:
            try:
                await remote_call(
                    "restock_pantry_item",
                    restocked.pantry_item_id,
                    self._store.restock_pantry_item(
                        restocked.pantry_item_id,
                        price=receipt_item.unit_price,
                        size=receipt_item.size,
                        unit=receipt_item.unit,
                        store_name=store_name,
                    ),
                    self._call_timeout,
                )
            except PantryTripError as e:
                logger.exception(
                    "Restock of %s for receipt item %r failed, skipping",
                    restocked.pantry_item_id,
                    restocked.receipt_item_name,
                )
                result.failed_restocks.append(
                    FailedCall("restock_pantry_item", restocked.pantry_item_id, str(e))
                )
                continue
            applied.append(restocked)

        result.restocked_items = applied
        logger.info(
            "Restocked %d pantry items (%d failed), %d fuzzy, %d new",
            len(applied),
            len(result.failed_restocks),
            len(result.fuzzy_matches),
            len(result.items_to_add),
        )
        return result

    def _partition(
        self,
        receipt_items: Sequence[ReceiptItem],
        pantry_items: Sequence[PantryItem],
    ) -> tuple[RestockResult, list[tuple[RestockedItem, ReceiptItem]]]:
        for item in receipt_items:
            item.validate()

        pool = list(pantry_items)
        staged: list[tuple[RestockedItem, ReceiptItem]] = []
        deferred: list[ReceiptItem] = []

        # Pass 1: exact matches consume their pantry item
        for item in receipt_items:
            match = self._classifier.classify(item, pool)
            if match.decision is MatchDecision.EXACT:
                staged.append((RestockedItem(item.name, match.matched_id), item))
                pool = [p for p in pool if p.id != match.matched_id]
            else:
                deferred.append(item)

        # Pass 2: the pool only shrank, so nothing here can become exact
        result = RestockResult(restocked_items=[r for r, _ in staged])
        for item in deferred:
            match = self._classifier.classify(item, pool)
            if match.decision is MatchDecision.NEW:
                result.items_to_add.append(
                    NewItem(
                        name=item.name,
                        category=item.category,
                        price=item.unit_price,
                        size=item.size,
                        unit=item.unit,
                    )
                )
            else:
                result.fuzzy_matches.append(
                    FuzzyMatch(
                        receipt_item_name=item.name,
                        pantry_item_id=match.matched_id,
                        pantry_item_name=match.matched_name,
                        similarity=match.score,
                        price=item.unit_price,
                        size=item.size,
                        unit=item.unit,
                    )
                )
                logger.debug(
                    "Fuzzy match %r -> %r (%d)", item.name, match.matched_name, match.score
                )

        return result, staged
