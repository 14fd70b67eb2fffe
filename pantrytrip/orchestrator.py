"""Trip completion workflow.

    IDLE → LINKING → COMPLETING_LIST → RESTOCKING → AWAITING_USER_DECISIONS → DONE
                                                  ↘ DONE (nothing to decide)
    any non-terminal state → ERROR

Linking and completing the list are fatal on failure. Restocks and user
decisions fail one item at a time: the failure is logged and recorded on the
outcome and the workflow carries on. Nothing is rolled back.
"""

from __future__ import annotations

import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterator, Union

from .budget import BudgetReconciler
from .config import PantryTripConfig
from .errors import (
    AlreadyCompletedError,
    AlreadyLinkedError,
    InvalidStateError,
    NotFoundError,
    PantryTripError,
)
from .matching import MatchClassifier
from .models import (
    FailedCall,
    FuzzyMatch,
    ListStatus,
    NewItem,
    PantryItem,
    Receipt,
    ReconciliationSummary,
    RestockResult,
    ShoppingList,
)
from .restock import RestockEngine
from .store import PantryStore, remote_call

logger = logging.getLogger(__name__)


class TripState(str, Enum):
    IDLE = "idle"
    LINKING = "linking"
    COMPLETING_LIST = "completing_list"
    RESTOCKING = "restocking"
    AWAITING_USER_DECISIONS = "awaiting_user_decisions"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS: dict[TripState, frozenset[TripState]] = {
    TripState.IDLE: frozenset({TripState.LINKING, TripState.ERROR}),
    TripState.LINKING: frozenset({TripState.COMPLETING_LIST, TripState.ERROR}),
    TripState.COMPLETING_LIST: frozenset({TripState.RESTOCKING, TripState.ERROR}),
    TripState.RESTOCKING: frozenset(
        {TripState.AWAITING_USER_DECISIONS, TripState.DONE, TripState.ERROR}
    ),
    TripState.AWAITING_USER_DECISIONS: frozenset({TripState.DONE, TripState.ERROR}),
    TripState.DONE: frozenset(),
    TripState.ERROR: frozenset(),
}


class DecisionType(str, Enum):
    FUZZY = "fuzzy"
    NEW = "new"


class DecisionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass
class DecisionOutcome:
    entry_id: str
    type: DecisionType
    status: DecisionStatus
    error: str | None = None
    pantry_item: PantryItem | None = None  # set when a new item was added

    @property
    def accepted(self) -> bool:
        return self.status is DecisionStatus.ACCEPTED


class DecisionEntry:
    """One user-resolvable suggestion from a reconciliation run."""

    def __init__(
        self,
        entry_id: str,
        type: DecisionType,
        payload: FuzzyMatch | NewItem,
        orchestrator: TripCompletionOrchestrator,
    ) -> None:
        self.id = entry_id
        self.type = type
        self.payload = payload
        self._orchestrator = orchestrator
        self._in_flight = False
        self.outcome: DecisionOutcome | None = None

    @property
    def resolved(self) -> bool:
        return self.outcome is not None

    @property
    def in_flight(self) -> bool:
        """True while an accepted decision waits on the store."""
        return self._in_flight

    @property
    def prompt(self) -> str:
        if isinstance(self.payload, FuzzyMatch):
            return (
                f'Receipt has "{self.payload.receipt_item_name}". '
                f'Restock "{self.payload.pantry_item_name}" ({self.payload.similarity}% match)?'
            )
        return f'Add "{self.payload.name}" to your pantry?'

    async def resolve(self, accept: bool) -> DecisionOutcome:
        """Apply (accept) or skip (decline) this suggestion.

        A failing store call is recorded on the returned outcome, not raised.

        Raises:
            InvalidStateError: If the entry is resolved or being resolved,
                or the queue was abandoned.
        """
        return await self._orchestrator._resolve(self, accept)

    def __repr__(self) -> str:
        return f"DecisionEntry(id={self.id!r}, type={self.type.value}, resolved={self.resolved})"


@dataclass
class TripOutcome:
    state: TripState
    restock_result: RestockResult | None = None
    summary: ReconciliationSummary | None = None
    failures: list[FailedCall] = field(default_factory=list)


Decider = Callable[[DecisionEntry], Union[bool, Awaitable[bool]]]


def _default_ids() -> str:
    return uuid.uuid4().hex


class TripCompletionOrchestrator:
    """Drives one trip completion: link, complete, restock, decide.

    One orchestrator handles one trip; ``start`` may only be called once.
    All store calls are awaited one after another.
    """

    def __init__(
        self,
        store: PantryStore,
        *,
        config: PantryTripConfig | None = None,
        engine: RestockEngine | None = None,
        budget: BudgetReconciler | None = None,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._config = config or PantryTripConfig()
        self._store = store
        self._timeout = self._config.orchestrator.call_timeout
        self._engine = engine or RestockEngine(
            store,
            MatchClassifier(self._config.matching),
            call_timeout=self._timeout,
        )
        self._budget = budget or BudgetReconciler()
        self._clock = clock
        self._ids = id_factory or _default_ids

        self._state = TripState.IDLE
        self._outcome = TripOutcome(state=TripState.IDLE)
        self._entries: list[DecisionEntry] = []
        self._cursor = 0
        self._store_name: str | None = None

    @property
    def state(self) -> TripState:
        return self._state

    @property
    def outcome(self) -> TripOutcome:
        return self._outcome

    # --- Pipeline steps -------------------------------------------------------

    async def link_receipt_to_list(self, receipt_id: str, list_id: str) -> Receipt:
        """Associate a receipt with a shopping list. Idempotent.

        Raises:
            NotFoundError: If either id is unknown.
            AlreadyLinkedError: If the receipt belongs to another list.
            RemoteCallFailure: If the store call fails.
        """
        receipt = await self._get_receipt(receipt_id)
        await self._get_list(list_id)

        if receipt.list_id == list_id:
            logger.debug("Receipt %s already linked to list %s", receipt_id, list_id)
            return receipt
        if receipt.list_id is not None:
            raise AlreadyLinkedError(
                f"receipt {receipt_id!r} is already linked to list {receipt.list_id!r}"
            )

        await remote_call(
            "link_receipt_to_list",
            f"{receipt_id}->{list_id}",
            self._store.link_receipt_to_list(receipt_id, list_id),
            self._timeout,
        )
        receipt.list_id = list_id
        logger.info("Linked receipt %s to list %s", receipt_id, list_id)
        return receipt

    async def complete_shopping(self, list_id: str) -> None:
        """Mark a shopping list completed.

        Raises:
            NotFoundError: If the list is unknown.
            AlreadyCompletedError: If the list is already completed.
            InvalidStateError: If the list is neither active nor shopping.
            RemoteCallFailure: If the store call fails.
        """
        shopping_list = await self._get_list(list_id)
        if shopping_list.status == ListStatus.COMPLETED:
            raise AlreadyCompletedError(f"list {list_id!r} is already completed")
        if shopping_list.status not in (ListStatus.ACTIVE, ListStatus.SHOPPING):
            raise InvalidStateError(
                f"list {list_id!r} is {ListStatus(shopping_list.status).value}, "
                "expected active or shopping"
            )

        await remote_call(
            "complete_shopping_list",
            list_id,
            self._store.complete_shopping_list(list_id, self._clock()),
            self._timeout,
        )
        logger.info("Completed list %s", list_id)

    async def start(self, receipt_id: str, list_id: str) -> TripOutcome:
        """Run the pipeline up to the decision queue.

        Returns:
            The trip outcome; its state is AWAITING_USER_DECISIONS when
            fuzzy matches or new items need the user, DONE otherwise.

        Raises:
            InvalidStateError: If the orchestrator was already started.
            ValidationError, NotFoundError, AlreadyLinkedError,
            AlreadyCompletedError, RemoteCallFailure: Fatal pipeline errors;
                the state is ERROR afterwards.
        """
        if self._state is not TripState.IDLE:
            raise InvalidStateError(f"trip already started (state {self._state.value})")

        self._transition(TripState.LINKING)
        try:
            receipt = await self._get_receipt(receipt_id)
            receipt.validate()
            shopping_list = await self._get_list(list_id)
            shopping_list.validate()
            await self.link_receipt_to_list(receipt_id, list_id)

            self._transition(TripState.COMPLETING_LIST)
            await self.complete_shopping(list_id)

            self._transition(TripState.RESTOCKING)
            pantry = await remote_call(
                "get_pantry_items", "pantry", self._store.get_pantry_items(), self._timeout
            )
            result = await self._engine.reconcile(
                receipt.items, pantry, store_name=receipt.store_name or None
            )
            shopping_list.items = await remote_call(
                "get_list_items", list_id, self._store.get_list_items(list_id), self._timeout
            )
            summary = self._budget.reconcile(shopping_list, receipt)
        except Exception:
            logger.error(
                "Trip completion for receipt %s / list %s failed during %s",
                receipt_id,
                list_id,
                self._state.value,
            )
            self._transition(TripState.ERROR)
            raise

        self._store_name = receipt.store_name or None
        self._outcome.restock_result = result
        self._outcome.summary = summary
        self._outcome.failures.extend(result.failed_restocks)

        self._entries = [
            DecisionEntry(self._ids(), DecisionType.FUZZY, match, self)
            for match in result.fuzzy_matches
        ] + [
            DecisionEntry(self._ids(), DecisionType.NEW, item, self)
            for item in result.items_to_add
        ]

        if self._entries:
            self._transition(TripState.AWAITING_USER_DECISIONS)
            logger.info("%d decisions awaiting the user", len(self._entries))
        else:
            self._transition(TripState.DONE)
        return self._outcome

    # --- Decision queue -------------------------------------------------------

    def next_decision(self) -> DecisionEntry | None:
        """Hand out the next entry not yet issued or resolved, else None."""
        while self._cursor < len(self._entries):
            entry = self._entries[self._cursor]
            self._cursor += 1
            if not entry.resolved and not entry.in_flight:
                return entry
        return None

    def pending_decisions(self) -> list[DecisionEntry]:
        """Unresolved entries, issued or not, that are not being applied."""
        return [e for e in self._entries if not e.resolved and not e.in_flight]

    def __iter__(self) -> Iterator[DecisionEntry]:
        while (entry := self.next_decision()) is not None:
            yield entry

    async def drain(self, decide: Decider) -> list[DecisionOutcome]:
        """Resolve every pending entry in order using ``decide``.

        ``decide`` may be a plain or an async callable returning whether to
        accept the entry.
        """
        outcomes: list[DecisionOutcome] = []
        for entry in self.pending_decisions():
            accept = decide(entry)
            if inspect.isawaitable(accept):
                accept = await accept
            outcomes.append(await entry.resolve(bool(accept)))
        return outcomes

    def abandon(self) -> int:
        """Discard unresolved entries and finish the trip.

        Entries already applied stay applied. An entry still waiting on the
        store is kept and finishes normally.

        Returns:
            Number of entries discarded.
        """
        if self._state is TripState.DONE:
            return 0
        if self._state is not TripState.AWAITING_USER_DECISIONS:
            raise InvalidStateError(f"nothing to abandon in state {self._state.value}")

        discarded = len(self.pending_decisions())
        self._entries = [e for e in self._entries if e.resolved or e.in_flight]
        self._cursor = len(self._entries)
        self._transition(TripState.DONE)
        logger.info("Decision queue abandoned, %d entries discarded", discarded)
        return discarded

    async def _resolve(self, entry: DecisionEntry, accept: bool) -> DecisionOutcome:
        if self._state is not TripState.AWAITING_USER_DECISIONS or entry not in self._entries:
            raise InvalidStateError(f"decision {entry.id} is no longer open")
        if entry.resolved:
            raise InvalidStateError(f"decision {entry.id} was already resolved")
        if entry.in_flight:
            raise InvalidStateError(f"decision {entry.id} is already being resolved")

        outcome = DecisionOutcome(entry.id, entry.type, DecisionStatus.DECLINED)
        if accept:
            outcome.status = DecisionStatus.ACCEPTED
            entry._in_flight = True
            try:
                outcome.pantry_item = await self._apply(entry)
            except PantryTripError as e:
                operation, subject = _describe(entry)
                logger.exception("Decision %s (%s %r) failed, skipping", entry.id, operation, subject)
                outcome.status = DecisionStatus.FAILED
                outcome.error = str(e)
                self._outcome.failures.append(FailedCall(operation, subject, str(e)))
            finally:
                entry._in_flight = False

        entry.outcome = outcome
        if self._state is TripState.AWAITING_USER_DECISIONS and all(
            e.resolved for e in self._entries
        ):
            self._transition(TripState.DONE)
        return outcome

    async def _apply(self, entry: DecisionEntry) -> PantryItem | None:
        payload = entry.payload
        if isinstance(payload, FuzzyMatch):
            await remote_call(
                "confirm_fuzzy_restock",
                payload.pantry_item_id,
                self._store.confirm_fuzzy_restock(
                    payload.pantry_item_id,
                    price=payload.price,
                    size=payload.size,
                    unit=payload.unit,
                    store_name=self._store_name,
                ),
                self._timeout,
            )
            return None
        return await remote_call(
            "add_pantry_item_from_receipt",
            payload.name,
            self._store.add_pantry_item_from_receipt(
                payload.name,
                payload.category,
                price=payload.price,
                size=payload.size,
                unit=payload.unit,
                store_name=self._store_name,
            ),
            self._timeout,
        )

    # --- Internals ------------------------------------------------------------

    def _transition(self, new_state: TripState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise InvalidStateError(
                f"illegal transition {self._state.value} -> {new_state.value}"
            )
        logger.debug("Trip state %s -> %s", self._state.value, new_state.value)
        self._state = new_state
        self._outcome.state = new_state

    async def _get_receipt(self, receipt_id: str) -> Receipt:
        receipt = await remote_call(
            "get_receipt", receipt_id, self._store.get_receipt(receipt_id), self._timeout
        )
        if receipt is None:
            raise NotFoundError(f"receipt {receipt_id!r} not found")
        return receipt

    async def _get_list(self, list_id: str) -> ShoppingList:
        shopping_list = await remote_call(
            "get_list", list_id, self._store.get_list(list_id), self._timeout
        )
        if shopping_list is None:
            raise NotFoundError(f"shopping list {list_id!r} not found")
        return shopping_list


def _describe(entry: DecisionEntry) -> tuple[str, str]:
    if isinstance(entry.payload, FuzzyMatch):
        return "confirm_fuzzy_restock", entry.payload.pantry_item_id
    return "add_pantry_item_from_receipt", entry.payload.name
