"""Exact / fuzzy / new classification of receipt items against the pantry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..config import MatchingConfig
from ..models import PantryItem, ReceiptItem
from .normalize import normalize_name
from .similarity import normalized_similarity


class MatchDecision(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    NEW = "new"


@dataclass(frozen=True)
class Classification:
    decision: MatchDecision
    matched_id: str | None
    score: int
    matched_name: str | None = None


class MatchClassifier:
    """Turns name similarity into an exact / fuzzy / new decision.

    The best-scoring candidate wins. Ties go to a candidate in the receipt
    item's category (when known and ``prefer_same_category`` is set), then
    to whichever candidate came first in the input.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self._config = config or MatchingConfig()
        self._config.validate()

    @property
    def config(self) -> MatchingConfig:
        return self._config

    def decide(self, score: int) -> MatchDecision:
        if score >= self._config.exact_threshold:
            return MatchDecision.EXACT
        if score >= self._config.fuzzy_threshold:
            return MatchDecision.FUZZY
        return MatchDecision.NEW

    def classify(
        self,
        receipt_item: ReceiptItem,
        candidates: Sequence[PantryItem],
    ) -> Classification:
        target = normalize_name(receipt_item.name)
        category = _category_key(receipt_item.category)
        use_category = self._config.prefer_same_category and category is not None

        best: PantryItem | None = None
        best_score = -1
        best_same_category = False

        for candidate in candidates:
            score = normalized_similarity(target, normalize_name(candidate.name))
            same_category = use_category and _category_key(candidate.category) == category
            if score > best_score or (
                score == best_score and same_category and not best_same_category
            ):
                best = candidate
                best_score = score
                best_same_category = same_category

        if best is None:
            return Classification(MatchDecision.NEW, None, 0)

        decision = self.decide(best_score)
        if decision is MatchDecision.NEW:
            return Classification(decision, None, best_score)
        return Classification(decision, best.id, best_score, best.name)


def classify(
    receipt_item: ReceiptItem,
    candidates: Sequence[PantryItem],
    config: MatchingConfig | None = None,
) -> Classification:
    """Classify with a one-off MatchClassifier."""
    return MatchClassifier(config).classify(receipt_item, candidates)


def _category_key(category: str | None) -> str | None:
    if not category or not category.strip():
        return None
    return category.strip().lower()
