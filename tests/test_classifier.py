"""Tests for exact / fuzzy / new classification."""

import pytest

from pantrytrip.config import MatchingConfig
from pantrytrip.errors import ValidationError
from pantrytrip.matching import MatchClassifier, MatchDecision, classify
from pantrytrip.models import PantryItem, ReceiptItem


@pytest.fixture
def pantry():
    return [
        PantryItem(id="p1", name="Milk", category="dairy"),
        PantryItem(id="p2", name="Cheddar", category="dairy"),
        PantryItem(id="p3", name="Bread", category="bakery"),
    ]


class TestClassify:
    def test_exact(self, pantry):
        result = classify(ReceiptItem(name="MILK"), pantry)
        assert result.decision is MatchDecision.EXACT
        assert result.matched_id == "p1"
        assert result.matched_name == "Milk"
        assert result.score == 100

    def test_fuzzy(self, pantry):
        result = classify(ReceiptItem(name="Chedar"), pantry)
        assert result.decision is MatchDecision.FUZZY
        assert result.matched_id == "p2"
        assert result.score == 86

    def test_new(self, pantry):
        result = classify(ReceiptItem(name="Dish Soap"), pantry)
        assert result.decision is MatchDecision.NEW
        assert result.matched_id is None
        assert result.score < 60

    def test_no_candidates(self):
        result = classify(ReceiptItem(name="Milk"), [])
        assert result.decision is MatchDecision.NEW
        assert result.matched_id is None
        assert result.score == 0

    def test_deterministic(self, pantry):
        """Identical inputs give identical results."""
        item = ReceiptItem(name="Chedar", category="dairy")
        first = classify(item, pantry)
        for _ in range(5):
            assert classify(item, pantry) == first


class TestTieBreak:
    @pytest.fixture
    def colas(self):
        return [
            PantryItem(id="snack", name="Cola", category="snacks"),
            PantryItem(id="drink", name="Cola", category="Drinks"),
        ]

    def test_same_category_wins(self, colas):
        result = classify(ReceiptItem(name="Cola", category="drinks "), colas)
        assert result.matched_id == "drink"

    def test_unknown_category_keeps_input_order(self, colas):
        result = classify(ReceiptItem(name="Cola"), colas)
        assert result.matched_id == "snack"

    def test_category_preference_disabled(self, colas):
        config = MatchingConfig(prefer_same_category=False)
        result = classify(ReceiptItem(name="Cola", category="drinks"), colas, config)
        assert result.matched_id == "snack"

    def test_higher_score_beats_category(self):
        candidates = [
            PantryItem(id="a", name="Colas", category="snacks"),
            PantryItem(id="b", name="Cool", category="drinks"),
        ]
        result = classify(ReceiptItem(name="Cola", category="drinks"), candidates)
        assert result.matched_id == "a"


class TestThresholds:
    def test_defaults(self):
        classifier = MatchClassifier()
        assert classifier.decide(90) is MatchDecision.EXACT
        assert classifier.decide(89) is MatchDecision.FUZZY
        assert classifier.decide(60) is MatchDecision.FUZZY
        assert classifier.decide(59) is MatchDecision.NEW

    def test_override(self, pantry):
        """A looser exact threshold turns a typo into an exact match."""
        classifier = MatchClassifier(MatchingConfig(exact_threshold=80, fuzzy_threshold=50))
        result = classifier.classify(ReceiptItem(name="Chedar"), pantry)
        assert result.decision is MatchDecision.EXACT
        assert classifier.decide(50) is MatchDecision.FUZZY
        assert classifier.decide(49) is MatchDecision.NEW

    def test_inconsistent_thresholds_rejected(self):
        with pytest.raises(ValidationError):
            MatchClassifier(MatchingConfig(exact_threshold=50, fuzzy_threshold=60))
        with pytest.raises(ValidationError):
            MatchClassifier(MatchingConfig(exact_threshold=101))
