"""Tests for item name normalization."""

import pytest

from pantrytrip.matching import normalize_name


class TestNormalizeName:
    def test_trims_and_lowercases(self):
        """Surrounding whitespace and case do not matter."""
        assert normalize_name(" Milk ") == normalize_name("milk") == "milk"

    def test_collapses_whitespace(self):
        """Internal runs of whitespace become one space."""
        assert normalize_name("whole \t  wheat   bread") == "whole wheat bread"

    def test_punctuation_becomes_word_break(self):
        assert normalize_name("Semi-Skimmed Milk") == "semi skimmed milk"
        assert normalize_name("Milk (2L)!") == "milk 2l"

    def test_apostrophes_are_dropped(self):
        assert normalize_name("Kellogg's Corn Flakes") == "kellogg corn flake"

    def test_filler_words_removed(self):
        """Leading filler words are dropped."""
        assert normalize_name("Fresh Organic Bananas") == "banana"
        assert normalize_name("The Eggs") == "egg"

    def test_single_filler_word_kept(self):
        """A name made only of a filler word survives."""
        assert normalize_name("Fresh") == "fresh"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Apples", "apple"),
            ("Berries", "berry"),
            ("Loaves", "loaf"),
            ("Tomatoes", "tomato"),
            ("Boxes", "box"),
            ("Peaches", "peach"),
            ("Glass", "glass"),
            ("Hummus", "hummus"),
            ("Bus", "bus"),
        ],
    )
    def test_plural_suffixes(self, raw, expected):
        assert normalize_name(raw) == expected

    def test_empty(self):
        assert normalize_name("") == ""
        assert normalize_name("   ") == ""

    @pytest.mark.parametrize(
        "raw",
        [
            " Milk ",
            "Fresh Organic Bananas",
            "the the eggs",
            "Strawberries & Cream",
            "Kellogg's Corn Flakes",
            "boxes of tomatoes",
            "a fresh loaf",
            "!!!",
        ],
    )
    def test_idempotent(self, raw):
        """Normalizing an already normalized name changes nothing."""
        once = normalize_name(raw)
        assert normalize_name(once) == once
