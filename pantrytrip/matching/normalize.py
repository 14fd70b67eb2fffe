"""Item name canonicalization for receipt and pantry comparison."""

from __future__ import annotations

import re

# Leading words that never distinguish one grocery item from another
_FILLER_WORDS: frozenset[str] = frozenset(
    {"a", "an", "the", "some", "fresh", "organic"}
)

_APOSTROPHES = re.compile(r"['’`]")
_NON_WORD = re.compile(r"[^\w\s]|_")

# Stems after which "es" is a plural ending rather than part of the word
_ES_STEMS: tuple[str, ...] = ("x", "z", "ch", "sh", "o", "ss")

# Word endings where a trailing "s" is not a plural (hummus, swiss, kiwis)
_KEEP_S: tuple[str, ...] = ("ss", "us", "is")


def normalize_name(name: str) -> str:
    """Canonicalize an item name for comparison.

    Lowercases, drops apostrophes, turns other punctuation into word breaks,
    collapses whitespace, drops leading filler words and strips trivial
    plural suffixes from every word. The rules are applied until nothing
    changes, so the result is a fixed point and normalizing twice gives
    the same string.
    """
    if not name:
        return ""

    previous = None
    current = name
    while current != previous:
        previous = current
        current = _normalize_once(current)
    return current


def _normalize_once(name: str) -> str:
    text = name.lower()
    text = _APOSTROPHES.sub("", text)
    text = _NON_WORD.sub(" ", text)
    words = text.split()

    # Keep at least one word: "fresh" on its own is still a name
    while len(words) > 1 and words[0] in _FILLER_WORDS:
        words = words[1:]

    return " ".join(_singular(w) for w in words)


def _singular(word: str) -> str:
    """Strip one trivial English plural suffix."""
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 4 and word.endswith("ves"):
        return word[:-3] + "f"
    if len(word) > 3 and word.endswith("es") and word[:-2].endswith(_ES_STEMS):
        return word[:-2]
    if len(word) > 2 and word.endswith("s") and not word.endswith(_KEEP_S):
        return word[:-1]
    return word
