"""Edit-distance similarity between item names."""

from __future__ import annotations

import math

from rapidfuzz.distance import Levenshtein

from .normalize import normalize_name


def levenshtein_distance(a: str, b: str) -> int:
    """Number of single-character insertions, deletions or substitutions."""
    return Levenshtein.distance(a, b)


def normalized_similarity(a: str, b: str) -> int:
    """Score two already-normalized names on a 0-100 scale.

    ``round((1 - distance / max(len(a), len(b))) * 100)``, rounded half up
    and clamped. Two empty names score 100; one empty name scores 0.
    """
    if not a and not b:
        return 100
    if not a or not b:
        return 0
    if a == b:
        return 100

    longest = max(len(a), len(b))
    distance = levenshtein_distance(a, b)
    raw = (longest - distance) * 100 / longest
    return max(0, min(100, math.floor(raw + 0.5)))


def similarity_score(a: str, b: str) -> int:
    """Score two raw item names (normalized first) on a 0-100 scale."""
    return normalized_similarity(normalize_name(a), normalize_name(b))
