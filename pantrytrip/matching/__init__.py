"""Name normalization, similarity scoring and match classification."""

from .classifier import Classification, MatchClassifier, MatchDecision, classify
from .normalize import normalize_name
from .similarity import levenshtein_distance, normalized_similarity, similarity_score

__all__ = [
    "normalize_name",
    "levenshtein_distance",
    "normalized_similarity",
    "similarity_score",
    "MatchClassifier",
    "MatchDecision",
    "Classification",
    "classify",
]
