"""Pluggable string similarity strategies for fuzzy identifier matching."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from rapidfuzz import fuzz
from rapidfuzz.distance import JaroWinkler, Levenshtein

type Similarity = Callable[[str, str], float]


class SimilarityMetric(StrEnum):
    LEVENSHTEIN = "levenshtein"
    TOKEN_SORT = "token_sort"
    JARO_WINKLER = "jaro_winkler"


def levenshtein_ratio(left: str, right: str) -> float:
    """``(len(longer) - edit_distance) / len(longer)``; two empty strings score 1.0."""

    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(left, right)) / longest


def token_sort_ratio(left: str, right: str) -> float:
    return fuzz.token_sort_ratio(left, right) / 100.0


def jaro_winkler_ratio(left: str, right: str) -> float:
    return JaroWinkler.similarity(left, right)


SIMILARITY_FUNCTIONS: dict[SimilarityMetric, Similarity] = {
    SimilarityMetric.LEVENSHTEIN: levenshtein_ratio,
    SimilarityMetric.TOKEN_SORT: token_sort_ratio,
    SimilarityMetric.JARO_WINKLER: jaro_winkler_ratio,
}


def get_similarity(metric: SimilarityMetric | str) -> Similarity:
    return SIMILARITY_FUNCTIONS[SimilarityMetric(metric)]
