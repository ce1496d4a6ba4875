"""Relevance filtering of candidate videos against the full search-term set.

Multi-term searches pull in popular videos that only mention one of the
ingredients. Each item is scored by the fraction of terms it mentions and
kept only when it reaches a term-count dependent threshold:

    1 term  -> 1 of 1
    2 terms -> 2 of 2
    3 terms -> 2 of 3
    4+      -> at least 75% (3 of 4, 4 of 5, 5 of 6, ...)
"""
from __future__ import annotations

import math
from typing import List, Sequence

from lexical_matcher import matches
from models import ContentItem, RelevanceResult

PROPORTIONAL_THRESHOLD = 0.75


def required_match_count(term_count: int) -> int:
    """Minimum number of terms an item must mention to count as relevant."""
    if term_count <= 2:
        return max(term_count, 0)
    if term_count == 3:
        return 2
    return math.ceil(term_count * PROPORTIONAL_THRESHOLD)


def item_relevance(item: ContentItem, terms: Sequence[str]) -> float:
    """Fraction (0-1) of ``terms`` mentioned in the item's title+description."""
    if not terms:
        return 1.0
    text = item.text
    matched = sum(1 for term in terms if matches(term, text))
    return matched / len(terms)


def score_relevance(items: Sequence[ContentItem], terms: Sequence[str]) -> List[RelevanceResult]:
    return [RelevanceResult(item=item, matched_fraction=item_relevance(item, terms)) for item in items]


def filter_relevant(items: Sequence[ContentItem], terms: Sequence[str]) -> List[RelevanceResult]:
    """Keep items whose matched-term count reaches the threshold, in input order."""
    if not terms:
        return score_relevance(items, terms)
    required = required_match_count(len(terms))
    kept: List[RelevanceResult] = []
    for result in score_relevance(items, terms):
        # Compare on counts so 2/3 is never lost to float rounding.
        if round(result.matched_fraction * len(terms)) >= required:
            kept.append(result)
    return kept


def average_relevance(results: Sequence[RelevanceResult]) -> float:
    if not results:
        return 0.0
    return sum(result.matched_fraction for result in results) / len(results)
