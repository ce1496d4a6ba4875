"""Flexible ingredient matching against free text.

``matches(term, text)`` decides whether a title/description mentions an
ingredient. Strategies run from cheapest to most permissive and the first
hit wins:

1. case-folded substring
2. space-stripped substring ("soy sauce" vs "soysauce")
3. both words of a two-word term present anywhere ("sauce made with soy")
4. alias table, in both directions, each variant also tried space-stripped
5. edit-distance fuzzy match for single-word terms only
"""
from __future__ import annotations

import re
from typing import Iterable, List

from ingredient_aliases import variants_for

MIN_COMPOUND_PART_LENGTH = 3
MIN_FUZZY_LENGTH = 4
SHORT_TERM_LENGTH = 4

_WHITESPACE_RE = re.compile(r"\s+")
# Letters only: digits and underscores never take part in fuzzy matching.
_FUZZY_WORD_RE = re.compile(r"[^\W\d_]{%d,}" % MIN_FUZZY_LENGTH)


def levenshtein_distance(a: str, b: str, max_distance: int | None = None) -> int:
    """Classic edit distance (insert/delete/substitute, all cost 1).

    When ``max_distance`` is given the computation stops early and returns
    ``max_distance + 1`` as soon as the bound is provably exceeded.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if max_distance is not None and len(a) - len(b) > max_distance:
        return max_distance + 1
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        if max_distance is not None and min(current) > max_distance:
            return max_distance + 1
        previous = current
    return previous[-1]


def fuzzy_threshold(term: str) -> int:
    """Allowed edit distance: 1 for terms of 4 chars or fewer, else 2."""
    return 1 if len(term) <= SHORT_TERM_LENGTH else 2


def _strip_spaces(value: str) -> str:
    return _WHITESPACE_RE.sub("", value)


def _contains(variant: str, text: str) -> bool:
    if variant in text:
        return True
    stripped = _strip_spaces(variant)
    return stripped != variant and stripped in text


def _compound_parts_present(term: str, text: str) -> bool:
    parts = term.split()
    return len(parts) == 2 and all(
        len(part) >= MIN_COMPOUND_PART_LENGTH and part in text for part in parts
    )


def _alias_match(term: str, text: str) -> bool:
    return any(_contains(variant, text) for variant in variants_for(term) if variant != term)


def _fuzzy_targets(term: str) -> List[str]:
    targets = [term]
    for variant in variants_for(term):
        if variant != term and " " not in variant and len(variant) >= MIN_FUZZY_LENGTH:
            targets.append(variant)
    return targets


def _fuzzy_match(term: str, text: str) -> bool:
    if " " in term or len(term) < MIN_FUZZY_LENGTH:
        return False
    words = set(_FUZZY_WORD_RE.findall(text))
    if not words:
        return False
    limit = fuzzy_threshold(term)
    for target in _fuzzy_targets(term):
        for word in words:
            if levenshtein_distance(target, word, max_distance=limit) <= limit:
                return True
    return False


def matches(term: str, text: str) -> bool:
    """Return True when ``text`` mentions the ingredient ``term``."""
    needle = _WHITESPACE_RE.sub(" ", (term or "").casefold()).strip()
    if not needle:
        return False
    haystack = (text or "").casefold()

    if needle in haystack:
        return True
    stripped = _strip_spaces(needle)
    if stripped != needle and stripped in haystack:
        return True
    if _compound_parts_present(needle, haystack):
        return True
    if _alias_match(needle, haystack):
        return True
    return _fuzzy_match(needle, haystack)


def matched_terms(terms: Iterable[str], text: str) -> List[str]:
    """Subset of ``terms`` that ``text`` mentions, in the given order."""
    return [term for term in terms if matches(term, text)]
