"""
Fuzzy resolution of free-text venue names against the venue table.

Names are normalized (lowercased, generic words dropped, punctuation collapsed)
before comparison. Strategies in order of authority: exact match on the
normalized form (1.0), substring containment for names of 4+ characters (0.9),
then a character-bigram Dice coefficient that must clear the threshold.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

DEFAULT_THRESHOLD = 0.6
EXACT_CONFIDENCE = 1.0
SUBSTRING_CONFIDENCE = 0.9
MIN_SUBSTRING_LENGTH = 4

# "cellar(s)" stays: it is often the distinguishing part of a winery name.
GENERIC_WORDS = frozenset(
    {
        "winery",
        "wineries",
        "vineyard",
        "vineyards",
        "estate",
        "estates",
        "wines",
        "restaurant",
        "bistro",
        "hotel",
        "inn",
        "the",
        "and",
        "of",
    }
)

_APOSTROPHES = re.compile(r"['’`]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class VenueRecord:
    id: int
    name: str
    venue_type: str


@dataclass(frozen=True)
class VenueMatch:
    venue: VenueRecord
    confidence: float
    match_type: str


def normalize_venue_name(name: str | None) -> str:
    if not name:
        return ""
    lowered = _APOSTROPHES.sub("", name.lower())
    words = [w for w in _NON_ALNUM.split(lowered) if w and w not in GENERIC_WORDS]
    return " ".join(words)


def _bigrams(value: str) -> Counter[str]:
    compact = value.replace(" ", "")
    return Counter(compact[i : i + 2] for i in range(len(compact) - 1))


def dice_coefficient(a: str, b: str) -> float:
    grams_a = _bigrams(a)
    grams_b = _bigrams(b)
    total = sum(grams_a.values()) + sum(grams_b.values())
    if not total:
        return 0.0
    overlap = sum((grams_a & grams_b).values())
    return 2.0 * overlap / total


def match_venue(
    name: str | None,
    venues: Iterable[VenueRecord],
    *,
    threshold: float = DEFAULT_THRESHOLD,
) -> VenueMatch | None:
    query = normalize_venue_name(name)
    if not query:
        return None

    best: VenueMatch | None = None
    for venue in venues:
        candidate = normalize_venue_name(venue.name)
        if not candidate:
            continue

        if candidate == query:
            return VenueMatch(venue=venue, confidence=EXACT_CONFIDENCE, match_type="exact")

        if (
            len(query) >= MIN_SUBSTRING_LENGTH
            and len(candidate) >= MIN_SUBSTRING_LENGTH
            and (query in candidate or candidate in query)
        ):
            score, match_type = SUBSTRING_CONFIDENCE, "substring"
        else:
            score, match_type = dice_coefficient(query, candidate), "fuzzy"
            if score < threshold:
                continue

        if best is None or score > best.confidence:
            best = VenueMatch(venue=venue, confidence=score, match_type=match_type)
    return best
