"""
Scoring logic for document name matching.

Responsibilities:
- Compute a deterministic similarity score between a normalized query and a
  normalized candidate name.
- Emit a score breakdown for diagnostics.

Non-Responsibilities:
- No normalization (inputs arrive normalized).
- No table scanning.
- No threshold decisions.

Invariant:
Given identical inputs, this module must always return the same score.
"""

import math
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Tuple

from .normalize import tokenize

EXACT_SCORE = 1000
CANDIDATE_CONTAINS_QUERY_SCORE = 700
QUERY_CONTAINS_CANDIDATE_SCORE = 650
TOKEN_OVERLAP_WEIGHT = 500
BONUS_WEIGHT = 15

# Short domain words that token ratios would otherwise dilute.
DEFAULT_BONUS_TERMS: FrozenSet[str] = frozenset({
    "welcome",
    "letter",
    "protocol",
    "internalization",
    "lesson",
    "teacher",
    "foundational",
    "skills",
    "consonant",
    "code",
    "flip",
    "book",
    "chart",
    "individual",
    "gk",
    "3",
})

TIER_EXACT = "exact"
TIER_CANDIDATE_CONTAINS = "candidate_contains_query"
TIER_QUERY_CONTAINS = "query_contains_candidate"
TIER_TOKEN_OVERLAP = "token_overlap"


@dataclass(frozen=True)
class ScoreBreakdown:
    tier: str
    base: int
    bonus: int
    bonus_terms: Tuple[str, ...]

    @property
    def total(self) -> int:
        return self.base + self.bonus


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def token_overlap_score(query: str, candidate: str) -> int:
    """Share of query tokens found in the candidate, scaled to 0..500.

    Repeated query tokens count once per occurrence.
    """
    query_tokens = tokenize(query)
    candidate_tokens = set(tokenize(candidate))
    hits = sum(1 for t in query_tokens if t in candidate_tokens)
    ratio = hits / max(1, len(query_tokens))
    return _round_half_up(ratio * TOKEN_OVERLAP_WEIGHT)


def shared_bonus_terms(query: str, candidate: str, bonus_terms: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(t for t in set(bonus_terms) if t in query and t in candidate))


def score_breakdown(
    query: str,
    candidate: str,
    bonus_terms: Iterable[str] = DEFAULT_BONUS_TERMS,
    bonus_weight: int = BONUS_WEIGHT,
) -> ScoreBreakdown:
    """
    Score a normalized query against a normalized candidate.

    Tiers are tried in order and the first applicable one sets the base:
    exact equality (1000, no bonus), candidate contains query (700),
    query contains candidate (650), token overlap (0..500). Every
    non-exact tier adds ``bonus_weight`` per bonus term present in both
    strings.

    Args:
        query: Normalized query text
        candidate: Normalized candidate name
        bonus_terms: Vocabulary of domain terms worth a bonus
        bonus_weight: Points per shared bonus term

    Returns:
        ScoreBreakdown with the tier, base, bonus and matched terms
    """
    if query == candidate:
        return ScoreBreakdown(TIER_EXACT, EXACT_SCORE, 0, ())

    if query in candidate:
        tier, base = TIER_CANDIDATE_CONTAINS, CANDIDATE_CONTAINS_QUERY_SCORE
    elif candidate in query:
        tier, base = TIER_QUERY_CONTAINS, QUERY_CONTAINS_CANDIDATE_SCORE
    else:
        tier, base = TIER_TOKEN_OVERLAP, token_overlap_score(query, candidate)

    terms = shared_bonus_terms(query, candidate, bonus_terms)
    return ScoreBreakdown(tier, base, len(terms) * bonus_weight, terms)


def score_match(
    query: str,
    candidate: str,
    bonus_terms: Iterable[str] = DEFAULT_BONUS_TERMS,
    bonus_weight: int = BONUS_WEIGHT,
) -> int:
    return score_breakdown(query, candidate, bonus_terms, bonus_weight).total
