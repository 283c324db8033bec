"""
Document resolution.

Responsibilities:
- Normalize the query and reject inputs too vague to disambiguate.
- Try keyword lookup unless the query is exactly a document name, then scan
  document names with the scorer.
- Apply score and gap thresholds.
- Return an explainable resolution result.

Non-Responsibilities:
- No table loading.
- No mutation of the table.

Invariant:
Resolution is deterministic given the same query, table and config. When
several records share the top score the first one in table order is best,
and the gap check then rejects the tie as ambiguous.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Sequence

from .normalize import normalize_text
from .records import Record
from .scoring import BONUS_WEIGHT, DEFAULT_BONUS_TERMS, score_match

MIN_QUERY_LENGTH = 4
MIN_SCORE = 140
MIN_GAP = 40

MATCHED_ON_KEYWORD = "keyword"
MATCHED_ON_NAME = "name"


class RejectReason(str, Enum):
    EMPTY_QUERY = "empty_query"
    QUERY_TOO_SHORT = "query_too_short"
    BELOW_THRESHOLD = "below_threshold"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class MatcherConfig:
    min_query_length: int = MIN_QUERY_LENGTH
    min_score: int = MIN_SCORE
    min_gap: int = MIN_GAP
    bonus_weight: int = BONUS_WEIGHT
    bonus_terms: FrozenSet[str] = DEFAULT_BONUS_TERMS
    keyword_first: bool = True


DEFAULT_CONFIG = MatcherConfig()


@dataclass(frozen=True)
class MatchResult:
    query: str
    record: Optional[Record] = None
    reason: Optional[RejectReason] = None
    best_score: int = -1
    second_best_score: int = -1
    matched_on: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.record is not None

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "matched": self.matched,
            "matched_on": self.matched_on,
            "reason": self.reason.value if self.reason else None,
            "best_score": self.best_score,
            "second_best_score": self.second_best_score,
            "record": self.record.to_dict() if self.record else None,
        }


def _contains_tokens(haystack: str, needle: str) -> bool:
    return f" {needle} " in f" {haystack} "


def has_exact_name(query: str, table: Sequence[Record]) -> bool:
    return any(record.normalized_display_name == query for record in table)


def find_by_keyword(query: str, table: Sequence[Record]) -> Optional[Record]:
    """
    Look up a normalized query against record keywords.

    Equality wins over containment; within each pass the first record in
    table order is returned. Containment is on whole tokens in either
    direction, so "gk" does not hit "gkletter".
    """
    for record in table:
        if record.normalized_keyword and record.normalized_keyword == query:
            return record
    for record in table:
        kw = record.normalized_keyword
        if kw and (_contains_tokens(query, kw) or _contains_tokens(kw, query)):
            return record
    return None


def resolve_match(query: Optional[str], table: Sequence[Record], config: MatcherConfig = DEFAULT_CONFIG) -> MatchResult:
    search = normalize_text(query)
    if not search:
        return MatchResult(query=search, reason=RejectReason.EMPTY_QUERY)
    if len(search) < config.min_query_length:
        return MatchResult(query=search, reason=RejectReason.QUERY_TOO_SHORT)

    # An exact name always outranks a keyword hit.
    if config.keyword_first and not has_exact_name(search, table):
        hit = find_by_keyword(search, table)
        if hit is not None:
            return MatchResult(query=search, record=hit, matched_on=MATCHED_ON_KEYWORD)

    best: Optional[Record] = None
    best_score = -1
    second_best_score = -1

    for record in table:
        candidate = record.normalized_display_name
        if not candidate:
            continue
        s = score_match(search, candidate, config.bonus_terms, config.bonus_weight)
        if s > best_score:
            second_best_score = best_score
            best_score = s
            best = record
        elif s > second_best_score:
            second_best_score = s

    if best is None or best_score < config.min_score:
        return MatchResult(
            query=search,
            reason=RejectReason.BELOW_THRESHOLD,
            best_score=best_score,
            second_best_score=second_best_score,
        )

    if second_best_score != -1 and best_score - second_best_score < config.min_gap:
        return MatchResult(
            query=search,
            reason=RejectReason.AMBIGUOUS,
            best_score=best_score,
            second_best_score=second_best_score,
        )

    return MatchResult(
        query=search,
        record=best,
        best_score=best_score,
        second_best_score=second_best_score,
        matched_on=MATCHED_ON_NAME,
    )


def resolve(query: Optional[str], table: Sequence[Record], config: MatcherConfig = DEFAULT_CONFIG) -> Optional[Record]:
    """Return the matching Record, or None for any kind of rejection."""
    return resolve_match(query, table, config).record
