"""
String similarity for entity-name suggestions.

The score is a heuristic, not a metric (it breaks the triangle
inequality). It only ranks suggestions and gates grouping; equality
decisions always use names_match.

    base   = 1 - levenshtein(a, b) / max(len(a), len(b))
    + 0.3  if one string contains the other
    + 0.4 * matching_words / max(word_count(a), word_count(b))
    clamped to [0, 1]

Both inputs are whitespace- and case-normalized first.
"""

from typing import Iterable, Protocol

from rapidfuzz.distance import Levenshtein

from stockroom.schemas.imports import Suggestion
from stockroom.services.normalization import normalize_identifier

SUBSTRING_BOOST = 0.3
WORD_OVERLAP_WEIGHT = 0.4


class NamedEntity(Protocol):
    id: object
    name: str
    code: str | None


def _words_match(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def similarity(a: str, b: str) -> float:
    """Bounded [0, 1] similarity between two names."""
    a = normalize_identifier(a)
    b = normalize_identifier(b)
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    score = 1.0 - Levenshtein.distance(a, b) / max(len(a), len(b))

    if a in b or b in a:
        score += SUBSTRING_BOOST

    words_a = a.split(" ")
    words_b = b.split(" ")
    matching = sum(
        1 for wa in words_a if any(_words_match(wa, wb) for wb in words_b)
    )
    score += (matching / max(len(words_a), len(words_b))) * WORD_OVERLAP_WEIGHT

    return max(0.0, min(1.0, score))


def rank_suggestions(
    import_value: str,
    candidates: Iterable[NamedEntity],
    limit: int | None = None,
    min_score: float = 0.2,
) -> list[Suggestion]:
    """
    Score canonical entities against an import value.

    Keeps candidates scoring strictly above `min_score`, best first; ties
    keep catalog order. `limit` truncates after sorting.
    """
    scored = [
        Suggestion(
            existing_id=entity.id,
            existing_name=entity.name,
            existing_code=entity.code,
            score=round(similarity(import_value, entity.name), 4),
        )
        for entity in candidates
    ]
    ranked = sorted(
        (s for s in scored if s.score > min_score),
        key=lambda s: s.score,
        reverse=True,
    )
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
