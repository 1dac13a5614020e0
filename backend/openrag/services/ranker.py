"""
Ranker - Re-scores similarity matches and diversifies them by source.
"""

from typing import Optional

from openrag.models.chunk import SourceKind
from openrag.models.search import SearchResult

LONG_CONTENT_CHARS = 500
SHORT_CONTENT_CHARS = 100
LONG_CONTENT_BOOST = 1.10
SHORT_CONTENT_PENALTY = 0.90
CODE_BOOST = 1.20
QUESTION_BOOST = 1.15
WORD_OVERLAP_WEIGHT = 0.1
SECTION_BOOST = 1.05
SCORE_CEILING = 1.0

MAX_RESULTS_PER_SOURCE = 3
MIN_DIVERSIFIED_RESULTS = 10

CODE_TERMS = ("function", "class", "method", "implementation", "code", "api", "library")
QUESTION_TERMS = ("how", "what", "why", "when", "where", "guide", "tutorial", "documentation")


def adjusted_score(result: SearchResult, query: str) -> float:
    """
    Compound the boost and penalty factors onto a raw similarity score.

    Vocabulary checks are lowercase substring checks, so "how" also fires
    for "show". The result is capped at 1.0.
    """
    score = result.score
    query_lower = query.lower()
    content = result.content or ""
    content_lower = content.lower()

    if len(content) > LONG_CONTENT_CHARS:
        score *= LONG_CONTENT_BOOST
    elif len(content) < SHORT_CONTENT_CHARS:
        score *= SHORT_CONTENT_PENALTY

    has_code_terms = any(term in query_lower or term in content_lower for term in CODE_TERMS)
    if has_code_terms and result.source.kind == SourceKind.REPOSITORY:
        score *= CODE_BOOST

    has_question_terms = any(term in query_lower for term in QUESTION_TERMS)
    if has_question_terms and result.source.kind == SourceKind.DOCUMENTATION:
        score *= QUESTION_BOOST

    query_words = query_lower.split()
    if query_words:
        matched = sum(1 for word in query_words if word in content_lower)
        score *= 1 + WORD_OVERLAP_WEIGHT * (matched / len(query_words))

    if result.metadata.section:
        score *= SECTION_BOOST

    return min(score, SCORE_CEILING)


def diversify(
    ranked: list[SearchResult],
    max_per_source: int = MAX_RESULTS_PER_SOURCE,
    min_results: int = MIN_DIVERSIFIED_RESULTS,
) -> list[SearchResult]:
    """
    Cap results per source URL, then backfill from the excluded pool.

    Backfill only happens while fewer than ``min_results`` were accepted;
    backfilled results keep their rank order and come after the capped ones.
    """
    accepted: list[SearchResult] = []
    excluded: list[SearchResult] = []
    per_source: dict[str, int] = {}

    for result in ranked:
        url = result.source.url
        count = per_source.get(url, 0)
        if count < max_per_source:
            accepted.append(result)
            per_source[url] = count + 1
        else:
            excluded.append(result)

    if excluded and len(accepted) < min_results:
        accepted.extend(excluded[: min_results - len(accepted)])

    return accepted


def rank_results(
    results: list[SearchResult],
    query: str,
    max_per_source: Optional[int] = None,
    min_results: Optional[int] = None,
) -> list[SearchResult]:
    """
    Re-rank raw matches for a query and diversify them by source.

    Pure function: the returned results carry their original similarity
    score; the adjusted score only decides the order.
    """
    scored = [(adjusted_score(result, query), result) for result in results]
    # list.sort is stable, so equal scores keep their incoming order
    scored.sort(key=lambda item: item[0], reverse=True)
    ranked = [result for _, result in scored]

    diversified = diversify(
        ranked,
        max_per_source=MAX_RESULTS_PER_SOURCE if max_per_source is None else max_per_source,
        min_results=MIN_DIVERSIFIED_RESULTS if min_results is None else min_results,
    )
    return [result.model_copy(deep=True) for result in diversified]
