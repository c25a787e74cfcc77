"""
Clause-aware re-ranking of passage-level search results.

The TOC ranker works on section metadata; this adjusts scores of actual
passage hits (page text returned by the hybrid passage search) with fixed
additive boosts on top of the base vector similarity:

    phrase:  passage content contains the full query       +0.3
    title:   section title contains the full query         +0.2
    clause:  clause number from the query in section no.   +0.4
    topics:  per key topic containing any query word       +0.1

The adjusted score is clamped to [0, 1] and the top 5 are kept.
"""

import re
from dataclasses import dataclass, replace
from typing import List, Sequence

from .models import PassageResult
from .tokenizer import normalize_query


@dataclass(frozen=True)
class ClauseBoostWeights:
    """Additive boost table for passage re-ranking"""
    phrase_in_content: float = 0.3
    query_in_title: float = 0.2
    clause_number_match: float = 0.4
    per_topic_match: float = 0.1
    max_score: float = 1.0
    top_k: int = 5
    clause_pattern: str = r"\d+(?:\.\d+)*"


def relevance_score(passage: PassageResult, query: str, weights: ClauseBoostWeights = None) -> float:
    """
    Compute the boosted relevance score for one passage.

    Args:
        passage: Passage search hit
        query: Raw query text
        weights: Boost table (default: production weights)

    Returns:
        Score clamped to [0, max_score]

    Example:
        >>> p = PassageResult(content="...6.2.4.2 socket-outlets...", similarity=0.5,
        ...                   section_number="6.2.4.2")
        >>> relevance_score(p, "clause 6.2.4.2")
        0.9
    """
    w = weights or ClauseBoostWeights()
    query_lower = normalize_query(query)

    score = passage.similarity or 0.0

    if query_lower:
        if query_lower in (passage.content or "").lower():
            score += w.phrase_in_content

        if passage.section_title and query_lower in passage.section_title.lower():
            score += w.query_in_title

    clause_match = re.search(w.clause_pattern, query_lower)
    if clause_match and passage.section_number and clause_match.group(0) in passage.section_number:
        score += w.clause_number_match

    # Raw query words, stop words included: "of" matches most topics
    query_words = query_lower.split()
    topic_matches = sum(
        1 for topic in passage.key_topics or []
        if any(word in topic.lower() for word in query_words)
    )
    score += topic_matches * w.per_topic_match

    return max(0.0, min(score, w.max_score))


def rerank_passages(
    passages: Sequence[PassageResult],
    query: str,
    weights: ClauseBoostWeights = None,
) -> List[PassageResult]:
    """
    Re-rank passage hits by boosted relevance.

    Args:
        passages: Passage search hits (not modified)
        query: Raw query text
        weights: Boost table (default: production weights)

    Returns:
        Top-k copies with relevance_score set, best first
        (stable: equal scores keep their input order)
    """
    w = weights or ClauseBoostWeights()

    scored = [
        replace(passage, relevance_score=relevance_score(passage, query, w))
        for passage in passages
    ]
    scored.sort(key=lambda p: p.relevance_score, reverse=True)

    return scored[:w.top_k]
