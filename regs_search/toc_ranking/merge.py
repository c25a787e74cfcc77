"""
Merge rankings produced for several phrasings of one question.

A question expanded into N search queries yields N rankings. The merge keeps
the best few hits of each, drops sections already found by an earlier
query, and re-sorts the union by score (page as tie-break).

Unlike RRF this compares raw scores across rankings. That is sound here
because every ranking comes from the same ranker over the same TOC, so the
0-1000 scale is shared.
"""

from dataclasses import dataclass
from typing import List, Sequence, Set, Tuple

from .models import ScoredResult


@dataclass(frozen=True)
class MergedResult:
    """Ranked result tagged with the search query that found it"""
    result: ScoredResult
    found_by: str


def merge_rankings(
    rankings: Sequence[Tuple[str, Sequence[ScoredResult]]],
    per_query: int = 3,
) -> List[MergedResult]:
    """
    Combine per-query rankings into one deduplicated list.

    Args:
        rankings: (query, ranked results) pairs, in query order
        per_query: How many top results to take from each ranking

    Returns:
        Unique entries sorted by final score desc, page asc
        First occurrence wins on duplicates (keeps its query tag)

    Example:
        >>> merged = merge_rankings([
        ...     ("bath zones", [r_622, r_62]),
        ...     ("shower clearance", [r_62, r_624]),
        ... ])
        >>> [m.result.entry.section_number for m in merged]
        ['6.2.2', '6.2', '6.2.4']
    """
    if not rankings:
        return []

    seen: Set[str] = set()
    merged: List[Tuple[int, MergedResult]] = []

    for query, results in rankings:
        for result in list(results)[:per_query]:
            entry_id = result.entry.id
            if entry_id in seen:
                continue
            seen.add(entry_id)
            merged.append((len(merged), MergedResult(result=result, found_by=query)))

    merged.sort(key=lambda item: (-item[1].result.final_score, item[1].result.entry.document_page, item[0]))

    return [item for _, item in merged]
