"""
Keyword scorer for TOC entries.

Six additive signals (not mutually exclusive):
    exact:     section_number == query                     +1000
    substring: section_number contains query               +500
    title:     title contains query                        +300
    path:      full_path contains query                    +200
    keyword:   per keyword, title / section / path hit     +50 / +30 / +20
    coverage:  title hits >= half the keywords (2+ kw)     +100

Raw score is normalized to 0-1:
    normalized = min(raw / 1500, 1)

The weights are an empirically tuned starting point carried over from the
production search route, not derived values. Keep them in KeywordWeights so
alternative parameter sets can be compared against query logs.
"""

from dataclasses import dataclass
from typing import List, NamedTuple

from .models import TocEntry
from .tokenizer import normalize_query


@dataclass(frozen=True)
class KeywordWeights:
    """Additive weight table for keyword signals"""
    exact_section: int = 1000
    section_contains_query: int = 500
    title_contains_query: int = 300
    path_contains_query: int = 200
    keyword_in_title: int = 50
    keyword_in_section: int = 30
    keyword_in_path: int = 20
    coverage_bonus: int = 100
    normalizer: float = 1500.0


class KeywordScore(NamedTuple):
    raw: int
    normalized: float
    match_count: int


class KeywordScorer:
    """
    Lexical scorer over section number, title and full path.

    Matching is case-insensitive substring containment; the query and the
    TOC fields are normalized (lowercased, trimmed) per call.
    """

    def __init__(self, weights: KeywordWeights = None):
        """
        Initialize keyword scorer.

        Args:
            weights: Signal weight table (default: production weights)
        """
        self.weights = weights or KeywordWeights()

    def score(self, entry: TocEntry, query: str, keywords: List[str]) -> KeywordScore:
        """
        Compute keyword score for one entry.

        Args:
            entry: TOC entry to score
            query: Raw query text (lowercased + trimmed here)
            keywords: Query keywords (from tokenizer.extract_keywords)

        Returns:
            KeywordScore(raw, normalized, match_count)

        Example:
            >>> scorer = KeywordScorer()
            >>> entry = TocEntry(id="1", document_id="d", section_number="6.2.2",
            ...                  title="Classification of zones", document_page=317)
            >>> scorer.score(entry, "zones", ["zones"])
            KeywordScore(raw=350, normalized=0.2333..., match_count=1)
        """
        w = self.weights
        full_query = normalize_query(query)

        # TOC fields get the same normalization as the query (OCR padding)
        section = normalize_query(entry.section_number)
        title = normalize_query(entry.title)
        path = normalize_query(entry.full_path)

        raw = 0

        # Whole-query signals (an empty query would "contain" in everything)
        if full_query:
            if section == full_query:
                raw += w.exact_section
            if full_query in section:
                raw += w.section_contains_query
            if full_query in title:
                raw += w.title_contains_query
            if full_query in path:
                raw += w.path_contains_query

        # Per-keyword signals
        match_count = 0
        for keyword in keywords:
            if keyword in title:
                raw += w.keyword_in_title
                match_count += 1
            if keyword in section:
                raw += w.keyword_in_section
            if keyword in path:
                raw += w.keyword_in_path

        # Coverage bonus for multi-word queries
        if len(keywords) > 1 and match_count >= len(keywords) / 2:
            raw += w.coverage_bonus

        normalized = min(raw / w.normalizer, 1.0)

        return KeywordScore(raw=raw, normalized=normalized, match_count=match_count)
