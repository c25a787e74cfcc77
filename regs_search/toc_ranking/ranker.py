"""
Hybrid TOC section ranker.

Combines keyword and semantic signals into one ranked list of sections:

    hybrid:        final = 0.3 × keyword + 0.7 × semantic
    keyword-only:  final = keyword

Hybrid scoring is used only when the ranker is in HYBRID mode, at least one
entry carries a usable embedding, AND a query embedding was produced. Any
missing piece falls back to keyword-only for the whole pass, so a failed
embedding call ranks exactly like a corpus that was never embedded.

Pipeline:
1. Extract keywords from the query
2. Score each entry (keyword + semantic)
3. Blend, scale to 0-1000 for display
4. Drop scores <= threshold (10)
5. Sort: score desc, then page asc, then input order
6. Truncate to 20

The ranker is pure: no I/O, no shared state, inputs are never mutated.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .keyword_scorer import KeywordScorer, KeywordWeights
from .models import RankingMode, RankingOutcome, ScoredResult, TocEntry
from .similarity import parse_embedding, semantic_score
from .tokenizer import extract_keywords

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankerConfig:
    """Ranking parameter set (one per historical search variant)"""
    mode: RankingMode = RankingMode.HYBRID
    keyword_weight: float = 0.3
    semantic_weight: float = 0.7
    score_scale: float = 1000.0
    min_score: float = 10.0        # On the display scale (0.01 unscaled)
    max_results: int = 20
    alternatives_count: int = 3
    keyword_weights: KeywordWeights = KeywordWeights()


class HybridSectionRanker:
    """
    Ranks TOC entries against a free-text or voice query.

    Stateless between calls; safe to share across requests and threads.
    """

    def __init__(self, config: RankerConfig = None):
        self.config = config or RankerConfig()
        self.keyword_scorer = KeywordScorer(self.config.keyword_weights)

    def rank(
        self,
        entries: Sequence[TocEntry],
        query: str,
        query_embedding: Optional[Sequence[float]] = None,
    ) -> List[ScoredResult]:
        """
        Rank entries for a query.

        Args:
            entries: TOC entries of one document (empty → empty result)
            query: Raw query text
            query_embedding: Precomputed query vector, None if unavailable

        Returns:
            At most max_results ScoredResult, best first
        """
        return self.rank_with_details(entries, query, query_embedding).results

    def rank_with_details(
        self,
        entries: Sequence[TocEntry],
        query: str,
        query_embedding: Optional[Sequence[float]] = None,
    ) -> RankingOutcome:
        """
        Rank entries and report how the ranking was produced.

        Returns:
            RankingOutcome with results and debug metadata
            (total entries, whether embeddings were used, keyword count)
        """
        cfg = self.config
        keywords = extract_keywords(query)

        # Parse embeddings once per pass; malformed values become None
        if cfg.mode == RankingMode.HYBRID:
            query_vector = parse_embedding(query_embedding)
            entry_vectors = [parse_embedding(entry.embedding) for entry in entries]
        else:
            query_vector = None
            entry_vectors = [None] * len(entries)

        corpus_has_embeddings = any(v is not None for v in entry_vectors)
        use_hybrid = (
            cfg.mode == RankingMode.HYBRID
            and corpus_has_embeddings
            and query_vector is not None
        )

        if cfg.mode == RankingMode.HYBRID and corpus_has_embeddings and query_vector is None:
            logger.info("Query embedding unavailable, falling back to keyword-only ranking")

        scored = []
        for position, (entry, entry_vector) in enumerate(zip(entries, entry_vectors)):
            kw = self.keyword_scorer.score(entry, query, keywords)

            if use_hybrid:
                sem = semantic_score(query_vector, entry_vector)
                combined = cfg.keyword_weight * kw.normalized + cfg.semantic_weight * sem
            else:
                sem = 0.0
                combined = kw.normalized

            final_score = combined * cfg.score_scale
            if final_score <= cfg.min_score:
                continue

            result = ScoredResult(
                entry=entry,
                keyword_score=kw.normalized,
                semantic_score=sem,
                final_score=final_score,
                match_count=kw.match_count,
            )
            scored.append((position, result))

        # Score desc, page asc, input order for full determinism
        scored.sort(key=lambda item: (-item[1].final_score, item[1].entry.document_page, item[0]))
        results = [result for _, result in scored[:cfg.max_results]]

        logger.info(
            f"Ranked {len(entries)} TOC entries: {len(keywords)} keywords, "
            f"mode={'hybrid' if use_hybrid else 'keyword'}, "
            f"{len(scored)} above threshold, returning {len(results)}"
        )
        for result in results[:3]:
            logger.debug(
                f"  [{result.final_score:.0f}] {result.entry.section_number}: {result.entry.title} "
                f"(kw={result.keyword_score:.3f}, sem={result.semantic_score:.3f}, "
                f"page {result.entry.document_page})"
            )

        return RankingOutcome(
            results=results,
            total_entries=len(entries),
            used_embeddings=use_hybrid,
            keyword_count=len(keywords),
            mode=cfg.mode,
            alternatives_count=cfg.alternatives_count,
        )
