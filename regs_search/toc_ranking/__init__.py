"""
Hybrid ranking of regulation table-of-contents entries.

Combines lexical matching over section metadata with embedding similarity,
and degrades to keyword-only ranking whenever embeddings are unavailable.

Components:
- tokenizer: Query normalization and keyword extraction
- keyword_scorer: Weighted substring signals over section/title/path
- similarity: Embedding parsing and rescaled cosine similarity
- ranker: HybridSectionRanker (blend, threshold, sort, truncate)
- merge: Combine rankings of several phrasings of one question
- clause_boost: Clause-aware re-ranking of passage-level hits
"""

from .models import (
    PassageResult,
    RankingMode,
    RankingOutcome,
    ScoredResult,
    TocEntry,
)
from .tokenizer import extract_keywords, normalize_query
from .keyword_scorer import KeywordScorer, KeywordWeights
from .similarity import cosine_similarity, parse_embedding, semantic_score
from .ranker import HybridSectionRanker, RankerConfig
from .merge import MergedResult, merge_rankings
from .clause_boost import ClauseBoostWeights, relevance_score, rerank_passages

__all__ = [
    "TocEntry",
    "ScoredResult",
    "RankingMode",
    "RankingOutcome",
    "PassageResult",
    "extract_keywords",
    "normalize_query",
    "KeywordScorer",
    "KeywordWeights",
    "cosine_similarity",
    "parse_embedding",
    "semantic_score",
    "HybridSectionRanker",
    "RankerConfig",
    "MergedResult",
    "merge_rankings",
    "ClauseBoostWeights",
    "relevance_score",
    "rerank_passages",
]
