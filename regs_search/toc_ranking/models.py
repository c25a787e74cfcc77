"""
Data types shared by the TOC ranking components.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RankingMode(Enum):
    """Ranking signal selection"""
    HYBRID = "hybrid"              # Keyword + semantic when embeddings exist
    KEYWORD_ONLY = "keyword_only"  # Ignore embeddings entirely


@dataclass(frozen=True)
class TocEntry:
    """One section/clause/table of a regulation document"""
    id: str
    document_id: str
    section_number: str
    title: str
    document_page: int
    level: int = 1
    full_path: Optional[str] = None
    embedding: Optional[List[float]] = None


@dataclass(frozen=True)
class ScoredResult:
    """Ranked TOC entry with its component scores (transient, per query)"""
    entry: TocEntry
    keyword_score: float   # Normalized keyword score (0-1)
    semantic_score: float  # Rescaled cosine similarity (0-1)
    final_score: float     # Combined score on the 0-1000 display scale
    match_count: int       # Keywords found in the title

    @property
    def page(self) -> int:
        return self.entry.document_page


@dataclass
class RankingOutcome:
    """Ranked results plus debug metadata for observability"""
    results: List[ScoredResult]
    total_entries: int
    used_embeddings: bool
    keyword_count: int
    mode: RankingMode
    alternatives_count: int = 3

    @property
    def selection(self) -> Optional[ScoredResult]:
        return self.results[0] if self.results else None

    @property
    def alternatives(self) -> List[ScoredResult]:
        """Results ranked 2nd to 4th (skip the selection, take the next three)"""
        return self.results[1:1 + self.alternatives_count]


@dataclass
class PassageResult:
    """Passage-level search hit re-ranked by the clause boost"""
    content: str
    similarity: float = 0.0
    section_number: Optional[str] = None
    section_title: Optional[str] = None
    key_topics: List[str] = field(default_factory=list)
    relevance_score: float = 0.0
