"""
Query and section embeddings via Google Gen AI (Vertex AI text-embedding-005).

The embedder never raises on API failure: callers get None and the ranker
falls back to keyword-only scoring for that request.
"""

import logging
from typing import List, Optional

from google import genai

from .toc_ranking.models import TocEntry

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-005"
EMBEDDING_DIMENSION = 768


def embed_entry_text(entry: TocEntry) -> str:
    """
    Text embedded for a TOC entry by the batch embedding job.

    Example:
        >>> embed_entry_text(TocEntry(id="1", document_id="d", section_number="6.2.2",
        ...                           title="Classification of zones", document_page=317,
        ...                           full_path="Damp situations > Baths"))
        '6.2.2 Classification of zones Damp situations > Baths'
    """
    parts = [entry.section_number, entry.title, entry.full_path]
    return " ".join(part.strip() for part in parts if part and part.strip())


class TextEmbedder:
    """Embedding provider backed by an injected genai.Client"""

    def __init__(self, genai_client: Optional[genai.Client], model_name: str = DEFAULT_EMBEDDING_MODEL):
        """
        Args:
            genai_client: Google Gen AI client (None = embeddings unavailable)
            model_name: Embedding model identifier
        """
        self.genai_client = genai_client
        self.model_name = model_name

    @property
    def available(self) -> bool:
        return self.genai_client is not None

    def embed(self, text: str) -> Optional[List[float]]:
        """
        Embed a single text.

        Returns:
            Embedding vector, or None if text is empty, the client is
            missing, or the API call fails
        """
        if not text or not text.strip():
            return None

        if self.genai_client is None:
            logger.debug("Embedding skipped: no genai client configured")
            return None

        try:
            response = self.genai_client.models.embed_content(
                model=self.model_name,
                contents=text,
            )
            values = response.embeddings[0].values
        except Exception as e:
            logger.warning(f"Embedding generation failed ({self.model_name}): {e}")
            return None

        if not values:
            logger.warning(f"Embedding API returned an empty vector ({self.model_name})")
            return None

        return list(values)
