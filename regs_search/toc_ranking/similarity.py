"""
Vector similarity helpers for semantic TOC scoring.

Embeddings reach the ranker from several places (pgvector columns, JSON
text columns written by the batch embedding job, the embedding API), so
parse_embedding accepts any of those shapes and returns None for anything
it cannot turn into a finite 1-D float vector.
"""

import json
import logging
from typing import Any, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def parse_embedding(value: Any) -> Optional[np.ndarray]:
    """
    Coerce a stored embedding into a float vector.

    Args:
        value: list/tuple of numbers, numpy array, pgvector value,
            or JSON array string ("[0.1, 0.2, ...]")

    Returns:
        1-D float64 array, or None if missing or malformed

    Examples:
        >>> parse_embedding("[0.5, 0.25]")
        array([0.5 , 0.25])
        >>> parse_embedding("not a vector") is None
        True
    """
    if value is None:
        return None

    try:
        if isinstance(value, (str, bytes)):
            value = json.loads(value)
        elif hasattr(value, "to_list"):
            # pgvector.Vector
            value = value.to_list()

        vector = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring malformed embedding: {e}")
        return None

    if vector.ndim != 1 or vector.size == 0:
        logger.warning(f"Ignoring malformed embedding: shape={vector.shape}")
        return None

    if not np.all(np.isfinite(vector)):
        logger.warning("Ignoring malformed embedding: non-finite values")
        return None

    return vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 when either magnitude is zero.

    Raises:
        ValueError: If dimensions differ
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    if va.shape != vb.shape:
        raise ValueError(f"Dimension mismatch: {va.shape} vs {vb.shape}")

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)

    # Float error can push |cos| slightly past 1
    return max(-1.0, min(1.0, similarity))


def semantic_score(query_vector: Optional[np.ndarray], entry_vector: Optional[np.ndarray]) -> float:
    """
    Semantic score in [0, 1]: cosine similarity rescaled via (sim + 1) / 2.

    Missing vectors, dimension mismatch or a zero vector score 0.0.
    """
    if query_vector is None or entry_vector is None:
        return 0.0

    if query_vector.shape != entry_vector.shape:
        logger.debug(
            f"Embedding dimension mismatch: query={query_vector.shape[0]}, "
            f"entry={entry_vector.shape[0]}"
        )
        return 0.0

    norm_q = float(np.linalg.norm(query_vector))
    norm_e = float(np.linalg.norm(entry_vector))
    if norm_q == 0.0 or norm_e == 0.0:
        return 0.0

    similarity = cosine_similarity(query_vector, entry_vector)
    return (similarity + 1.0) / 2.0
