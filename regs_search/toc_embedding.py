"""
Batch embedding of TOC entries.

Until this has run for a document its entries carry no embeddings and the
ranker works keyword-only; afterwards searches use hybrid scoring.
"""

import asyncio
import logging

from .database import TocStore
from .embeddings import TextEmbedder, embed_entry_text

logger = logging.getLogger(__name__)


async def backfill_embeddings(
    store: TocStore,
    embedder: TextEmbedder,
    document_id: int,
    force: bool = False,
) -> dict:
    """
    Embed TOC entries of a document and store the vectors.

    Args:
        store: Connected TOC store
        embedder: Embedding provider
        document_id: Document whose entries to embed
        force: Re-embed entries that already have an embedding

    Returns:
        Stats dict: total, embedded, skipped, failed
    """
    entries = await store.get_toc_entries(document_id)
    stats = {"total": len(entries), "embedded": 0, "skipped": 0, "failed": 0}

    for entry in entries:
        if entry.embedding is not None and not force:
            stats["skipped"] += 1
            continue

        vector = await asyncio.to_thread(embedder.embed, embed_entry_text(entry))
        if vector is None:
            logger.warning(f"No embedding for {entry.section_number} ({entry.title}), leaving it keyword-only")
            stats["failed"] += 1
            continue

        await store.update_entry_embedding(int(entry.id), vector)
        stats["embedded"] += 1

    embedded_total = await store.count_embedded_entries(document_id)
    logger.info(
        f"Document {document_id}: embedded {stats['embedded']}, skipped {stats['skipped']}, "
        f"failed {stats['failed']} ({embedded_total}/{stats['total']} entries now have embeddings)"
    )
    return stats
