#!/usr/bin/env python3
"""
Embed the table of contents of a document (enables hybrid search for it).

Usage:
    python scripts/embed_toc.py --document-id 3
    python scripts/embed_toc.py --document-id 3 --force   # re-embed everything
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from google import genai

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from regs_search.config import Settings, load_environment  # noqa: E402
from regs_search.database import TocStore  # noqa: E402
from regs_search.embeddings import TextEmbedder  # noqa: E402
from regs_search.toc_embedding import backfill_embeddings  # noqa: E402


async def run(document_id: int, force: bool) -> dict:
    settings = Settings.from_env()

    client = genai.Client(vertexai=True, project=settings.project_id, location=settings.location)
    embedder = TextEmbedder(client, model_name=settings.embedding_model)

    store = TocStore(settings.database_url)
    await store.connect()
    try:
        await store.get_document(document_id)
        return await backfill_embeddings(store, embedder, document_id, force=force)
    finally:
        await store.disconnect()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Embed TOC entries of a document")
    parser.add_argument("--document-id", type=int, required=True)
    parser.add_argument("--force", action="store_true", help="Re-embed entries that already have embeddings")
    args = parser.parse_args()

    load_environment()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        stats = asyncio.run(run(args.document_id, args.force))
    except Exception as e:
        print(f"Embedding failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Done: {stats['embedded']} embedded, {stats['skipped']} skipped, {stats['failed']} failed (of {stats['total']})")


if __name__ == "__main__":
    main()
