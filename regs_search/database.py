"""
Database module for PostgreSQL + pgvector

Stores regulation documents, their table of contents (with optional
per-entry embeddings written by the batch embedding job) and the query log.
The store only reads and writes rows; ranking happens in toc_ranking.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import asyncpg
from pgvector.asyncpg import register_vector

from .toc_ranking.models import TocEntry

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """Raised when a document id has no row in the documents table"""


class TocStore:
    """PostgreSQL + pgvector TOC store"""

    def __init__(self, connection_string: str):
        self.pool: Optional[asyncpg.Pool] = None
        self.connection_string = connection_string

    async def connect(self):
        """Initialize connection pool"""
        async def init_connection(conn):
            """Register vector type for each new connection in the pool"""
            await register_vector(conn)

        # Extension must exist before register_vector can find the type
        conn = await asyncpg.connect(self.connection_string)
        try:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        finally:
            await conn.close()

        self.pool = await asyncpg.create_pool(
            self.connection_string,
            min_size=1,
            max_size=10,
            init=init_connection,
        )

        logger.info(f"Connected to PostgreSQL: {self.connection_string.split('@')[-1]}")

    async def disconnect(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Disconnected from PostgreSQL")

    async def init_schema(self):
        """Create tables and indexes"""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id SERIAL PRIMARY KEY,
                    title TEXT NOT NULL,
                    document_type TEXT,
                    pdf_page_offset INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # embedding stays NULL until the batch embedding job has run
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS toc (
                    id SERIAL PRIMARY KEY,
                    document_id INTEGER NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
                    section_number TEXT NOT NULL,
                    title TEXT NOT NULL,
                    document_page INTEGER NOT NULL,
                    level INTEGER NOT NULL DEFAULT 1,
                    full_path TEXT,
                    embedding VECTOR(768),
                    UNIQUE(document_id, section_number)
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_toc_document_page
                ON toc (document_id, document_page)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS query_logs (
                    id SERIAL PRIMARY KEY,
                    query_id TEXT,
                    query_text TEXT NOT NULL,
                    query_type TEXT,
                    document_id INTEGER,
                    timestamp TIMESTAMPTZ,
                    result_section TEXT,
                    result_title TEXT,
                    result_page INTEGER,
                    result_found BOOLEAN NOT NULL DEFAULT FALSE,
                    alternatives_count INTEGER NOT NULL DEFAULT 0,
                    completed_at TIMESTAMPTZ NOT NULL
                )
            """)

            logger.info("Database schema initialized (documents + toc + query_logs)")

    async def get_document(self, document_id: int) -> dict:
        """
        Get document metadata.

        Returns:
            Dict with id, title, document_type, pdf_page_offset

        Raises:
            DocumentNotFoundError: If no such document
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, title, document_type, pdf_page_offset FROM documents WHERE id = $1",
                document_id,
            )

        if row is None:
            raise DocumentNotFoundError(f"No document with id {document_id}")

        return {
            "id": row["id"],
            "title": row["title"],
            "document_type": row["document_type"],
            "pdf_page_offset": row["pdf_page_offset"] or 0,
        }

    async def get_toc_entries(self, document_id: int) -> List[TocEntry]:
        """
        Get all TOC entries of a document, ordered by page.

        Embeddings are passed through as stored; the ranker decides
        whether each one is usable.
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, document_id, section_number, title, document_page,
                       level, full_path, embedding
                FROM toc
                WHERE document_id = $1
                ORDER BY document_page, id
                """,
                document_id,
            )

        entries = [_row_to_entry(row) for row in rows]
        logger.debug(f"Fetched {len(entries)} TOC entries for document {document_id}")
        return entries

    async def count_embedded_entries(self, document_id: int) -> int:
        """Number of TOC entries of a document that carry an embedding"""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM toc WHERE document_id = $1 AND embedding IS NOT NULL",
                document_id,
            )

    async def update_entry_embedding(self, entry_id: int, embedding: List[float]):
        """Store the embedding of one TOC entry"""
        async with self.pool.acquire() as conn:
            await conn.execute(
                "UPDATE toc SET embedding = $1 WHERE id = $2",
                embedding,
                entry_id,
            )

    async def log_query(
        self,
        query_text: str,
        query_id: Optional[str] = None,
        query_type: Optional[str] = None,
        document_id: Optional[int] = None,
        timestamp: Optional[datetime] = None,
        result_section: Optional[str] = None,
        result_title: Optional[str] = None,
        result_page: Optional[int] = None,
        result_found: bool = False,
        alternatives_count: int = 0,
    ) -> int:
        """
        Record a search for later tuning of ranking weights.

        Returns:
            Log row id
        """
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                """
                INSERT INTO query_logs
                    (query_id, query_text, query_type, document_id, timestamp,
                     result_section, result_title, result_page, result_found,
                     alternatives_count, completed_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                RETURNING id
                """,
                query_id,
                query_text,
                query_type,
                document_id,
                timestamp,
                result_section,
                result_title,
                result_page,
                result_found,
                alternatives_count,
                datetime.now(timezone.utc),
            )


def _row_to_entry(row) -> TocEntry:
    embedding = row["embedding"]
    if embedding is not None and hasattr(embedding, "tolist"):
        # pgvector returns numpy arrays
        embedding = embedding.tolist()

    return TocEntry(
        id=str(row["id"]),
        document_id=str(row["document_id"]),
        section_number=row["section_number"],
        title=row["title"],
        document_page=row["document_page"],
        level=row["level"],
        full_path=row["full_path"],
        embedding=embedding,
    )
