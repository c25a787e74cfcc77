"""
Regs Search - FastAPI application for regulation TOC search

Finds the section of an electrical standard (AS/NZS 3000 and related) that
answers a tradesperson's typed or spoken question, using:
- Hybrid TOC ranking (keyword + embedding similarity, keyword-only fallback)
- Vertex AI (query embeddings, Gemini query expansion)
- PostgreSQL + pgvector (documents, TOC entries, query log)

Service handles (store, embedder, expander, ranker) are created in the app
lifespan, kept on app.state and injected into handlers with Depends, so
tests swap them through app.dependency_overrides.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google import genai
from pydantic import BaseModel, Field, field_validator

from .config import Settings, load_environment
from .database import DocumentNotFoundError, TocStore
from .embeddings import EMBEDDING_DIMENSION, TextEmbedder
from .logging_config import setup_logging
from .query_expansion import QueryExpander
from .references import extract_page_references
from .toc_ranking import (
    HybridSectionRanker,
    PassageResult,
    RankerConfig,
    RankingMode,
    ScoredResult,
    TocEntry,
    merge_rankings,
    rerank_passages,
)

load_environment()

logger = logging.getLogger(__name__)

APP_VERSION = "0.3.0"
APP_START_TIME = datetime.now(timezone.utc)

# Top hits taken from each expanded query before merging
RESULTS_PER_EXPANDED_QUERY = 3


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup service handles"""
    settings = Settings.from_env()

    setup_logging(
        log_file="logs/regs-search.log",
        console_level=getattr(logging, settings.log_level, logging.INFO),
        file_level=logging.DEBUG,  # Always DEBUG in file for troubleshooting
    )

    genai_client = None
    if settings.genai_enabled:
        logger.info(f"Initializing Google Gen AI (project={settings.project_id}, location={settings.location})...")
        genai_client = genai.Client(vertexai=True, project=settings.project_id, location=settings.location)
    else:
        logger.warning("GENAI_ENABLED=false: embeddings and query expansion disabled (keyword-only search)")

    logger.info("Connecting to database...")
    toc_store = TocStore(settings.database_url)
    await toc_store.connect()
    await toc_store.init_schema()

    app.state.settings = settings
    app.state.toc_store = toc_store
    app.state.embedder = TextEmbedder(genai_client, model_name=settings.embedding_model)
    app.state.expander = QueryExpander(
        genai_client if settings.query_expansion_enabled else None,
        model_name=settings.expansion_model,
    )
    app.state.ranker = HybridSectionRanker(RankerConfig(mode=settings.ranker_mode))
    logger.info(f"Ranker initialized (mode={settings.ranker_mode.value})")

    yield

    logger.info("Shutting down...")
    await toc_store.disconnect()


app = FastAPI(
    title="Regs Search API",
    description="Hybrid table-of-contents search over electrical regulation documents",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware for the chat/voice frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency providers (overridden in tests)
def get_toc_store(request: Request) -> TocStore:
    return request.app.state.toc_store


def get_embedder(request: Request) -> TextEmbedder:
    return request.app.state.embedder


def get_expander(request: Request) -> QueryExpander:
    return request.app.state.expander


def get_ranker(request: Request) -> HybridSectionRanker:
    return request.app.state.ranker


# Request/Response models
class HealthResponse(BaseModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float


class TocEntryItem(BaseModel):
    id: str
    section_number: str
    title: str
    page: int
    pdf_page: int
    level: int
    full_path: Optional[str] = None
    has_embedding: bool


class TocResponse(BaseModel):
    document_id: int
    toc: List[TocEntryItem]
    total: int


class SearchTocRequest(BaseModel):
    query: str = Field(..., description="Free-text or transcribed voice query", min_length=1)
    document_id: int = Field(..., description="Document to search")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Query must contain non-whitespace characters")
        return value


class SectionResult(BaseModel):
    id: str
    section_number: str
    title: str
    page: int
    pdf_page: int
    level: int
    score: float = Field(..., description="Combined score on the 0-1000 display scale")
    keyword_score: float
    semantic_score: float
    match_count: int


class SearchMeta(BaseModel):
    total_entries: int
    used_embeddings: bool
    keyword_count: int
    mode: str
    result_count: int
    top_score: float


class SearchTocResponse(BaseModel):
    query: str
    selection: Optional[SectionResult] = None
    alternatives: List[SectionResult]
    results: List[SectionResult]
    meta: SearchMeta


class MultiSearchRequest(BaseModel):
    question: str = Field(..., description="User question", min_length=1)
    document_id: int
    max_sections: int = Field(default=5, ge=1, le=20)

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Question must contain non-whitespace characters")
        return value


class MergedSection(SectionResult):
    found_by: str


class MultiSearchResponse(BaseModel):
    question: str
    document: str
    queries: List[str]
    sections: List[MergedSection]
    total_found: int


class PassageItem(BaseModel):
    content: str
    similarity: float = 0.0
    section_number: Optional[str] = None
    section_title: Optional[str] = None
    key_topics: List[str] = Field(default_factory=list)


class PassageRerankRequest(BaseModel):
    query: str = Field(..., min_length=1)
    passages: List[PassageItem]


class RankedPassage(PassageItem):
    relevance_score: float


class PassageRerankResponse(BaseModel):
    query: str
    results: List[RankedPassage]
    count: int


class PageReferenceItem(BaseModel):
    page: int
    type: str


class ReferencesRequest(BaseModel):
    text: str


class ReferencesResponse(BaseModel):
    references: List[PageReferenceItem]


class EmbeddingRequest(BaseModel):
    text: str = Field(..., description="Text to embed", min_length=1)


class EmbeddingResponse(BaseModel):
    embedding: List[float]
    dimension: int


class QueryLogRequest(BaseModel):
    query_text: str = Field(..., min_length=1)
    query_id: Optional[str] = None
    query_type: Optional[str] = Field(default=None, description="'text' or 'voice'")
    document_id: Optional[int] = None
    timestamp: Optional[datetime] = None
    result_section: Optional[str] = None
    result_title: Optional[str] = None
    result_page: Optional[int] = None
    result_found: bool = False
    alternatives_count: int = Field(default=0, ge=0)


class QueryLogResponse(BaseModel):
    success: bool
    log_id: int


def _section_result(result: ScoredResult, pdf_page_offset: int) -> SectionResult:
    entry = result.entry
    return SectionResult(
        id=entry.id,
        section_number=entry.section_number,
        title=entry.title,
        page=entry.document_page,
        pdf_page=entry.document_page + pdf_page_offset,
        level=entry.level,
        score=round(result.final_score, 3),
        keyword_score=round(result.keyword_score, 4),
        semantic_score=round(result.semantic_score, 4),
        match_count=result.match_count,
    )


async def _embed_query(
    query: str,
    entries: List[TocEntry],
    embedder: TextEmbedder,
    ranker: HybridSectionRanker,
) -> Optional[List[float]]:
    """Embed the query only when hybrid scoring could use it"""
    if ranker.config.mode != RankingMode.HYBRID:
        return None
    if not any(entry.embedding is not None for entry in entries):
        return None
    return await asyncio.to_thread(embedder.embed, query)


async def _load_document(store: TocStore, document_id: int) -> dict:
    try:
        return await store.get_document(document_id)
    except DocumentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )


# Routes
@app.get("/", response_model=dict)
async def root():
    """Root endpoint"""
    return {
        "service": "Regs Search API",
        "version": APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint"""
    uptime = (datetime.now(timezone.utc) - APP_START_TIME).total_seconds()
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        started_at=APP_START_TIME.isoformat(),
        uptime_seconds=uptime,
    )


@app.get("/v1/documents/{document_id}/toc", response_model=TocResponse)
async def get_toc(document_id: int, store: TocStore = Depends(get_toc_store)):
    """
    List the table of contents of a document, ordered by page.

    `pdf_page` applies the document's page offset (logical page → PDF page).
    """
    try:
        document = await _load_document(store, document_id)
        entries = await store.get_toc_entries(document_id)

        offset = document["pdf_page_offset"]
        items = [
            TocEntryItem(
                id=entry.id,
                section_number=entry.section_number,
                title=entry.title,
                page=entry.document_page,
                pdf_page=entry.document_page + offset,
                level=entry.level,
                full_path=entry.full_path,
                has_embedding=entry.embedding is not None,
            )
            for entry in entries
        ]
        logger.info(f"Found {len(items)} TOC entries for document {document_id}")

        return TocResponse(document_id=document_id, toc=items, total=len(items))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"TOC fetch failed for document {document_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"TOC fetch failed: {str(e)}",
        )


@app.post("/v1/search-toc", response_model=SearchTocResponse)
async def search_toc(
    request: SearchTocRequest,
    store: TocStore = Depends(get_toc_store),
    embedder: TextEmbedder = Depends(get_embedder),
    ranker: HybridSectionRanker = Depends(get_ranker),
):
    """
    Rank a document's TOC sections for a query.

    **Process:**
    1. Load document (page offset) and TOC entries
    2. Embed the query if any entry has an embedding (hybrid mode only)
    3. Rank: keyword + semantic, or keyword-only if the embedding failed
    4. Return best section as `selection`, results 2-4 as `alternatives`

    An empty result list is a valid answer ("no match"), not an error.
    """
    try:
        document = await _load_document(store, request.document_id)
        entries = await store.get_toc_entries(request.document_id)

        query_embedding = await _embed_query(request.query, entries, embedder, ranker)
        outcome = ranker.rank_with_details(entries, request.query, query_embedding)

        offset = document["pdf_page_offset"]
        results = [_section_result(r, offset) for r in outcome.results]
        alternatives = [_section_result(r, offset) for r in outcome.alternatives]
        selection = results[0] if results else None

        if selection:
            logger.info(f"Search '{request.query[:50]}' → {selection.section_number}: {selection.title} [{selection.score:.0f}]")
        else:
            logger.info(f"Search '{request.query[:50]}' → no match")

        return SearchTocResponse(
            query=request.query,
            selection=selection,
            alternatives=alternatives,
            results=results,
            meta=SearchMeta(
                total_entries=outcome.total_entries,
                used_embeddings=outcome.used_embeddings,
                keyword_count=outcome.keyword_count,
                mode=outcome.mode.value,
                result_count=len(results),
                top_score=selection.score if selection else 0.0,
            ),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"TOC search failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Search failed: {str(e)}",
        )


@app.post("/v1/search", response_model=MultiSearchResponse)
async def search_question(
    request: MultiSearchRequest,
    store: TocStore = Depends(get_toc_store),
    embedder: TextEmbedder = Depends(get_embedder),
    expander: QueryExpander = Depends(get_expander),
    ranker: HybridSectionRanker = Depends(get_ranker),
):
    """
    Answer-oriented search: expand a question into several search queries,
    rank the TOC for each, and merge the top 3 hits of every query.

    Falls back to the question itself when query expansion is unavailable.
    """
    try:
        document = await _load_document(store, request.document_id)
        entries = await store.get_toc_entries(request.document_id)

        queries = await asyncio.to_thread(expander.expand, request.question, document["title"])
        logger.info(f"Searching {len(queries)} queries for: '{request.question[:50]}'")

        embeddings = await asyncio.gather(
            *(_embed_query(query, entries, embedder, ranker) for query in queries)
        )
        rankings = [
            (query, ranker.rank(entries, query, query_embedding))
            for query, query_embedding in zip(queries, embeddings)
        ]
        merged = merge_rankings(rankings, per_query=RESULTS_PER_EXPANDED_QUERY)
        logger.info(f"Combined results: {len(merged)} unique sections found")

        offset = document["pdf_page_offset"]
        sections = [
            MergedSection(**_section_result(m.result, offset).model_dump(), found_by=m.found_by)
            for m in merged[:request.max_sections]
        ]

        return MultiSearchResponse(
            question=request.question,
            document=document["title"],
            queries=queries,
            sections=sections,
            total_found=len(merged),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Question search failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Search failed: {str(e)}",
        )


@app.post("/v1/passages/rerank", response_model=PassageRerankResponse)
async def rerank_passage_results(request: PassageRerankRequest):
    """
    Re-rank passage-level search hits with clause-aware boosts
    (phrase, title, clause number, key topics). Returns the top 5.
    """
    passages = [PassageResult(**item.model_dump()) for item in request.passages]
    ranked = rerank_passages(passages, request.query)

    results = [
        RankedPassage(
            content=p.content,
            similarity=p.similarity,
            section_number=p.section_number,
            section_title=p.section_title,
            key_topics=p.key_topics,
            relevance_score=round(p.relevance_score, 4),
        )
        for p in ranked
    ]
    return PassageRerankResponse(query=request.query, results=results, count=len(results))


@app.post("/v1/references", response_model=ReferencesResponse)
async def extract_references(request: ReferencesRequest):
    """Extract cited pages ("page 320", "Table 6.1 ... pg 318") from an answer text"""
    references = extract_page_references(request.text)
    return ReferencesResponse(
        references=[PageReferenceItem(page=r.page, type=r.type) for r in references]
    )


@app.post("/v1/embed", response_model=EmbeddingResponse)
async def create_embedding(request: EmbeddingRequest, embedder: TextEmbedder = Depends(get_embedder)):
    """
    Generate a text embedding using Vertex AI

    Example:
        POST /v1/embed
        {
            "text": "bathroom zone clearances"
        }
    """
    if not embedder.available:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Embedding model not initialized",
        )

    embedding = await asyncio.to_thread(embedder.embed, request.text)
    if embedding is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Embedding generation failed",
        )

    if len(embedding) != EMBEDDING_DIMENSION:
        logger.warning(f"Unexpected embedding dimension: {len(embedding)} (expected {EMBEDDING_DIMENSION})")

    return EmbeddingResponse(embedding=embedding, dimension=len(embedding))


@app.post("/v1/query-log", response_model=QueryLogResponse)
async def log_query(request: QueryLogRequest, store: TocStore = Depends(get_toc_store)):
    """Record a completed search (query, chosen section, alternatives shown)"""
    try:
        log_id = await store.log_query(**request.model_dump())
        return QueryLogResponse(success=True, log_id=log_id)
    except Exception as e:
        logger.error(f"Error logging query: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Query logging failed: {str(e)}",
        )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(
        "regs_search.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,  # Development only
    )
